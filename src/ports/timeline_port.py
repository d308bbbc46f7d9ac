"""Timeline port — abstract interface to the timeline backend.

Core modules depend on this protocol, never on a specific transport.
"""

from __future__ import annotations

from typing import Protocol

from src.data.dto import (
    ApiChatCreateRequest,
    ApiChatEntry,
    ApiTaskDefinition,
    ApiTimelineResponse,
)


class TimelineError(Exception):
    """Raised when any timeline backend operation fails."""


class TimelinePort(Protocol):
    """Abstract timeline backend used by the timeline service."""

    async def fetch_timeline(self, date: str) -> ApiTimelineResponse: ...

    async def fetch_categories(self) -> list[ApiTaskDefinition]: ...

    async def create_chat(self, request: ApiChatCreateRequest) -> ApiChatEntry: ...

    async def update_chat(self, entry_id: int, text: str) -> ApiChatEntry: ...

    async def delete_chat(self, entry_id: int) -> None: ...

    async def create_category(self, name: str, color: str) -> ApiTaskDefinition: ...
