"""Shared test fixtures and configuration.

Sets up fake environment variables so src.config doesn't sys.exit(),
and provides common fixtures like a mocked timeline port.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("ALLOWED_USER_IDS", "12345")
os.environ.setdefault("COGNO_API_BASE", "http://backend.test/api/timeline")
os.environ.setdefault("TIMEZONE", "Asia/Seoul")

import random
from itertools import count
from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def rng():
    """Seeded random source for deterministic color picks."""
    return random.Random(42)


@pytest.fixture
def timeline_port():
    """A TimelinePort mock whose writes echo back like the backend does."""
    from src.data.dto import ApiChatEntry, ApiTaskDefinition, ApiTimelineResponse

    ids = count(1)
    port = MagicMock()

    async def _create_chat(request):
        return ApiChatEntry(
            id=next(ids),
            created_at="2025-03-02T12:00:00",
            text=request.text,
            type=request.type,
            task_name=request.task_name,
            system_kind=request.system_kind,
        )

    async def _create_category(name, color):
        return ApiTaskDefinition(id=next(ids), name=name, color=color)

    port.fetch_timeline = AsyncMock(return_value=ApiTimelineResponse(date="2025-03-02"))
    port.fetch_categories = AsyncMock(return_value=[])
    port.create_chat = AsyncMock(side_effect=_create_chat)
    port.create_category = AsyncMock(side_effect=_create_category)
    port.update_chat = AsyncMock()
    port.delete_chat = AsyncMock(return_value=None)
    return port
