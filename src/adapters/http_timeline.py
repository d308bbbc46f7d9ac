"""HTTP timeline adapter — implements TimelinePort over the Cogno REST API.

Every call opens a short-lived httpx.AsyncClient against COGNO_API_BASE.
Transport errors, non-2xx statuses and payloads that don't match the DTOs
are all raised as TimelineError.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from src.data.dto import (
    ApiChatCreateRequest,
    ApiChatEntry,
    ApiTaskDefinition,
    ApiTimelineResponse,
)
from src.ports.timeline_port import TimelineError

logger = logging.getLogger(__name__)

_SESSION_COOKIE_NAME = "JSESSIONID"

_ModelT = TypeVar("_ModelT", bound=BaseModel)


class HttpTimelineAdapter:
    """REST implementation of TimelinePort."""

    def __init__(
        self,
        base_url: str | None = None,
        session_cookie: str | None = None,
        timeout: float | None = None,
    ) -> None:
        if base_url is None or session_cookie is None or timeout is None:
            from src.config import settings
            if base_url is None:
                base_url = settings.COGNO_API_BASE
            if session_cookie is None:
                session_cookie = settings.COGNO_SESSION_COOKIE
            if timeout is None:
                timeout = settings.HTTP_TIMEOUT_SECONDS

        self._base_url = base_url.rstrip("/")
        self._cookies = {_SESSION_COOKIE_NAME: session_cookie} if session_cookie else {}
        self._timeout = timeout

    async def _request(
        self,
        method: str,
        path: str = "",
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, cookies=self._cookies) as client:
                resp = await client.request(method, url, params=params, json=json)
                resp.raise_for_status()
                if not resp.content:
                    return None
                return resp.json()
        except httpx.HTTPError as exc:
            logger.error("Timeline API %s %s failed: %s", method, url, exc)
            raise TimelineError(f"{method} {path or '/'} failed: {exc}") from exc
        except ValueError as exc:
            logger.error("Timeline API %s %s returned invalid JSON: %s", method, url, exc)
            raise TimelineError(f"{method} {path or '/'} returned invalid JSON") from exc

    @staticmethod
    def _validate(model: type[_ModelT], payload: Any) -> _ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            logger.error("Unexpected %s payload: %s", model.__name__, exc)
            raise TimelineError(f"Unexpected {model.__name__} payload") from exc

    async def fetch_timeline(self, date: str) -> ApiTimelineResponse:
        data = await self._request("GET", params={"date": date})
        return self._validate(ApiTimelineResponse, data)

    async def fetch_categories(self) -> list[ApiTaskDefinition]:
        data = await self._request("GET", "/task-definitions")
        if not isinstance(data, list):
            raise TimelineError("Expected a list of task definitions")
        return [self._validate(ApiTaskDefinition, item) for item in data]

    async def create_chat(self, request: ApiChatCreateRequest) -> ApiChatEntry:
        body = request.model_dump(mode="json", by_alias=True)
        data = await self._request("POST", "/chat", json=body)
        entry = self._validate(ApiChatEntry, data)
        logger.debug("Chat #%d saved for %s", entry.id, request.date)
        return entry

    async def update_chat(self, entry_id: int, text: str) -> ApiChatEntry:
        data = await self._request("PATCH", f"/chat/{entry_id}", json={"text": text})
        return self._validate(ApiChatEntry, data)

    async def delete_chat(self, entry_id: int) -> None:
        await self._request("DELETE", f"/chat/{entry_id}")
        logger.info("Chat #%d deleted", entry_id)

    async def create_category(self, name: str, color: str) -> ApiTaskDefinition:
        # The backend takes the definition as query parameters, not a body.
        data = await self._request(
            "POST", "/task-definitions", params={"name": name, "color": color},
        )
        saved = self._validate(ApiTaskDefinition, data)
        logger.info("Category '%s' saved with color %s", saved.name, saved.color)
        return saved
