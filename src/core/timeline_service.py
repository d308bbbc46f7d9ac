"""
Cogno Timeline — UI-Agnostic Timeline Service.

Session-scoped service for one user's day: classify submitted chat text ->
drive the task lifecycle -> persist chat lines and categories -> return
structured response objects.

Each UI adapter (Telegram today) calls this service and renders the
response objects in its own way.

Persistence is best effort. When the backend rejects a write, the user is
warned but the in-memory lifecycle is not rolled back; the next successful
write brings the server up to date.
"""

from __future__ import annotations

import asyncio
import logging
import random
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from src.core.commands import apply_suggestion, classify, detect_hashtag, filter_suggestions
from src.core.hour_grid import DAY_END_HOUR, DAY_START_HOUR, project_to_hours, tracked_minutes
from src.core.lifecycle import TaskLifecycle
from src.core.palette import default_category_color
from src.data.dto import ApiChatCreateRequest, category_from_api, entry_from_api
from src.data.models import (
    ChatEntry,
    ChatType,
    HourBar,
    SystemKind,
    Task,
    TaskCategory,
    ensure_timestamp,
)
from src.ports.timeline_port import TimelineError

if TYPE_CHECKING:
    from src.ports.timeline_port import TimelinePort

logger = logging.getLogger(__name__)

_HEX_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")

_PAST_DATE_MESSAGE = "You can't add new chats to a past date."
_SAVE_FAILED_WARNING = "Couldn't save to the server; your timeline is kept locally."


# ---------------------------------------------------------------------------
# Response types
# ---------------------------------------------------------------------------


class ResponseKind(Enum):
    TASK_STARTED = "task_started"
    TASK_ENDED = "task_ended"
    INFO = "info"
    MESSAGE = "message"
    CATEGORY_ADDED = "category_added"
    CHAT_UPDATED = "chat_updated"
    CHAT_DELETED = "chat_deleted"
    NO_ACTION = "no_action"
    ERROR = "error"


@dataclass
class LastEndedTask:
    name: str
    date: str   # ISO date YYYY-MM-DD


@dataclass
class ServiceResponse:
    kind: ResponseKind
    message: str


@dataclass
class ChatResponse(ServiceResponse):
    entry: ChatEntry | None = None   # None if the backend rejected the line
    task: Task | None = None
    warning: str = ""


@dataclass
class CategoryResponse(ServiceResponse):
    category: TaskCategory | None = None


@dataclass
class ErrorResponse(ServiceResponse):
    pass


@dataclass
class NoActionResponse(ServiceResponse):
    pass


def _unknown_entry(entry_id: int) -> ErrorResponse:
    return ErrorResponse(kind=ResponseKind.ERROR, message=f"There is no chat line #{entry_id}.")


# ---------------------------------------------------------------------------
# TimelineService
# ---------------------------------------------------------------------------


class TimelineService:
    """One user's timeline for one date.

    Mutating calls are serialized with an asyncio.Lock: start/end are not
    idempotent, so two interleaved submits could otherwise double-close or
    skip-close a segment.
    """

    def __init__(
        self,
        port: TimelinePort,
        date: str,
        lifecycle: TaskLifecycle | None = None,
        entries: list[ChatEntry] | None = None,
        day_start_hour: int = DAY_START_HOUR,
        day_end_hour: int = DAY_END_HOUR,
        rng: random.Random | None = None,
    ) -> None:
        self._port = port
        self.date = date
        self.lifecycle = lifecycle or TaskLifecycle(rng=rng)
        self.entries: list[ChatEntry] = list(entries or [])
        self.day_start_hour = day_start_hour
        self.day_end_hour = day_end_hour
        self.active_task_name: str | None = None
        self.last_ended_task: LastEndedTask | None = None
        self._rng = rng
        self._lock = asyncio.Lock()
        self._sync_active_task()

    @classmethod
    async def load(
        cls,
        port: TimelinePort,
        date: str,
        day_start_hour: int = DAY_START_HOUR,
        day_end_hour: int = DAY_END_HOUR,
        rng: random.Random | None = None,
    ) -> TimelineService:
        """Fetch a day's timeline and the registered categories.

        Raises TimelineError if the backend can't be read, and
        InvalidTimestampError if it returns malformed timestamps.
        """
        response = await port.fetch_timeline(date)
        categories = await port.fetch_categories()
        lifecycle = TaskLifecycle.from_api(response, categories, rng=rng)
        entries = [entry_from_api(e) for e in response.entries]
        logger.info(
            "Loaded timeline %s: %d tasks, %d chat lines",
            date, len(lifecycle.tasks), len(entries),
        )
        return cls(
            port, date,
            lifecycle=lifecycle,
            entries=entries,
            day_start_hour=day_start_hour,
            day_end_hour=day_end_hour,
            rng=rng,
        )

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def categories(self) -> list[TaskCategory]:
        return self.lifecycle.categories

    def running_tasks(self) -> list[Task]:
        return self.lifecycle.running_tasks()

    def is_today(self, now: datetime) -> bool:
        return now.date().isoformat() == self.date

    def hour_bars(self, now: datetime) -> dict[int, list[HourBar]]:
        return project_to_hours(
            self.lifecycle.tasks, self.day_start_hour, self.day_end_hour, now=now,
        )

    def tracked_minutes(self, now: datetime) -> dict[str, int]:
        return tracked_minutes(self.lifecycle.tasks, now=now)

    def suggestions(self, value: str, caret: int | None = None) -> list[TaskCategory]:
        """Autocomplete candidates for the hashtag being typed, if any."""
        return [category for category, _ in self.completions(value, caret)]

    def completions(
        self, value: str, caret: int | None = None,
    ) -> list[tuple[TaskCategory, str]]:
        """Each candidate category with *value* completed to use it.

        The hashtag being typed is replaced by `#name` or `##name`; text
        after the caret is kept.
        """
        context = detect_hashtag(value, caret)
        if context is None:
            return []
        return [
            (category, apply_suggestion(value, context, category.name, caret))
            for category in filter_suggestions(context.query, self.categories)
        ]

    # ------------------------------------------------------------------
    # Public: submit a chat line
    # ------------------------------------------------------------------

    async def submit(self, text: str, now: datetime) -> ServiceResponse:
        """Handle one submitted chat line.

        `##name` ends a task, `#name` starts it (or just makes it the
        current input task if it's already running), anything else is a
        user message tagged with the current input task.
        """
        ensure_timestamp(now, "now")
        if not text.strip():
            return NoActionResponse(kind=ResponseKind.NO_ACTION, message="")

        if not self.is_today(now):
            return ErrorResponse(kind=ResponseKind.ERROR, message=_PAST_DATE_MESSAGE)

        command = classify(text)
        if command is None:
            return NoActionResponse(
                kind=ResponseKind.NO_ACTION,
                message="Add a task name after # to start it, or after ## to end it.",
            )

        async with self._lock:
            if command.kind == "end":
                return await self._end(command.name, now)
            if command.kind == "start":
                return await self._start(command.name, now)
            return await self._message(command.text)

    async def _start(self, name: str, now: datetime) -> ChatResponse:
        if self.lifecycle.is_running(name):
            self.active_task_name = name
            entry, warning = await self._add_chat(
                f"{name} task is already running. Set as the current input task.",
                ChatType.SYSTEM, name, SystemKind.INFO,
            )
            return ChatResponse(
                kind=ResponseKind.INFO,
                message=f"{name} is already running.",
                entry=entry,
                task=self.lifecycle.find_task(name),
                warning=warning,
            )

        newly_registered = not self.lifecycle.has_category(name)
        task = self.lifecycle.start_task(name, now)
        self.active_task_name = name
        self._sync_active_task()

        warnings: list[str] = []
        if newly_registered:
            warning = await self._persist_category(TaskCategory(name=task.name, color=task.color))
            if warning:
                warnings.append(warning)

        entry, warning = await self._add_chat(
            f"{name} task started.", ChatType.SYSTEM, name, SystemKind.TASK_START,
        )
        if warning:
            warnings.append(warning)

        return ChatResponse(
            kind=ResponseKind.TASK_STARTED,
            message=f"Started {name}.",
            entry=entry,
            task=task,
            warning=" ".join(dict.fromkeys(warnings)),
        )

    async def _end(self, name: str, now: datetime) -> ChatResponse:
        if self.lifecycle.find_task(name) is None:
            entry, warning = await self._add_chat(
                f"{name} task does not exist.", ChatType.SYSTEM, name, SystemKind.INFO,
            )
            return ChatResponse(
                kind=ResponseKind.INFO,
                message=f"There is no task named {name}.",
                entry=entry,
                warning=warning,
            )

        task = self.lifecycle.end_task(name, now)
        self.last_ended_task = LastEndedTask(name=name, date=self.date)
        self._sync_active_task()

        entry, warning = await self._add_chat(
            f"{name} task ended.", ChatType.SYSTEM, name, SystemKind.TASK_END,
        )
        return ChatResponse(
            kind=ResponseKind.TASK_ENDED,
            message=f"Ended {name}.",
            entry=entry,
            task=task,
            warning=warning,
        )

    async def _message(self, text: str) -> ChatResponse:
        entry, warning = await self._add_chat(text, ChatType.USER, self.active_task_name, None)
        return ChatResponse(
            kind=ResponseKind.MESSAGE,
            message="",
            entry=entry,
            task=self.lifecycle.find_task(self.active_task_name) if self.active_task_name else None,
            warning=warning,
        )

    # ------------------------------------------------------------------
    # Public: current input task
    # ------------------------------------------------------------------

    def cycle_active_task(self) -> str | None:
        """Move the current input task to the next running task, wrapping."""
        running = self.running_tasks()
        if not running:
            self.active_task_name = None
            return None

        names = [t.name for t in running]
        if self.active_task_name not in names:
            self.active_task_name = names[0]
        else:
            idx = names.index(self.active_task_name)
            self.active_task_name = names[(idx + 1) % len(names)]
        return self.active_task_name

    def _sync_active_task(self) -> None:
        """Keep the current input task pointing at a running task."""
        running = [t.name for t in self.running_tasks()]
        if not running:
            self.active_task_name = None
        elif self.active_task_name not in running:
            self.active_task_name = running[0]

    # ------------------------------------------------------------------
    # Public: categories
    # ------------------------------------------------------------------

    async def register_category(self, name: str, color: str | None = None) -> ServiceResponse:
        """Explicitly register a category, persisting it before adding it.

        Unlike implicit registration on `#name`, a failed save means the
        category is not added.
        """
        name = name.strip()
        if not name:
            return ErrorResponse(kind=ResponseKind.ERROR, message="Category name is empty.")
        if name.startswith("#"):
            return ErrorResponse(
                kind=ResponseKind.ERROR,
                message="Category names can't start with #.",
            )

        async with self._lock:
            if self.lifecycle.has_category(name):
                return ErrorResponse(
                    kind=ResponseKind.ERROR,
                    message=f"Category {name} already exists.",
                )

            if color is None:
                color = default_category_color(self.categories, rng=self._rng)
            elif not _HEX_COLOR_RE.match(color):
                return ErrorResponse(
                    kind=ResponseKind.ERROR,
                    message=f"{color} is not a hex color like #3b82f6.",
                )
            elif any(c.color.lower() == color.lower() for c in self.categories):
                return ErrorResponse(
                    kind=ResponseKind.ERROR,
                    message=f"{color} is already used by another category.",
                )

            try:
                saved = await self._port.create_category(name, color)
            except TimelineError as exc:
                logger.error("Failed to save category '%s': %s", name, exc)
                return ErrorResponse(
                    kind=ResponseKind.ERROR,
                    message="Couldn't save the category. Please try again.",
                )

            category = self.lifecycle.register_category(category_from_api(saved))
            logger.info("Category '%s' registered with %s", category.name, category.color)
            return CategoryResponse(
                kind=ResponseKind.CATEGORY_ADDED,
                message=f"Category {category.name} added.",
                category=category,
            )

    # ------------------------------------------------------------------
    # Public: edit / delete chat lines
    # ------------------------------------------------------------------

    async def update_chat(self, entry_id: int, text: str) -> ServiceResponse:
        async with self._lock:
            if self._find_entry(entry_id) is None:
                return _unknown_entry(entry_id)
            try:
                updated = entry_from_api(await self._port.update_chat(entry_id, text))
            except TimelineError as exc:
                logger.error("Failed to update chat #%d: %s", entry_id, exc)
                return ErrorResponse(
                    kind=ResponseKind.ERROR,
                    message="Couldn't update the chat line. Please try again.",
                )

            entry = self._find_entry(entry_id)
            entry.text = updated.text
            entry.created_at = updated.created_at
            return ChatResponse(kind=ResponseKind.CHAT_UPDATED, message="Chat updated.", entry=entry)

    async def delete_chat(self, entry_id: int) -> ServiceResponse:
        async with self._lock:
            if self._find_entry(entry_id) is None:
                return _unknown_entry(entry_id)
            try:
                await self._port.delete_chat(entry_id)
            except TimelineError as exc:
                logger.error("Failed to delete chat #%d: %s", entry_id, exc)
                return ErrorResponse(
                    kind=ResponseKind.ERROR,
                    message="Couldn't delete the chat line. Please try again.",
                )
            self.entries = [e for e in self.entries if e.id != entry_id]
            return ServiceResponse(kind=ResponseKind.CHAT_DELETED, message="Chat deleted.")

    def _find_entry(self, entry_id: int) -> ChatEntry | None:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    async def _add_chat(
        self,
        text: str,
        chat_type: ChatType,
        task_name: str | None,
        system_kind: SystemKind | None,
    ) -> tuple[ChatEntry | None, str]:
        """Save a chat line; returns (entry, warning). Never raises TimelineError."""
        request = ApiChatCreateRequest(
            date=self.date,
            text=text,
            type=chat_type,
            task_name=task_name,
            system_kind=system_kind,
        )
        try:
            saved = await self._port.create_chat(request)
        except TimelineError as exc:
            logger.error("Failed to save chat line for %s: %s", self.date, exc)
            return None, _SAVE_FAILED_WARNING

        entry = entry_from_api(saved)
        self.entries.append(entry)
        return entry, ""

    async def _persist_category(self, category: TaskCategory) -> str:
        try:
            await self._port.create_category(category.name, category.color)
        except TimelineError as exc:
            logger.error("Failed to save auto-registered category '%s': %s", category.name, exc)
            return _SAVE_FAILED_WARNING
        return ""
