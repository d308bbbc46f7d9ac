"""
Cogno Timeline — Backend JSON contract.

Pydantic models mirroring the REST backend's timeline DTOs, plus the
conversions between them and the in-memory models in src.data.models.

JSON example (GET /api/timeline?date=2025-03-02):
{
    "date": "2025-03-02",
    "tasks": [
        {"id": 7, "name": "math", "color": "#3b82f6", "status": "RUNNING",
         "date": "2025-03-02",
         "segments": [{"id": 11, "startTime": "2025-03-02T09:15:00",
                       "endTime": null}]}
    ],
    "entries": [
        {"id": 3, "createdAt": "2025-03-02T09:15:00", "text": "math task started.",
         "type": "SYSTEM", "taskName": "math", "systemKind": "TASK_START"}
    ]
}
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field

from src.data.models import (
    ChatEntry,
    ChatType,
    InvalidTimestampError,
    SystemKind,
    Task,
    TaskCategory,
    TaskSegment,
    TaskStatus,
)


class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ApiTaskSegment(_ApiModel):
    id: int | None = None
    start_time: str = Field(alias="startTime")
    end_time: str | None = Field(default=None, alias="endTime")


class ApiTask(_ApiModel):
    id: int | None = None
    name: str
    color: str
    status: TaskStatus
    date: str = ""
    segments: list[ApiTaskSegment] = []


class ApiChatEntry(_ApiModel):
    id: int
    created_at: str = Field(alias="createdAt")
    text: str
    type: ChatType
    task_name: str | None = Field(default=None, alias="taskName")
    system_kind: SystemKind | None = Field(default=None, alias="systemKind")


class ApiTimelineResponse(_ApiModel):
    date: str
    tasks: list[ApiTask] = []
    entries: list[ApiChatEntry] = []


class ApiChatCreateRequest(_ApiModel):
    date: str
    text: str
    type: ChatType
    task_name: str | None = Field(default=None, alias="taskName")
    system_kind: SystemKind | None = Field(default=None, alias="systemKind")


class ApiTaskDefinition(_ApiModel):
    id: int | None = None
    name: str
    color: str


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------


def parse_timestamp(raw: str | None, what: str = "timestamp") -> datetime:
    """Parse an ISO-8601 timestamp from the backend.

    The backend sends offset-free local times. A timestamp that does carry
    an offset (or `Z`) is converted to naive local time in TIMEZONE, so the
    hour grid always projects wall-clock hours.

    Raises InvalidTimestampError on missing or malformed input.
    """
    if not raw:
        raise InvalidTimestampError(f"{what} is missing")
    try:
        ts = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except (ValueError, TypeError) as exc:
        raise InvalidTimestampError(f"Malformed {what}: {raw!r}") from exc

    if ts.tzinfo is not None:
        from src.config import settings
        ts = ts.astimezone(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)
    return ts


def task_from_api(api_task: ApiTask) -> Task:
    segments = [
        TaskSegment(
            start=parse_timestamp(seg.start_time, "segment startTime"),
            end=parse_timestamp(seg.end_time, "segment endTime") if seg.end_time else None,
        )
        for seg in api_task.segments
    ]
    return Task(
        name=api_task.name,
        color=api_task.color,
        status=api_task.status,
        segments=segments,
    )


def entry_from_api(api_entry: ApiChatEntry) -> ChatEntry:
    return ChatEntry(
        id=api_entry.id,
        created_at=parse_timestamp(api_entry.created_at, "createdAt"),
        text=api_entry.text,
        type=api_entry.type,
        task_name=api_entry.task_name,
        system_kind=api_entry.system_kind,
    )


def category_from_api(api_def: ApiTaskDefinition) -> TaskCategory:
    return TaskCategory(name=api_def.name, color=api_def.color)

