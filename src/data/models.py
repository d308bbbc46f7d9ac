"""
Cogno Timeline — Data Models.

In-memory working set for one day's timeline: task categories, tasks with
their time segments, chat lines, and the hour bars derived from them.
The backend owns persistence; these types only live for a session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class InvalidTimestampError(ValueError):
    """Raised when a timestamp entering the timeline core is unusable."""


def ensure_timestamp(value: object, what: str = "timestamp") -> datetime:
    """Return *value* if it is a datetime, else raise InvalidTimestampError."""
    if not isinstance(value, datetime):
        raise InvalidTimestampError(f"{what} must be a datetime, got {value!r}")
    return value


class TaskStatus(str, Enum):
    RUNNING = "RUNNING"
    FINISHED = "FINISHED"


class ChatType(str, Enum):
    USER = "USER"
    SYSTEM = "SYSTEM"


class SystemKind(str, Enum):
    TASK_START = "TASK_START"
    TASK_END = "TASK_END"
    INFO = "INFO"


@dataclass
class TaskCategory:
    """A registered name + color pairing (a "task definition").

    Registered explicitly with /addcategory, or implicitly the first time
    an unknown name is started with `#name`.
    """

    name: str     # unique, case-sensitive
    color: str    # hex RGB, e.g. "#3b82f6"


@dataclass
class TaskSegment:
    """One contiguous interval during which a task was running."""

    start: datetime
    end: datetime | None = None   # None while still running

    @property
    def is_open(self) -> bool:
        return self.end is None


@dataclass
class Task:
    """A named, colored activity tracked on one day's timeline.

    At most one segment is open, and if so it is the last one.
    """

    name: str
    color: str
    status: TaskStatus = TaskStatus.RUNNING
    segments: list[TaskSegment] = field(default_factory=list)

    @property
    def is_running(self) -> bool:
        return self.status is TaskStatus.RUNNING

    @property
    def last_segment(self) -> TaskSegment | None:
        return self.segments[-1] if self.segments else None


@dataclass
class ChatEntry:
    """A single chat line on the timeline (user message or system notice)."""

    id: int
    created_at: datetime
    text: str
    type: ChatType
    task_name: str | None = None
    system_kind: SystemKind | None = None

    @property
    def time(self) -> str:
        return self.created_at.strftime("%H:%M")


@dataclass
class HourBar:
    """A segment clipped to one hour bucket, in percent of that hour."""

    color: str
    start_pct: float   # 0..100
    width_pct: float   # 0..100
    name: str = ""
