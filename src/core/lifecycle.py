"""Task lifecycle controller — in-memory working set for one day.

Tracks named tasks, each RUNNING or FINISHED with an ordered list of time
segments. `#name` starts (or restarts) a task, `##name` ends it.

Guards such as "already running" or "task does not exist" belong to the
caller (see src.core.timeline_service); the controller never raises for
them. Nothing here performs I/O.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime

from src.core.palette import pick_color
from src.data.dto import (
    ApiTaskDefinition,
    ApiTimelineResponse,
    category_from_api,
    task_from_api,
)
from src.data.models import Task, TaskCategory, TaskSegment, TaskStatus, ensure_timestamp

logger = logging.getLogger(__name__)


class TaskLifecycle:
    """Owns the task list and the registered categories of one session."""

    def __init__(
        self,
        tasks: list[Task] | None = None,
        categories: list[TaskCategory] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.tasks: list[Task] = list(tasks or [])
        self.categories: list[TaskCategory] = list(categories or [])
        self._rng = rng

    @classmethod
    def from_api(
        cls,
        response: ApiTimelineResponse,
        categories: list[ApiTaskDefinition] | None = None,
        rng: random.Random | None = None,
    ) -> TaskLifecycle:
        """Hydrate from the backend's timeline payload.

        Raises InvalidTimestampError if a segment timestamp is malformed.
        """
        tasks = [task_from_api(t) for t in response.tasks]
        cats = [category_from_api(c) for c in categories or []]
        logger.debug(
            "Hydrated %d tasks and %d categories for %s",
            len(tasks), len(cats), response.date,
        )
        return cls(tasks=tasks, categories=cats, rng=rng)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_task(self, name: str) -> Task | None:
        for task in self.tasks:
            if task.name == name:
                return task
        return None

    def find_category(self, name: str) -> TaskCategory | None:
        for category in self.categories:
            if category.name == name:
                return category
        return None

    def has_category(self, name: str) -> bool:
        return self.find_category(name) is not None

    def running_tasks(self) -> list[Task]:
        return [t for t in self.tasks if t.status is TaskStatus.RUNNING]

    def is_running(self, name: str) -> bool:
        task = self.find_task(name)
        return task is not None and task.is_running

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def register_category(self, category: TaskCategory) -> TaskCategory:
        """Add a category unless the name is already registered."""
        existing = self.find_category(category.name)
        if existing is not None:
            return existing
        self.categories.append(category)
        return category

    def start_task(self, name: str, now: datetime) -> Task:
        """Start *name*, creating it on first use.

        An existing task gets a new open segment and goes back to RUNNING,
        even if it was already running. A new task takes its color from the
        allocator. Either way an unregistered name is registered as a
        category with the task's color.
        """
        ensure_timestamp(now, "now")

        task = self.find_task(name)
        if task is not None:
            task.segments.append(TaskSegment(start=now))
            task.status = TaskStatus.RUNNING
            self.register_category(TaskCategory(name=name, color=task.color))
            logger.info("Task '%s' restarted (%d segments)", name, len(task.segments))
            return task

        color = pick_color(name, self.categories, self.tasks, rng=self._rng)
        task = Task(
            name=name,
            color=color,
            status=TaskStatus.RUNNING,
            segments=[TaskSegment(start=now)],
        )
        self.tasks.append(task)
        self.register_category(TaskCategory(name=name, color=color))
        logger.info("Task '%s' started with color %s", name, color)
        return task

    def end_task(self, name: str, now: datetime) -> Task | None:
        """End *name*: close its open segment and mark it FINISHED.

        Returns None (no-op) when no such task exists. A task without an
        open segment keeps its segments and is only marked FINISHED.
        """
        ensure_timestamp(now, "now")

        task = self.find_task(name)
        if task is None:
            return None

        last = task.last_segment
        if last is not None and last.is_open:
            last.end = now
        task.status = TaskStatus.FINISHED
        logger.info("Task '%s' finished", name)
        return task
