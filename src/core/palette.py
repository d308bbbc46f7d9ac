"""Category color allocator — pure business logic.

Assigns display colors to task categories. A registered category keeps its
color forever; a newly referenced name gets a random color that nobody is
using yet, and only once the palette is saturated may colors repeat.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
import random
from typing import Iterable

from src.data.models import Task, TaskCategory

logger = logging.getLogger(__name__)

# Ordered around the color wheel, then lighter variants.
COLOR_POOL: tuple[str, ...] = (
    "#ef4444",
    "#f97316",
    "#f59e0b",
    "#eab308",
    "#84cc16",
    "#22c55e",
    "#10b981",
    "#14b8a6",
    "#06b6d4",
    "#0ea5e9",
    "#3b82f6",
    "#6366f1",
    "#8b5cf6",
    "#a855f7",
    "#d946ef",
    "#ec4899",
    "#f43f5e",
    "#fb7185",
    "#f97373",
    "#facc15",
    "#4ade80",
    "#34d399",
    "#2dd4bf",
    "#38bdf8",
    "#60a5fa",
    "#818cf8",
    "#a5b4fc",
    "#f9a8d4",
    "#fbbf24",
)


def used_colors(
    known_categories: Iterable[TaskCategory],
    active_tasks: Iterable[Task] = (),
) -> set[str]:
    """Colors taken by registered categories or tasks on the timeline."""
    used = {c.color for c in known_categories}
    used.update(t.color for t in active_tasks)
    return used


def pick_color(
    task_name: str,
    known_categories: list[TaskCategory],
    active_tasks: list[Task],
    rng: random.Random | None = None,
) -> str:
    """Choose a display color for a task name.

    Args:
        task_name: Name being started (exact, case-sensitive match).
        known_categories: Registered categories.
        active_tasks: Tasks already on the timeline.
        rng: Random source; defaults to the module-level ``random``.

    Returns:
        The registered color when the name is a known category, otherwise a
        random unused palette color, or any palette color once all are taken.
    """
    for category in known_categories:
        if category.name == task_name:
            return category.color

    chooser = rng or random
    used = used_colors(known_categories, active_tasks)
    candidates = [c for c in COLOR_POOL if c not in used]
    if not candidates:
        logger.warning(
            "Color palette exhausted (%d in use); '%s' may share a color",
            len(used), task_name,
        )
        return chooser.choice(COLOR_POOL)
    return chooser.choice(candidates)


def available_colors(known_categories: list[TaskCategory]) -> list[str]:
    """Palette colors not yet claimed by a registered category, in order."""
    used = used_colors(known_categories)
    return [c for c in COLOR_POOL if c not in used]


def default_category_color(
    known_categories: list[TaskCategory],
    rng: random.Random | None = None,
) -> str:
    """Color for an explicit registration when the user did not pick one.

    First free palette color, or a random one if the palette is used up.
    """
    free = available_colors(known_categories)
    if free:
        return free[0]
    return (rng or random).choice(COLOR_POOL)
