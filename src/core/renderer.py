"""
Cogno Timeline — Text renderer.

Draws the hour grid as monospace strips for chat surfaces that can't show
colored bars: one row per bar, a colored square where the bar covers the
hour, and the task name at the end.
"""

from __future__ import annotations

import math

from src.data.models import HourBar

_EMPTY_CELL = "⬜"

# Reference RGB for each square emoji; a task color is drawn with the closest.
_SWATCHES: dict[str, tuple[int, int, int]] = {
    "🟥": (239, 68, 68),
    "🟧": (249, 115, 22),
    "🟨": (234, 179, 8),
    "🟩": (34, 197, 94),
    "🟦": (59, 130, 246),
    "🟪": (168, 85, 247),
    "🟫": (161, 98, 7),
}


def _hex_to_rgb(color: str) -> tuple[int, int, int] | None:
    raw = color.lstrip("#")
    if len(raw) != 6:
        return None
    try:
        return int(raw[0:2], 16), int(raw[2:4], 16), int(raw[4:6], 16)
    except ValueError:
        return None


def swatch_for(color: str) -> str:
    """Closest square emoji for a hex color (⬛ if it can't be parsed)."""
    rgb = _hex_to_rgb(color)
    if rgb is None:
        return "⬛"
    return min(
        _SWATCHES,
        key=lambda s: sum((a - b) ** 2 for a, b in zip(rgb, _SWATCHES[s])),
    )


def bar_strip(bar: HourBar, width: int = 12) -> str:
    """Render one bar as *width* cells; any non-empty bar fills at least one."""
    first = min(int(bar.start_pct / 100 * width), width - 1)
    last = math.ceil(round((bar.start_pct + bar.width_pct) / 100 * width, 6))
    last = max(first + 1, min(last, width))
    fill = swatch_for(bar.color)
    return _EMPTY_CELL * first + fill * (last - first) + _EMPTY_CELL * (width - last)


def format_duration(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    if hours and mins:
        return f"{hours}h {mins}m"
    if hours:
        return f"{hours}h"
    return f"{mins}m"


def render_hour_grid(hour_bars: dict[int, list[HourBar]], width: int = 12) -> str:
    """Render the non-empty hours of a projected grid."""
    lines: list[str] = []
    for hour in sorted(hour_bars):
        for idx, bar in enumerate(hour_bars[hour]):
            label = f"{hour:02d}" if idx == 0 else "  "
            lines.append(f"{label} {bar_strip(bar, width)} {bar.name}")

    if not lines:
        return "No tracked time yet."
    return "\n".join(lines)


def render_totals(minutes_by_task: dict[str, int]) -> str:
    """One line per task with its tracked time, longest first."""
    ranked = sorted(minutes_by_task.items(), key=lambda kv: (-kv[1], kv[0]))
    return "\n".join(f"• {name}: {format_duration(mins)}" for name, mins in ranked)
