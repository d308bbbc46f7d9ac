"""Hour-grid projector — pure business logic.

Splits task segments into per-hour bars for the visual timeline. Only the
time-of-day of each timestamp is used: a segment is always laid out on a
single nominal day's 0–1440 minute axis, whatever calendar date it has.
Callers pass only segments belonging to the displayed day.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
from datetime import datetime

from src.data.models import HourBar, Task, ensure_timestamp

logger = logging.getLogger(__name__)

DAY_START_HOUR = 0
DAY_END_HOUR = 24


def total_minutes(ts: datetime) -> int:
    """Minutes since midnight of *ts*'s time-of-day (seconds ignored)."""
    return ts.hour * 60 + ts.minute


def hours_range(
    day_start_hour: int = DAY_START_HOUR,
    day_end_hour: int = DAY_END_HOUR,
) -> list[int]:
    """Hour buckets shown on the grid, e.g. [0, 1, ..., 23]."""
    return list(range(day_start_hour, day_end_hour))


def project_to_hours(
    tasks: list[Task],
    day_start_hour: int = DAY_START_HOUR,
    day_end_hour: int = DAY_END_HOUR,
    *,
    now: datetime,
) -> dict[int, list[HourBar]]:
    """Project every task segment onto hour buckets.

    Open segments run until *now*. Bars in a bucket keep task order, then
    segment order; overlapping bars are not merged.

    Raises:
        ValueError: if the hour window is not within 0..24 with start < end.
        InvalidTimestampError: if *now* or a segment bound is not a datetime.
    """
    if not 0 <= day_start_hour < day_end_hour <= 24:
        raise ValueError(f"Invalid day window {day_start_hour}-{day_end_hour}")
    ensure_timestamp(now, "now")

    min_total = day_start_hour * 60
    max_total = day_end_hour * 60
    hour_bars: dict[int, list[HourBar]] = {h: [] for h in hours_range(day_start_hour, day_end_hour)}

    for task in tasks:
        for seg in task.segments:
            start_total = total_minutes(ensure_timestamp(seg.start, "segment start"))
            end_ts = seg.end if seg.end is not None else now
            end_total = total_minutes(ensure_timestamp(end_ts, "segment end"))

            # Entirely outside the window
            if end_total <= min_total or start_total >= max_total:
                continue

            start_total = max(start_total, min_total)
            end_total = min(end_total, max_total)

            for h in hours_range(day_start_hour, day_end_hour):
                hour_start = h * 60
                seg_start = max(start_total, hour_start)
                seg_end = min(end_total, hour_start + 60)
                if seg_end <= seg_start:
                    continue

                hour_bars[h].append(HourBar(
                    color=task.color,
                    start_pct=(seg_start - hour_start) / 60 * 100,
                    width_pct=(seg_end - seg_start) / 60 * 100,
                    name=task.name,
                ))

    return hour_bars


def tracked_minutes(
    tasks: list[Task],
    *,
    now: datetime,
) -> dict[str, int]:
    """Time-of-day minutes tracked per task name (open segments end at now).

    Segments whose end falls before their start on the clock count as zero,
    matching how the grid draws them.
    """
    ensure_timestamp(now, "now")
    totals: dict[str, int] = {}
    for task in tasks:
        minutes = 0
        for seg in task.segments:
            end_ts = seg.end if seg.end is not None else now
            minutes += max(0, total_minutes(end_ts) - total_minutes(seg.start))
        totals[task.name] = minutes
    return totals
