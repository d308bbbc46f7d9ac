"""Tests for src.core.hour_grid — projecting segments onto hour buckets."""

from datetime import datetime

import pytest

from src.core.hour_grid import hours_range, project_to_hours, total_minutes, tracked_minutes
from src.data.models import InvalidTimestampError, Task, TaskSegment, TaskStatus


def _at(hhmm: str, day: str = "2025-03-02") -> datetime:
    return datetime.fromisoformat(f"{day}T{hhmm}:00")


def _task(name, *segments, color="#3b82f6"):
    return Task(
        name=name,
        color=color,
        status=TaskStatus.FINISHED,
        segments=[TaskSegment(start=_at(s), end=_at(e) if e else None) for s, e in segments],
    )


def _non_empty(grid):
    return {h: bars for h, bars in grid.items() if bars}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_total_minutes(self):
        assert total_minutes(_at("00:00")) == 0
        assert total_minutes(_at("09:15")) == 555
        assert total_minutes(datetime(2025, 3, 2, 23, 59, 59)) == 1439

    def test_hours_range_default(self):
        assert hours_range() == list(range(24))

    def test_hours_range_custom(self):
        assert hours_range(6, 9) == [6, 7, 8]


# ---------------------------------------------------------------------------
# project_to_hours
# ---------------------------------------------------------------------------


class TestProjectToHours:
    def test_every_bucket_initialized(self):
        grid = project_to_hours([], now=_at("12:00"))
        assert list(grid) == list(range(24))
        assert all(bars == [] for bars in grid.values())

    def test_segment_inside_one_hour(self):
        grid = project_to_hours([_task("math", ("09:15", "09:45"))], now=_at("12:00"))
        bars = _non_empty(grid)
        assert list(bars) == [9]
        assert len(bars[9]) == 1
        bar = bars[9][0]
        assert bar.start_pct == pytest.approx(25)
        assert bar.width_pct == pytest.approx(50)
        assert bar.color == "#3b82f6"
        assert bar.name == "math"

    def test_segment_split_across_hours(self):
        grid = project_to_hours([_task("math", ("08:50", "10:10"))], now=_at("12:00"))
        bars = _non_empty(grid)
        assert list(bars) == [8, 9, 10]
        assert bars[8][0].start_pct == pytest.approx(83.333, abs=0.01)
        assert bars[8][0].width_pct == pytest.approx(16.667, abs=0.01)
        assert bars[9][0].start_pct == 0
        assert bars[9][0].width_pct == pytest.approx(100)
        assert bars[10][0].start_pct == 0
        assert bars[10][0].width_pct == pytest.approx(16.667, abs=0.01)

    def test_open_segment_runs_until_now(self):
        task = _task("math", ("09:00", None))
        bars = _non_empty(project_to_hours([task], now=_at("10:30")))
        assert list(bars) == [9, 10]
        assert bars[10][0].width_pct == pytest.approx(50)

    def test_open_segment_past_midnight_is_skipped(self):
        # Started 23:30 yesterday, now is 00:10: the clock-only interval is empty
        task = _task("late", ("23:30", None))
        grid = project_to_hours([task], now=_at("00:10", day="2025-03-03"))
        assert _non_empty(grid) == {}

    def test_no_negative_width_bars(self):
        tasks = [
            _task("a", ("23:50", "00:20")),
            _task("b", ("10:00", "09:00")),
            _task("c", ("22:00", None)),
        ]
        grid = project_to_hours(tasks, now=_at("01:00"))
        for bars in grid.values():
            for bar in bars:
                assert bar.width_pct > 0
                assert 0 <= bar.start_pct < 100
                assert bar.start_pct + bar.width_pct <= 100 + 1e-9

    def test_date_is_ignored(self):
        task = _task("math", ("09:00", "09:30"))
        task.segments[0] = TaskSegment(start=_at("09:00", "2024-01-01"), end=_at("09:30", "2024-01-01"))
        bars = _non_empty(project_to_hours([task], now=_at("12:00")))
        assert list(bars) == [9]

    def test_zero_length_segment_emits_nothing(self):
        grid = project_to_hours([_task("math", ("09:00", "09:00"))], now=_at("12:00"))
        assert _non_empty(grid) == {}

    def test_exact_hour_boundaries(self):
        bars = _non_empty(project_to_hours([_task("math", ("09:00", "10:00"))], now=_at("12:00")))
        assert list(bars) == [9]
        assert bars[9][0].start_pct == 0
        assert bars[9][0].width_pct == pytest.approx(100)

    def test_overlapping_tasks_keep_task_then_segment_order(self):
        tasks = [
            _task("a", ("09:00", "09:20"), ("09:40", "09:50"), color="#ef4444"),
            _task("b", ("09:10", "09:30"), color="#22c55e"),
        ]
        bars = project_to_hours(tasks, now=_at("12:00"))[9]
        assert [(b.name, round(b.start_pct)) for b in bars] == [("a", 0), ("a", 67), ("b", 17)]
        assert [b.color for b in bars] == ["#ef4444", "#ef4444", "#22c55e"]

    def test_clipped_to_custom_window(self):
        task = _task("sleep", ("05:30", "07:30"))
        grid = project_to_hours([task], 6, 22, now=_at("12:00"))
        assert list(grid) == list(range(6, 22))
        bars = _non_empty(grid)
        assert list(bars) == [6, 7]
        assert bars[6][0].start_pct == 0
        assert bars[6][0].width_pct == pytest.approx(100)

    def test_segment_fully_outside_window_is_skipped(self):
        grid = project_to_hours([_task("night", ("22:30", "23:30"))], 6, 22, now=_at("12:00"))
        assert _non_empty(grid) == {}

    def test_segment_ending_at_window_start_is_skipped(self):
        grid = project_to_hours([_task("early", ("05:00", "06:00"))], 6, 22, now=_at("12:00"))
        assert _non_empty(grid) == {}

    def test_invalid_window_raises(self):
        with pytest.raises(ValueError):
            project_to_hours([], 10, 10, now=_at("12:00"))
        with pytest.raises(ValueError):
            project_to_hours([], 0, 25, now=_at("12:00"))

    def test_invalid_now_raises(self):
        with pytest.raises(InvalidTimestampError):
            project_to_hours([], now=None)

    def test_invalid_segment_start_raises(self):
        task = Task(name="bad", color="#000000", segments=[TaskSegment(start="09:00")])
        with pytest.raises(InvalidTimestampError):
            project_to_hours([task], now=_at("12:00"))


class TestTrackedMinutes:
    def test_sums_segments_per_task(self):
        tasks = [
            _task("a", ("09:00", "09:30"), ("10:00", "10:15")),
            _task("b", ("11:00", None)),
        ]
        assert tracked_minutes(tasks, now=_at("11:20")) == {"a": 45, "b": 20}

    def test_backwards_clock_interval_counts_zero(self):
        assert tracked_minutes([_task("late", ("23:30", None))], now=_at("00:10")) == {"late": 0}
