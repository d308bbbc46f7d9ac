"""Tests for src.core.palette — category color allocation."""

import random

from src.core.palette import (
    COLOR_POOL,
    available_colors,
    default_category_color,
    pick_color,
    used_colors,
)
from src.data.models import Task, TaskCategory


def _cats(*pairs):
    return [TaskCategory(name=n, color=c) for n, c in pairs]


class TestColorPool:
    def test_has_at_least_24_distinct_colors(self):
        assert len(set(COLOR_POOL)) == len(COLOR_POOL)
        assert len(COLOR_POOL) >= 24

    def test_colors_are_hex_rgb(self):
        for color in COLOR_POOL:
            assert color.startswith("#") and len(color) == 7
            int(color[1:], 16)


class TestPickColor:
    def test_registered_category_keeps_its_color(self):
        cats = _cats(("math", "#123456"))
        assert pick_color("math", cats, []) == "#123456"

    def test_registered_color_ignores_active_tasks(self):
        cats = _cats(("math", COLOR_POOL[0]))
        tasks = [Task(name=f"t{i}", color=c) for i, c in enumerate(COLOR_POOL)]
        for seed in range(10):
            assert pick_color("math", cats, tasks, rng=random.Random(seed)) == COLOR_POOL[0]

    def test_name_match_is_case_sensitive(self):
        cats = _cats(("Math", COLOR_POOL[0]))
        for seed in range(20):
            assert pick_color("math", cats, [], rng=random.Random(seed)) != COLOR_POOL[0]

    def test_never_reuses_while_capacity_remains(self):
        cats = _cats(*[(f"c{i}", c) for i, c in enumerate(COLOR_POOL[:10])])
        tasks = [Task(name=f"t{i}", color=c) for i, c in enumerate(COLOR_POOL[10:20])]
        used = used_colors(cats, tasks)
        for seed in range(50):
            color = pick_color("new", cats, tasks, rng=random.Random(seed))
            assert color in COLOR_POOL
            assert color not in used

    def test_single_free_color_is_chosen(self):
        tasks = [Task(name=f"t{i}", color=c) for i, c in enumerate(COLOR_POOL[:-1])]
        for seed in range(10):
            assert pick_color("new", [], tasks, rng=random.Random(seed)) == COLOR_POOL[-1]

    def test_exhausted_palette_falls_back_to_any_palette_color(self):
        cats = _cats(*[(f"c{i}", c) for i, c in enumerate(COLOR_POOL)])
        color = pick_color("new", cats, [], rng=random.Random(0))
        assert color in COLOR_POOL

    def test_uses_module_random_by_default(self):
        assert pick_color("new", [], []) in COLOR_POOL

    def test_choice_varies_across_seeds(self):
        picks = {pick_color("new", [], [], rng=random.Random(seed)) for seed in range(30)}
        assert len(picks) > 1


class TestAvailableColors:
    def test_excludes_registered_colors_in_palette_order(self):
        cats = _cats(("a", COLOR_POOL[0]), ("b", COLOR_POOL[2]))
        free = available_colors(cats)
        assert free[0] == COLOR_POOL[1]
        assert COLOR_POOL[0] not in free and COLOR_POOL[2] not in free
        assert len(free) == len(COLOR_POOL) - 2

    def test_default_category_color_is_first_free(self):
        cats = _cats(("a", COLOR_POOL[0]))
        assert default_category_color(cats) == COLOR_POOL[1]

    def test_default_category_color_when_exhausted(self):
        cats = _cats(*[(f"c{i}", c) for i, c in enumerate(COLOR_POOL)])
        assert default_category_color(cats, rng=random.Random(1)) in COLOR_POOL
