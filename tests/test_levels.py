"""
tests/test_levels.py — Level Resolver
======================================

Pure calculation, no database.
"""

from __future__ import annotations

import pytest

from locova.constants import DEFAULT_LEVEL_TABLE, LEVELS
from locova.engine.levels import LevelInfo, LevelTable, LevelTableError


class TestResolve:
    @pytest.mark.parametrize(
        ("points", "name"),
        [
            (0, "Newbie"),
            (49, "Newbie"),
            (50, "Explorer"),
            (149, "Explorer"),
            (150, "Trendsetter"),
            (299, "Trendsetter"),
            (300, "Influencer"),
            (499, "Influencer"),
            (500, "Local Legend"),
            (10_000, "Local Legend"),
        ],
    )
    def test_boundaries(self, points, name):
        assert DEFAULT_LEVEL_TABLE.resolve(points).name == name

    def test_monotonic_over_range(self):
        """More points never resolve to a lower tier."""
        order = {lvl.name: i for i, lvl in enumerate(LEVELS)}
        previous = 0
        for points in range(0, 800):
            idx = order[DEFAULT_LEVEL_TABLE.resolve(points).name]
            assert idx >= previous
            previous = idx

    def test_negative_points_clamp_to_floor(self):
        assert DEFAULT_LEVEL_TABLE.resolve(-25).name == "Newbie"

    def test_single_tier_table(self):
        table = LevelTable([LevelInfo(0, "Only")])
        assert table.resolve(1_000).name == "Only"
        assert table.next_level(1_000) is None


class TestProgress:
    def test_next_level_and_gap(self):
        assert DEFAULT_LEVEL_TABLE.next_level(60).name == "Trendsetter"
        assert DEFAULT_LEVEL_TABLE.points_to_next(60) == 90

    def test_top_tier_has_no_next(self):
        assert DEFAULT_LEVEL_TABLE.next_level(900) is None
        assert DEFAULT_LEVEL_TABLE.points_to_next(900) is None

    def test_exact_threshold_moves_to_following_gap(self):
        assert DEFAULT_LEVEL_TABLE.points_to_next(50) == 100


class TestValidation:
    def test_empty_table_rejected(self):
        with pytest.raises(LevelTableError):
            LevelTable([])

    def test_missing_zero_floor_rejected(self):
        with pytest.raises(LevelTableError, match="threshold 0"):
            LevelTable([LevelInfo(10, "A"), LevelInfo(20, "B")])

    def test_non_ascending_rejected(self):
        with pytest.raises(LevelTableError, match="ascending"):
            LevelTable([LevelInfo(0, "A"), LevelInfo(50, "B"), LevelInfo(50, "C")])

    def test_error_is_a_value_error(self):
        assert issubclass(LevelTableError, ValueError)
