"""
locova.constants — Shared Constants
====================================

Single source of truth for the level table, default point amounts and
trend category suggestions.  Import from here instead of duplicating in
services and routes.
"""

from __future__ import annotations

from locova.engine.levels import LevelInfo, LevelTable

# ---------------------------------------------------------------------------
# Level tiers, ascending by threshold, zero floor first
# ---------------------------------------------------------------------------
LEVELS: tuple[LevelInfo, ...] = (
    LevelInfo(threshold=0, name="Newbie", emoji="\U0001f9e2"),          # 🧢
    LevelInfo(threshold=50, name="Explorer", emoji="\U0001f392"),       # 🎒
    LevelInfo(threshold=150, name="Trendsetter", emoji="\U0001f525"),   # 🔥
    LevelInfo(threshold=300, name="Influencer", emoji="\U0001f4f8"),    # 📸
    LevelInfo(threshold=500, name="Local Legend", emoji="\U0001f3c6"),  # 🏆
)

DEFAULT_LEVEL_TABLE = LevelTable(LEVELS)

# ---------------------------------------------------------------------------
# Point awards
# ---------------------------------------------------------------------------
DEFAULT_SUBMIT_POINTS = 10
DEFAULT_LIKE_POINTS = 2
DEFAULT_COMMENT_POINTS = 3

# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------
CATEGORY_SUGGESTIONS: tuple[str, ...] = ("Food", "Event", "Place")

MAX_TITLE_LENGTH = 120
MAX_CATEGORY_LENGTH = 40
MAX_LOCATION_LENGTH = 120
MAX_COMMENT_LENGTH = 1000

RANK_BADGES: list[str] = ["\U0001f947", "\U0001f948", "\U0001f949"]  # 🥇🥈🥉
