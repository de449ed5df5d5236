"""
locova.engine.leaderboard — Leaderboard assembly
=================================================

Takes a top-N window already ranked by the backend and decorates it for
display.  When the current user is outside the window, their rank is
*derived* from the window alone::

    rank = 1 + count(window entries with strictly more points)

This is a lower bound bounded by what was fetched: anyone ranked below
the window but above the user is invisible here.  No rank is ever
invented beyond that derivation.
"""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass, field

from locova.constants import RANK_BADGES

__all__ = [
    "LeaderboardEntry",
    "LeaderboardRow",
    "LeaderboardScope",
    "LeaderboardView",
    "approximate_rank",
    "assemble_leaderboard",
]


class LeaderboardScope(enum.StrEnum):
    GLOBAL = "global"
    RADIUS = "radius"


@dataclass(frozen=True, slots=True)
class LeaderboardRow:
    """One ranked row as returned by a rank query."""

    user_id: str
    points: int
    display_name: str | None = None
    avatar_url: str | None = None


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    rank: int
    user_id: str
    points: int
    display_name: str
    avatar_url: str | None
    badge: str | None
    is_current_user: bool


@dataclass(frozen=True)
class LeaderboardView:
    scope: LeaderboardScope
    entries: list[LeaderboardEntry] = field(default_factory=list)
    current_user_in_window: bool = False
    # Only set when the user is outside the window; approximate.
    current_user_rank: int | None = None
    current_user_points: int | None = None

    def to_dict(self) -> dict:
        return {
            "scope": self.scope.value,
            "entries": [
                {
                    "rank": e.rank,
                    "user_id": e.user_id,
                    "points": e.points,
                    "display_name": e.display_name,
                    "avatar_url": e.avatar_url,
                    "badge": e.badge,
                    "is_current_user": e.is_current_user,
                }
                for e in self.entries
            ],
            "current_user_in_window": self.current_user_in_window,
            "current_user_rank": self.current_user_rank,
            "current_user_rank_is_approximate": self.current_user_rank is not None,
            "current_user_points": self.current_user_points,
        }


def approximate_rank(window: Sequence[LeaderboardRow], points: int) -> int:
    """Rank of a user with *points* relative to the fetched *window* only."""
    return 1 + sum(1 for row in window if row.points > points)


def assemble_leaderboard(
    rows: Sequence[LeaderboardRow],
    *,
    scope: LeaderboardScope = LeaderboardScope.GLOBAL,
    current_user_id: str | None = None,
    current_user_points: int | None = None,
) -> LeaderboardView:
    """Build the display view from a ranked window.

    The window order is kept as given.  A derived rank is only produced
    when the current user is signed in, absent from the window, and
    their own point total is known.
    """
    entries: list[LeaderboardEntry] = []
    in_window = False
    for idx, row in enumerate(rows):
        is_me = current_user_id is not None and row.user_id == current_user_id
        in_window = in_window or is_me
        entries.append(LeaderboardEntry(
            rank=idx + 1,
            user_id=row.user_id,
            points=row.points,
            display_name=row.display_name or "Anonymous",
            avatar_url=row.avatar_url,
            badge=RANK_BADGES[idx] if idx < len(RANK_BADGES) else None,
            is_current_user=is_me,
        ))

    derived: int | None = None
    if current_user_id is not None and not in_window and current_user_points is not None:
        derived = approximate_rank(rows, current_user_points)

    return LeaderboardView(
        scope=scope,
        entries=entries,
        current_user_in_window=in_window,
        current_user_rank=derived,
        current_user_points=current_user_points,
    )
