"""
locova.engine.levels — Points → Level Tier Resolver
====================================================

A level table is an ordered tuple of ``(threshold, name)`` tiers,
ascending by threshold, whose first tier sits at zero.  Resolution
returns the last tier whose threshold is at or below the point total.

Pure calculation — no database I/O.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

__all__ = ["LevelInfo", "LevelTable", "LevelTableError"]


class LevelTableError(ValueError):
    """Raised when a level table is empty, floorless or out of order."""


@dataclass(frozen=True, slots=True)
class LevelInfo:
    """One named tier of the gamification ladder."""

    threshold: int
    name: str
    emoji: str = ""


class LevelTable:
    """Validated, immutable level ladder.

    Construction fails unless the table is non-empty, starts with a
    zero-threshold floor and is strictly ascending by threshold.
    """

    def __init__(self, levels: Iterable[LevelInfo]) -> None:
        tiers = tuple(levels)
        if not tiers:
            raise LevelTableError("Level table must contain at least one tier")
        if tiers[0].threshold != 0:
            raise LevelTableError(
                f"Level table must start at threshold 0, got {tiers[0].threshold}"
            )
        for prev, cur in zip(tiers, tiers[1:]):
            if cur.threshold <= prev.threshold:
                raise LevelTableError(
                    f"Level thresholds must be strictly ascending: "
                    f"{prev.name}={prev.threshold} then {cur.name}={cur.threshold}"
                )
        self._tiers = tiers

    @property
    def tiers(self) -> tuple[LevelInfo, ...]:
        return self._tiers

    def resolve(self, points: int) -> LevelInfo:
        """Return the highest tier whose threshold is ≤ *points*.

        Negative totals are treated as zero.
        """
        points = max(int(points), 0)
        level = self._tiers[0]
        for info in self._tiers:
            if points >= info.threshold:
                level = info
            else:
                break
        return level

    def next_level(self, points: int) -> LevelInfo | None:
        """Return the tier after the resolved one, or None at the top."""
        current = self.resolve(points)
        idx = self._tiers.index(current)
        if idx + 1 < len(self._tiers):
            return self._tiers[idx + 1]
        return None

    def points_to_next(self, points: int) -> int | None:
        """Points still needed to reach the next tier (None at the top)."""
        nxt = self.next_level(points)
        if nxt is None:
            return None
        return nxt.threshold - max(int(points), 0)

    def __len__(self) -> int:
        return len(self._tiers)

    def __repr__(self) -> str:
        names = ", ".join(f"{t.name}@{t.threshold}" for t in self._tiers)
        return f"<LevelTable {names}>"
