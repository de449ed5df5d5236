"""
locova.engine.snapshot — Engagement Snapshot folding
=====================================================

Turns raw like / comment / save rows for a batch of entity ids into
per-id counters plus the current user's "liked" and "saved" membership
sets.  The snapshot is derived, never persisted: it is rebuilt from the
rows each time and replaced wholesale.

Pure calculation — the row reads live in
:mod:`locova.services.engagement_service`.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

__all__ = ["EngagementCounts", "EngagementSnapshot", "EngagementRow", "fold_rows"]

# (entity_id, user_id): the only two columns the fold needs
EngagementRow = tuple[str, str]


@dataclass(frozen=True, slots=True)
class EngagementCounts:
    like_count: int = 0
    comment_count: int = 0
    save_count: int = 0


@dataclass(frozen=True)
class EngagementSnapshot:
    """Point-in-time engagement view over a batch of entities."""

    counts: dict[str, EngagementCounts] = field(default_factory=dict)
    liked_by_me: frozenset[str] = frozenset()
    saved_by_me: frozenset[str] = frozenset()

    @classmethod
    def empty(cls) -> EngagementSnapshot:
        return cls()

    def counts_for(self, entity_id: str) -> EngagementCounts:
        return self.counts.get(entity_id, EngagementCounts())

    def is_liked(self, entity_id: str) -> bool:
        return entity_id in self.liked_by_me

    def is_saved(self, entity_id: str) -> bool:
        return entity_id in self.saved_by_me

    @property
    def entity_ids(self) -> frozenset[str]:
        return frozenset(self.counts)

    def to_dict(self) -> dict:
        return {
            entity_id: {
                "like_count": c.like_count,
                "comment_count": c.comment_count,
                "save_count": c.save_count,
                "liked_by_me": entity_id in self.liked_by_me,
                "saved_by_me": entity_id in self.saved_by_me,
            }
            for entity_id, c in self.counts.items()
        }


def fold_rows(
    entity_ids: Iterable[str],
    *,
    likes: Iterable[EngagementRow] = (),
    comments: Iterable[EngagementRow] = (),
    saves: Iterable[EngagementRow] = (),
    current_user_id: str | None = None,
) -> EngagementSnapshot:
    """Fold row batches into an :class:`EngagementSnapshot`.

    Every requested id gets an entry (zeros when it has no rows).  Rows
    for ids outside the batch are ignored.  Membership sets are only
    populated when *current_user_id* is given.
    """
    ids = set(entity_ids)
    like_n: dict[str, int] = dict.fromkeys(ids, 0)
    comment_n: dict[str, int] = dict.fromkeys(ids, 0)
    save_n: dict[str, int] = dict.fromkeys(ids, 0)
    liked: set[str] = set()
    saved: set[str] = set()

    for entity_id, user_id in likes:
        if entity_id not in ids:
            continue
        like_n[entity_id] += 1
        if current_user_id is not None and user_id == current_user_id:
            liked.add(entity_id)

    for entity_id, _user_id in comments:
        if entity_id in ids:
            comment_n[entity_id] += 1

    for entity_id, user_id in saves:
        if entity_id not in ids:
            continue
        save_n[entity_id] += 1
        if current_user_id is not None and user_id == current_user_id:
            saved.add(entity_id)

    counts = {
        entity_id: EngagementCounts(
            like_count=like_n[entity_id],
            comment_count=comment_n[entity_id],
            save_count=save_n[entity_id],
        )
        for entity_id in ids
    }
    return EngagementSnapshot(
        counts=counts,
        liked_by_me=frozenset(liked),
        saved_by_me=frozenset(saved),
    )
