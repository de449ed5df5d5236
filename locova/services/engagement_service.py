"""
locova.services.engagement_service — Likes, saves, comments & snapshots
========================================================================

Toggles follow insert-if-absent / delete-if-present against the join
tables and report the resulting state.  Batch reads feed the pure
snapshot fold in :mod:`locova.engine.snapshot`.

Nothing here awards points; see :mod:`locova.services.reward_service`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from locova.constants import MAX_COMMENT_LENGTH
from locova.database.models import (
    CommentLike,
    Trend,
    TrendComment,
    TrendLike,
    TrendSave,
)
from locova.engine.changefeed import notify_before_commit
from locova.engine.events import ChangeEvent, ChangeOp, ToggleResult
from locova.engine.snapshot import EngagementRow, EngagementSnapshot, fold_rows
from locova.services.profile_service import get_or_create_profile

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


class EntityNotFoundError(LookupError):
    """The trend or comment being engaged with does not exist."""


# ---------------------------------------------------------------------------
# Toggles
# ---------------------------------------------------------------------------
def _toggle(
    session: Session,
    *,
    row_model: type,
    key: dict[str, str],
    counter_model: type | None,
    counter_id: str,
    table: str,
    entity_id: str,
    user_id: str,
) -> ToggleResult:
    """Flip one (entity, user) join row and keep the denormalized counter in step."""
    existing = session.get(row_model, tuple(key.values()))
    if existing is not None:
        session.delete(existing)
        if counter_model is not None:
            session.execute(
                update(counter_model)
                .where(counter_model.id == counter_id, counter_model.like_count > 0)
                .values(like_count=counter_model.like_count - 1)
            )
        notify_before_commit(session, ChangeEvent(table, ChangeOp.DELETE, entity_id, user_id))
        session.commit()
        return ToggleResult.DEACTIVATED

    try:
        with session.begin_nested():  # SAVEPOINT
            session.add(row_model(**key))
            session.flush()
    except IntegrityError:
        # A concurrent tap from the same user inserted the row first.
        session.commit()
        logger.debug("Concurrent insert on %s for %s/%s", table, entity_id, user_id)
        return ToggleResult.ACTIVATED

    if counter_model is not None:
        session.execute(
            update(counter_model)
            .where(counter_model.id == counter_id)
            .values(like_count=counter_model.like_count + 1)
        )
    notify_before_commit(session, ChangeEvent(table, ChangeOp.INSERT, entity_id, user_id))
    session.commit()
    return ToggleResult.ACTIVATED


def toggle_trend_like(engine: Engine, trend_id: str, user_id: str) -> ToggleResult:
    """Like or unlike a trend."""
    with Session(engine) as session:
        if session.get(Trend, trend_id) is None:
            raise EntityNotFoundError(f"Trend {trend_id} not found")
        get_or_create_profile(session, user_id)
        return _toggle(
            session,
            row_model=TrendLike,
            key={"trend_id": trend_id, "user_id": user_id},
            counter_model=Trend,
            counter_id=trend_id,
            table="trend_likes",
            entity_id=trend_id,
            user_id=user_id,
        )


def toggle_comment_like(engine: Engine, comment_id: str, user_id: str) -> ToggleResult:
    """Like or unlike a comment."""
    with Session(engine) as session:
        if session.get(TrendComment, comment_id) is None:
            raise EntityNotFoundError(f"Comment {comment_id} not found")
        get_or_create_profile(session, user_id)
        return _toggle(
            session,
            row_model=CommentLike,
            key={"comment_id": comment_id, "user_id": user_id},
            counter_model=TrendComment,
            counter_id=comment_id,
            table="comment_likes",
            entity_id=comment_id,
            user_id=user_id,
        )


def toggle_trend_save(engine: Engine, trend_id: str, user_id: str) -> ToggleResult:
    """Save or unsave a trend.  Saves carry no denormalized counter."""
    with Session(engine) as session:
        if session.get(Trend, trend_id) is None:
            raise EntityNotFoundError(f"Trend {trend_id} not found")
        get_or_create_profile(session, user_id)
        return _toggle(
            session,
            row_model=TrendSave,
            key={"trend_id": trend_id, "user_id": user_id},
            counter_model=None,
            counter_id=trend_id,
            table="trend_saves",
            entity_id=trend_id,
            user_id=user_id,
        )


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------
def add_comment(engine: Engine, trend_id: str, user_id: str, body: str) -> TrendComment:
    """Insert a comment and bump the trend's comment counter.

    Raises ValueError for an empty or over-long body and
    :class:`EntityNotFoundError` for an unknown trend.
    """
    text_body = (body or "").strip()
    if not text_body:
        raise ValueError("Comment must not be empty")
    if len(text_body) > MAX_COMMENT_LENGTH:
        raise ValueError(f"Comment must be at most {MAX_COMMENT_LENGTH} characters")

    with Session(engine, expire_on_commit=False) as session:
        if session.get(Trend, trend_id) is None:
            raise EntityNotFoundError(f"Trend {trend_id} not found")
        get_or_create_profile(session, user_id)
        comment = TrendComment(trend_id=trend_id, user_id=user_id, comment=text_body)
        session.add(comment)
        session.execute(
            update(Trend)
            .where(Trend.id == trend_id)
            .values(comment_count=Trend.comment_count + 1)
        )
        session.flush()
        notify_before_commit(
            session, ChangeEvent("trend_comments", ChangeOp.INSERT, trend_id, user_id)
        )
        session.commit()
        session.refresh(comment)
        session.expunge(comment)
        return comment


def list_comments(engine: Engine, trend_id: str) -> list[TrendComment]:
    """Comments on *trend_id*, oldest first."""
    with Session(engine) as session:
        rows = session.scalars(
            select(TrendComment)
            .where(TrendComment.trend_id == trend_id)
            .order_by(TrendComment.created_at, TrendComment.id)
        ).all()
        for row in rows:
            session.expunge(row)
        return list(rows)


def comment_dict(comment: TrendComment, snapshot: EngagementSnapshot | None = None) -> dict:
    counts = snapshot.counts_for(comment.id) if snapshot else None
    return {
        "id": comment.id,
        "trend_id": comment.trend_id,
        "user_id": comment.user_id,
        "comment": comment.comment,
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
        "like_count": counts.like_count if counts else comment.like_count,
        "liked_by_current_user": snapshot.is_liked(comment.id) if snapshot else False,
    }


# ---------------------------------------------------------------------------
# Batch reads
# ---------------------------------------------------------------------------
def batch_read_likes(session: Session, trend_ids: set[str]) -> list[EngagementRow]:
    rows = session.execute(
        select(TrendLike.trend_id, TrendLike.user_id)
        .where(TrendLike.trend_id.in_(trend_ids))
    ).all()
    return [(r.trend_id, r.user_id) for r in rows]


def batch_read_comments(session: Session, trend_ids: set[str]) -> list[EngagementRow]:
    rows = session.execute(
        select(TrendComment.trend_id, TrendComment.user_id)
        .where(TrendComment.trend_id.in_(trend_ids))
    ).all()
    return [(r.trend_id, r.user_id) for r in rows]


def batch_read_saves(session: Session, trend_ids: set[str]) -> list[EngagementRow]:
    rows = session.execute(
        select(TrendSave.trend_id, TrendSave.user_id)
        .where(TrendSave.trend_id.in_(trend_ids))
    ).all()
    return [(r.trend_id, r.user_id) for r in rows]


def batch_read_comment_likes(session: Session, comment_ids: set[str]) -> list[EngagementRow]:
    rows = session.execute(
        select(CommentLike.comment_id, CommentLike.user_id)
        .where(CommentLike.comment_id.in_(comment_ids))
    ).all()
    return [(r.comment_id, r.user_id) for r in rows]


def _normalize_ids(entity_ids: Iterable[str], max_batch: int | None) -> set[str]:
    ids = {i for i in entity_ids if i}
    if max_batch is not None and len(ids) > max_batch:
        raise ValueError(f"Snapshot batch of {len(ids)} ids exceeds limit {max_batch}")
    return ids


def build_snapshot(
    engine: Engine,
    trend_ids: Iterable[str],
    current_user_id: str | None = None,
    *,
    max_batch: int | None = None,
) -> EngagementSnapshot:
    """Aggregate likes, comments and saves for a batch of trends.

    An empty batch returns an empty snapshot without touching the
    database.  If any of the three reads fails the error propagates and
    no partial snapshot is produced.
    """
    ids = _normalize_ids(trend_ids, max_batch)
    if not ids:
        return EngagementSnapshot.empty()

    with Session(engine) as session:
        likes = batch_read_likes(session, ids)
        comments = batch_read_comments(session, ids)
        saves = batch_read_saves(session, ids)

    return fold_rows(
        ids,
        likes=likes,
        comments=comments,
        saves=saves,
        current_user_id=current_user_id,
    )


def build_comment_snapshot(
    engine: Engine,
    comment_ids: Iterable[str],
    current_user_id: str | None = None,
    *,
    max_batch: int | None = None,
) -> EngagementSnapshot:
    """Like counts and liked-by-me membership for a batch of comments."""
    ids = _normalize_ids(comment_ids, max_batch)
    if not ids:
        return EngagementSnapshot.empty()

    with Session(engine) as session:
        likes = batch_read_comment_likes(session, ids)

    return fold_rows(ids, likes=likes, current_user_id=current_user_id)
