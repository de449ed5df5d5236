"""
locova.api.routes.engagement — Likes, saves, comments and snapshots
====================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import Engine

from locova.api.deps import get_config, get_current_user_id, get_engine, get_optional_user_id
from locova.config import LocovaConfig
from locova.services import engagement_service, reward_service
from locova.services.engagement_service import EntityNotFoundError
from locova.services.reward_service import EngagementResult, RewardResult

router = APIRouter(tags=["engagement"])


class CommentCreate(BaseModel):
    comment: str


class SnapshotRequest(BaseModel):
    trend_ids: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _reward_dict(reward: RewardResult | None) -> dict | None:
    if reward is None:
        return None
    return {
        "outcome": reward.outcome.value,
        "points_awarded": reward.points_awarded,
        "new_total": reward.new_total,
    }


def _engagement_dict(result: EngagementResult) -> dict:
    return {"state": result.state.value, "reward": _reward_dict(result.reward)}


def _not_found(exc: EntityNotFoundError) -> HTTPException:
    return HTTPException(status.HTTP_404_NOT_FOUND, str(exc))


# ---------------------------------------------------------------------------
# Trend toggles
# ---------------------------------------------------------------------------
@router.post("/trends/{trend_id}/like")
def like_trend(
    trend_id: str,
    engine: Engine = Depends(get_engine),
    cfg: LocovaConfig = Depends(get_config),
    user_id: str = Depends(get_current_user_id),
):
    try:
        result = reward_service.like_trend(engine, trend_id, user_id, cfg.like_points)
    except EntityNotFoundError as exc:
        raise _not_found(exc)
    return _engagement_dict(result)


@router.post("/trends/{trend_id}/save")
def save_trend(
    trend_id: str,
    engine: Engine = Depends(get_engine),
    user_id: str = Depends(get_current_user_id),
):
    try:
        state = engagement_service.toggle_trend_save(engine, trend_id, user_id)
    except EntityNotFoundError as exc:
        raise _not_found(exc)
    return {"state": state.value}


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------
@router.get("/trends/{trend_id}/comments")
def list_comments(
    trend_id: str,
    engine: Engine = Depends(get_engine),
    user_id: str | None = Depends(get_optional_user_id),
):
    comments = engagement_service.list_comments(engine, trend_id)
    snapshot = engagement_service.build_comment_snapshot(
        engine, [c.id for c in comments], user_id
    )
    return {"comments": [engagement_service.comment_dict(c, snapshot) for c in comments]}


@router.post("/trends/{trend_id}/comments", status_code=status.HTTP_201_CREATED)
def add_comment(
    trend_id: str,
    body: CommentCreate,
    engine: Engine = Depends(get_engine),
    cfg: LocovaConfig = Depends(get_config),
    user_id: str = Depends(get_current_user_id),
):
    try:
        comment, reward = reward_service.comment_on_trend(
            engine, trend_id, user_id, body.comment, cfg.comment_points
        )
    except EntityNotFoundError as exc:
        raise _not_found(exc)
    except ValueError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc))
    return {
        "comment": engagement_service.comment_dict(comment),
        "reward": _reward_dict(reward),
    }


@router.post("/comments/{comment_id}/like")
def like_comment(
    comment_id: str,
    engine: Engine = Depends(get_engine),
    cfg: LocovaConfig = Depends(get_config),
    user_id: str = Depends(get_current_user_id),
):
    try:
        result = reward_service.like_comment(engine, comment_id, user_id, cfg.like_points)
    except EntityNotFoundError as exc:
        raise _not_found(exc)
    return _engagement_dict(result)


# ---------------------------------------------------------------------------
# POST /engagement/snapshot
# ---------------------------------------------------------------------------
@router.post("/engagement/snapshot")
def engagement_snapshot(
    body: SnapshotRequest,
    engine: Engine = Depends(get_engine),
    cfg: LocovaConfig = Depends(get_config),
    user_id: str | None = Depends(get_optional_user_id),
):
    """Counts and membership for a batch of rendered trend ids."""
    try:
        snapshot = engagement_service.build_snapshot(
            engine, body.trend_ids, user_id, max_batch=cfg.snapshot_batch_limit
        )
    except ValueError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc))
    return {"snapshot": snapshot.to_dict()}
