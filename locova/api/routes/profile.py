"""
locova.api.routes.profile — The caller's profile and the level table
=====================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import Engine

from locova.api.deps import get_current_user_id, get_engine
from locova.constants import DEFAULT_LEVEL_TABLE
from locova.services import profile_service

router = APIRouter(tags=["profile"])


class ProfileUpdate(BaseModel):
    display_name: str | None = None
    avatar_url: str | None = None


class PushTokenBody(BaseModel):
    token: str


@router.get("/profile/me")
def get_my_profile(
    engine: Engine = Depends(get_engine),
    user_id: str = Depends(get_current_user_id),
):
    profile = profile_service.ensure_profile(engine, user_id)
    return profile_service.profile_dict(profile)


@router.patch("/profile/me")
def update_my_profile(
    body: ProfileUpdate,
    engine: Engine = Depends(get_engine),
    user_id: str = Depends(get_current_user_id),
):
    try:
        profile = profile_service.update_profile(
            engine, user_id, display_name=body.display_name, avatar_url=body.avatar_url
        )
    except ValueError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc))
    return profile_service.profile_dict(profile)


@router.put("/profile/me/push-token", status_code=status.HTTP_204_NO_CONTENT)
def put_push_token(
    body: PushTokenBody,
    engine: Engine = Depends(get_engine),
    user_id: str = Depends(get_current_user_id),
):
    try:
        profile_service.save_push_token(engine, user_id, body.token)
    except ValueError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(exc))


@router.get("/levels")
def get_levels():
    """The level table, lowest tier first."""
    return {
        "levels": [
            {"threshold": lvl.threshold, "name": lvl.name, "emoji": lvl.emoji}
            for lvl in DEFAULT_LEVEL_TABLE.tiers
        ]
    }
