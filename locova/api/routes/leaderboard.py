"""
locova.api.routes.leaderboard — Ranked windows
===============================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import Engine

from locova.api.deps import get_config, get_engine, get_optional_user_id
from locova.config import LocovaConfig
from locova.engine.geo import Coordinates
from locova.engine.leaderboard import LeaderboardScope
from locova.services.leaderboard_service import load_leaderboard

router = APIRouter(tags=["leaderboard"])


@router.get("/leaderboard")
def get_leaderboard(
    scope: LeaderboardScope = Query(LeaderboardScope.GLOBAL),
    lat: float | None = Query(None),
    lng: float | None = Query(None),
    radius_km: float | None = Query(None, gt=0),
    limit: int | None = Query(None, ge=1, le=100),
    engine: Engine = Depends(get_engine),
    cfg: LocovaConfig = Depends(get_config),
    user_id: str | None = Depends(get_optional_user_id),
):
    """Top window for *scope*, with the caller's derived rank if outside it."""
    try:
        center = Coordinates.from_optional(lat, lng)
    except ValueError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc))
    if scope is LeaderboardScope.RADIUS and center is None:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Radius leaderboard needs lat and lng")

    view = load_leaderboard(
        engine,
        scope,
        current_user_id=user_id,
        limit=limit or cfg.leaderboard_limit,
        center=center,
        radius_km=radius_km or cfg.default_radius_km,
    )
    return view.to_dict()
