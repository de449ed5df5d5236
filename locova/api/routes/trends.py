"""
locova.api.routes.trends — Trend feed and submission
=====================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy import Engine

from locova.api.deps import get_config, get_current_user_id, get_engine, get_optional_user_id
from locova.config import LocovaConfig
from locova.constants import CATEGORY_SUGGESTIONS
from locova.engine.geo import Coordinates
from locova.services import engagement_service, trend_service
from locova.services.trend_service import TrendValidationError

router = APIRouter(tags=["trends"])


class TrendCreate(BaseModel):
    title: str
    category: str
    location: str
    latitude: float | None = None
    longitude: float | None = None


def _coordinates(lat: float | None, lng: float | None) -> Coordinates | None:
    try:
        return Coordinates.from_optional(lat, lng)
    except ValueError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc))


# ---------------------------------------------------------------------------
# GET /trends
# ---------------------------------------------------------------------------
@router.get("/trends")
def list_trends(
    lat: float | None = Query(None),
    lng: float | None = Query(None),
    radius_km: float | None = Query(None, gt=0),
    city: str | None = Query(None),
    limit: int | None = Query(None, ge=1),
    engine: Engine = Depends(get_engine),
    cfg: LocovaConfig = Depends(get_config),
    user_id: str | None = Depends(get_optional_user_id),
):
    """Radius feed when lat/lng are given, otherwise newest first by city."""
    coords = _coordinates(lat, lng)
    limit = min(limit or cfg.snapshot_batch_limit, cfg.snapshot_batch_limit)
    items = trend_service.fetch_trends(
        engine,
        coordinates=coords,
        radius_km=radius_km or cfg.default_radius_km,
        city=city,
        limit=limit,
    )
    snapshot = engagement_service.build_snapshot(
        engine, [item.trend.id for item in items], user_id
    )
    return {
        "mode": "radius" if coords else "city",
        "trends": [
            trend_service.trend_dict(item.trend, snapshot, item.distance_km)
            for item in items
        ],
    }


# ---------------------------------------------------------------------------
# POST /trends
# ---------------------------------------------------------------------------
@router.post("/trends", status_code=status.HTTP_201_CREATED)
def create_trend(
    body: TrendCreate,
    engine: Engine = Depends(get_engine),
    cfg: LocovaConfig = Depends(get_config),
    user_id: str = Depends(get_current_user_id),
):
    try:
        draft = trend_service.validate_draft(
            body.title, body.category, body.location, body.latitude, body.longitude
        )
    except TrendValidationError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc))
    result = trend_service.submit_trend(
        engine, user_id, draft, award_points=cfg.submit_points
    )
    return {
        "trend": trend_service.trend_dict(result.trend),
        "new_points": result.new_points,
    }


# ---------------------------------------------------------------------------
# GET /trends/saved, /trends/recommended
# ---------------------------------------------------------------------------
@router.get("/trends/saved")
def list_saved_trends(
    engine: Engine = Depends(get_engine),
    user_id: str = Depends(get_current_user_id),
):
    trends = trend_service.fetch_saved_trends(engine, user_id)
    snapshot = engagement_service.build_snapshot(engine, [t.id for t in trends], user_id)
    return {"trends": [trend_service.trend_dict(t, snapshot) for t in trends]}


@router.get("/trends/recommended")
def list_recommended_trends(
    limit: int = Query(10, ge=1, le=50),
    engine: Engine = Depends(get_engine),
    user_id: str | None = Depends(get_optional_user_id),
):
    trends = trend_service.recommended_trends(engine, limit)
    snapshot = engagement_service.build_snapshot(engine, [t.id for t in trends], user_id)
    return {"trends": [trend_service.trend_dict(t, snapshot) for t in trends]}


# ---------------------------------------------------------------------------
# GET /categories
# ---------------------------------------------------------------------------
@router.get("/categories")
def list_categories():
    return {"categories": list(CATEGORY_SUGGESTIONS)}


# ---------------------------------------------------------------------------
# GET /trends/{trend_id}
# ---------------------------------------------------------------------------
@router.get("/trends/{trend_id}")
def get_trend(
    trend_id: str,
    engine: Engine = Depends(get_engine),
    user_id: str | None = Depends(get_optional_user_id),
):
    trend = trend_service.get_trend(engine, trend_id)
    if trend is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Trend not found")
    snapshot = engagement_service.build_snapshot(engine, [trend.id], user_id)
    return trend_service.trend_dict(trend, snapshot)
