"""
locova.services.trend_service — Trend submission and the unified feed
======================================================================

The feed has two modes:

* **radius** — coordinates are known: trends within ``radius_km``,
  nearest first, each tagged with ``distance_km``;
* **city** — no coordinates: newest first, optionally filtered by a
  case-insensitive substring of the free-text location.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from locova.constants import (
    MAX_CATEGORY_LENGTH,
    MAX_LOCATION_LENGTH,
    MAX_TITLE_LENGTH,
)
from locova.database.models import Trend, TrendSave
from locova.engine.changefeed import notify_before_commit
from locova.engine.events import ChangeEvent, ChangeOp
from locova.engine.geo import Coordinates, bounding_box, haversine_km
from locova.engine.snapshot import EngagementSnapshot
from locova.services import reward_service
from locova.services.profile_service import get_or_create_profile

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


class TrendValidationError(ValueError):
    """A submitted trend failed field validation."""


@dataclass(frozen=True, slots=True)
class TrendDraft:
    """Trimmed, validated submission fields."""

    title: str
    category: str
    location: str
    coordinates: Coordinates | None = None


@dataclass(frozen=True, slots=True)
class FeedItem:
    trend: Trend
    distance_km: float | None = None


@dataclass(frozen=True, slots=True)
class SubmitResult:
    trend: Trend
    new_points: int | None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
def _required(value: str | None, field_name: str, max_length: int) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise TrendValidationError(f"{field_name} is required")
    if len(cleaned) > max_length:
        raise TrendValidationError(
            f"{field_name} must be at most {max_length} characters"
        )
    return cleaned


def validate_draft(
    title: str | None,
    category: str | None,
    location: str | None,
    lat: float | None = None,
    lng: float | None = None,
) -> TrendDraft:
    """Trim and check a submission; raises :class:`TrendValidationError`."""
    try:
        coords = Coordinates.from_optional(lat, lng)
    except ValueError as exc:
        raise TrendValidationError(str(exc)) from exc
    return TrendDraft(
        title=_required(title, "Title", MAX_TITLE_LENGTH),
        category=_required(category, "Category", MAX_CATEGORY_LENGTH),
        location=_required(location, "Location", MAX_LOCATION_LENGTH),
        coordinates=coords,
    )


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------
def submit_trend(
    engine: Engine,
    user_id: str,
    draft: TrendDraft,
    *,
    award_points: int,
) -> SubmitResult:
    """Insert a trend, then pay the base submission award.

    The award is not ledger-guarded: every submission is a new target.
    A failed award is logged and leaves the trend in place.
    """
    with Session(engine, expire_on_commit=False) as session:
        get_or_create_profile(session, user_id)
        trend = Trend(
            title=draft.title,
            category=draft.category,
            location=draft.location,
            latitude=draft.coordinates.lat if draft.coordinates else None,
            longitude=draft.coordinates.lng if draft.coordinates else None,
            user_id=user_id,
        )
        session.add(trend)
        session.flush()
        notify_before_commit(session, ChangeEvent("trends", ChangeOp.INSERT, trend.id, user_id))
        session.commit()
        session.refresh(trend)
        session.expunge(trend)
    logger.info("Trend %s submitted by %s", trend.id, user_id)

    new_points: int | None = None
    try:
        new_points = reward_service.increment_points(engine, user_id, award_points)
    except SQLAlchemyError:
        logger.exception("Submission award failed for %s; trend kept", user_id)
    return SubmitResult(trend=trend, new_points=new_points)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_trend(engine: Engine, trend_id: str) -> Trend | None:
    with Session(engine) as session:
        trend = session.get(Trend, trend_id)
        if trend is not None:
            session.expunge(trend)
        return trend


def trends_within_radius(
    session: Session, center: Coordinates, radius_km: float
) -> list[FeedItem]:
    """Trends with coordinates inside the circle, nearest first."""
    if radius_km <= 0:
        raise ValueError(f"radius_km must be positive, got {radius_km}")
    box = bounding_box(center, radius_km)
    candidates = session.scalars(
        select(Trend).where(
            Trend.latitude.is_not(None),
            Trend.longitude.is_not(None),
            Trend.latitude.between(box.min_lat, box.max_lat),
            Trend.longitude.between(box.min_lng, box.max_lng),
        )
    ).all()

    items: list[FeedItem] = []
    for trend in candidates:
        distance = haversine_km(center, Coordinates(trend.latitude, trend.longitude))
        if distance <= radius_km:
            items.append(FeedItem(trend, round(distance, 3)))
    items.sort(key=lambda item: (item.distance_km, item.trend.id))
    return items


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def fetch_trends(
    engine: Engine,
    *,
    coordinates: Coordinates | None = None,
    radius_km: float = 20.0,
    city: str | None = None,
    limit: int | None = None,
) -> list[FeedItem]:
    """Unified feed: radius mode when *coordinates* is given, else city mode."""
    with Session(engine) as session:
        if coordinates is not None:
            items = trends_within_radius(session, coordinates, radius_km)
        else:
            stmt = select(Trend).order_by(Trend.created_at.desc(), Trend.id)
            if city and city.strip():
                stmt = stmt.where(
                    Trend.location.ilike(f"%{_escape_like(city.strip())}%", escape="\\")
                )
            items = [FeedItem(t) for t in session.scalars(stmt).all()]
        if limit is not None:
            items = items[:limit]
        for item in items:
            session.expunge(item.trend)
        return items


def fetch_saved_trends(engine: Engine, user_id: str) -> list[Trend]:
    """The user's saved trends, most recently saved first."""
    with Session(engine) as session:
        rows = session.scalars(
            select(Trend)
            .join(TrendSave, TrendSave.trend_id == Trend.id)
            .where(TrendSave.user_id == user_id)
            .order_by(TrendSave.created_at.desc(), Trend.id)
        ).all()
        for row in rows:
            session.expunge(row)
        return list(rows)


def recommended_trends(engine: Engine, limit: int = 10) -> list[Trend]:
    """Most engaged trends (likes + comments), newest first on ties."""
    with Session(engine) as session:
        rows = session.scalars(
            select(Trend)
            .order_by(
                (Trend.like_count + Trend.comment_count).desc(),
                Trend.created_at.desc(),
                Trend.id,
            )
            .limit(limit)
        ).all()
        for row in rows:
            session.expunge(row)
        return list(rows)


def trend_dict(
    trend: Trend,
    snapshot: EngagementSnapshot | None = None,
    distance_km: float | None = None,
) -> dict:
    """Serialize a trend, preferring snapshot counts over the stored ones."""
    counts = snapshot.counts_for(trend.id) if snapshot and trend.id in snapshot.counts else None
    return {
        "id": trend.id,
        "title": trend.title,
        "category": trend.category,
        "location": trend.location,
        "latitude": trend.latitude,
        "longitude": trend.longitude,
        "user_id": trend.user_id,
        "created_at": trend.created_at.isoformat() if trend.created_at else None,
        "distance_km": distance_km,
        "like_count": counts.like_count if counts else trend.like_count,
        "comment_count": counts.comment_count if counts else trend.comment_count,
        "save_count": counts.save_count if counts else None,
        "liked_by_current_user": snapshot.is_liked(trend.id) if snapshot else False,
        "saved_by_current_user": snapshot.is_saved(trend.id) if snapshot else False,
    }
