"""
locova.services.leaderboard_service — Rank queries
===================================================

Two scopes share one assembler:

* ``GLOBAL`` — every profile, by points;
* ``RADIUS`` — authors of at least one trend inside the circle.

The window is ordered by points (desc) then user id, so ties are stable.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from locova.database.models import UserProfile
from locova.engine.geo import Coordinates
from locova.engine.leaderboard import (
    LeaderboardRow,
    LeaderboardScope,
    LeaderboardView,
    assemble_leaderboard,
)
from locova.services.trend_service import trends_within_radius

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def _rows(profiles) -> list[LeaderboardRow]:
    return [
        LeaderboardRow(
            user_id=p.id,
            points=p.points,
            display_name=p.display_name,
            avatar_url=p.avatar_url,
        )
        for p in profiles
    ]


def top_leaderboard(engine: Engine, limit: int = 10) -> list[LeaderboardRow]:
    """Global top-*limit* window."""
    with Session(engine) as session:
        profiles = session.scalars(
            select(UserProfile)
            .order_by(UserProfile.points.desc(), UserProfile.id)
            .limit(limit)
        ).all()
        return _rows(profiles)


def radius_leaderboard(
    engine: Engine, center: Coordinates, radius_km: float, limit: int = 10
) -> list[LeaderboardRow]:
    """Top-*limit* among users who posted a trend within *radius_km*."""
    with Session(engine) as session:
        authors = {
            item.trend.user_id
            for item in trends_within_radius(session, center, radius_km)
            if item.trend.user_id
        }
        if not authors:
            return []
        profiles = session.scalars(
            select(UserProfile)
            .where(UserProfile.id.in_(authors))
            .order_by(UserProfile.points.desc(), UserProfile.id)
            .limit(limit)
        ).all()
        return _rows(profiles)


def rank_query(
    engine: Engine,
    scope: LeaderboardScope,
    *,
    limit: int = 10,
    center: Coordinates | None = None,
    radius_km: float | None = None,
) -> list[LeaderboardRow]:
    """Dispatch to the ranking for *scope*.

    Raises ValueError when the radius scope lacks a center or radius.
    """
    if scope is LeaderboardScope.GLOBAL:
        return top_leaderboard(engine, limit)
    if center is None or radius_km is None:
        raise ValueError("Radius leaderboard needs coordinates and radius_km")
    return radius_leaderboard(engine, center, radius_km, limit)


def load_leaderboard(
    engine: Engine,
    scope: LeaderboardScope = LeaderboardScope.GLOBAL,
    *,
    current_user_id: str | None = None,
    limit: int = 10,
    center: Coordinates | None = None,
    radius_km: float | None = None,
) -> LeaderboardView:
    """Fetch the ranked window and assemble it for display."""
    rows = rank_query(engine, scope, limit=limit, center=center, radius_km=radius_km)
    logger.debug("Leaderboard %s window: %d rows", scope, len(rows))

    my_points: int | None = None
    if current_user_id is not None:
        with Session(engine) as session:
            my_points = session.scalar(
                select(UserProfile.points).where(UserProfile.id == current_user_id)
            )

    return assemble_leaderboard(
        rows,
        scope=scope,
        current_user_id=current_user_id,
        current_user_points=my_points,
    )
