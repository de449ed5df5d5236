"""
locova.services.profile_service — Profile reads and edits
==========================================================

Points are never written through this module; they only move through
:func:`locova.services.reward_service.increment_points`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from locova.constants import DEFAULT_LEVEL_TABLE
from locova.database.models import UserProfile
from locova.engine.levels import LevelTable

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

MAX_DISPLAY_NAME_LENGTH = 60


def get_or_create_profile(session: Session, user_id: str) -> UserProfile:
    """Fetch or insert a UserProfile row (flushes, does not commit)."""
    profile = session.get(UserProfile, user_id)
    if profile is None:
        profile = UserProfile(id=user_id, points=0)
        session.add(profile)
        session.flush()
    return profile


def get_profile(engine: Engine, user_id: str) -> UserProfile | None:
    """Return a detached profile, or None if the user has no row yet."""
    with Session(engine, expire_on_commit=False) as session:
        profile = session.get(UserProfile, user_id)
        if profile is not None:
            session.expunge(profile)
        return profile


def ensure_profile(engine: Engine, user_id: str) -> UserProfile:
    """Create the profile row on first sign-in; return it detached."""
    with Session(engine, expire_on_commit=False) as session:
        profile = get_or_create_profile(session, user_id)
        session.commit()
        session.refresh(profile)
        session.expunge(profile)
        return profile


def update_profile(
    engine: Engine,
    user_id: str,
    *,
    display_name: str | None = None,
    avatar_url: str | None = None,
) -> UserProfile:
    """Upsert the editable profile fields.

    Blank strings clear a field.  Raises ValueError for an over-long
    display name.
    """
    name = display_name.strip() if display_name is not None else None
    if name and len(name) > MAX_DISPLAY_NAME_LENGTH:
        raise ValueError(
            f"Display name must be at most {MAX_DISPLAY_NAME_LENGTH} characters"
        )

    with Session(engine, expire_on_commit=False) as session:
        profile = get_or_create_profile(session, user_id)
        if display_name is not None:
            profile.display_name = name or None
        if avatar_url is not None:
            profile.avatar_url = avatar_url.strip() or None
        session.commit()
        session.refresh(profile)
        session.expunge(profile)
        logger.info("Profile updated for user %s", user_id)
        return profile


def save_push_token(engine: Engine, user_id: str, token: str) -> None:
    """Store the device push token on the user's profile."""
    if not token or not token.strip():
        raise ValueError("Push token must not be empty")
    with Session(engine) as session:
        profile = get_or_create_profile(session, user_id)
        profile.push_token = token.strip()
        session.commit()
    logger.info("Push token saved for user %s", user_id)


def profile_dict(profile: UserProfile, levels: LevelTable = DEFAULT_LEVEL_TABLE) -> dict:
    """Serialize a profile together with its level badge data."""
    level = levels.resolve(profile.points)
    nxt = levels.next_level(profile.points)
    return {
        "id": profile.id,
        "points": profile.points,
        "display_name": profile.display_name,
        "avatar_url": profile.avatar_url,
        "level": {"name": level.name, "emoji": level.emoji, "threshold": level.threshold},
        "next_level": (
            {"name": nxt.name, "emoji": nxt.emoji, "threshold": nxt.threshold}
            if nxt else None
        ),
        "points_to_next": levels.points_to_next(profile.points),
        "created_at": profile.created_at.isoformat() if profile.created_at else None,
    }
