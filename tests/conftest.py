"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import asyncio
import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of locova.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from locova.config import LocovaConfig  # noqa: E402
from locova.database.models import Base, Trend, TrendComment, UserProfile  # noqa: E402


def run_async(coro):
    """Run a coroutine to completion without pytest-asyncio."""
    return asyncio.run(coro)


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Locova tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in ``run_db``).
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a transactional session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def cfg() -> LocovaConfig:
    return LocovaConfig()


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------
def make_profile(engine: Engine, user_id: str, points: int = 0, **kwargs) -> None:
    with Session(engine) as session:
        session.add(UserProfile(id=user_id, points=points, **kwargs))
        session.commit()


def make_trend(
    engine: Engine,
    user_id: str | None = "author",
    *,
    title: str = "Night market",
    category: str = "Food",
    location: str = "Lisbon",
    lat: float | None = None,
    lng: float | None = None,
) -> str:
    """Insert a trend (creating its author if needed) and return its id."""
    with Session(engine) as session:
        if user_id is not None and session.get(UserProfile, user_id) is None:
            session.add(UserProfile(id=user_id, points=0))
        trend = Trend(
            title=title,
            category=category,
            location=location,
            latitude=lat,
            longitude=lng,
            user_id=user_id,
        )
        session.add(trend)
        session.commit()
        return trend.id


def make_comment(engine: Engine, trend_id: str, user_id: str, body: str = "Nice") -> str:
    with Session(engine) as session:
        if session.get(UserProfile, user_id) is None:
            session.add(UserProfile(id=user_id, points=0))
        comment = TrendComment(trend_id=trend_id, user_id=user_id, comment=body)
        session.add(comment)
        session.commit()
        return comment.id


def points_of(engine: Engine, user_id: str) -> int | None:
    with Session(engine) as session:
        profile = session.get(UserProfile, user_id)
        return profile.points if profile else None


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------
def make_user_token(sub: str = "user-1") -> str:
    """Create a user JWT.  Usable as both a fixture and a factory function."""
    import jwt

    from locova.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode({"sub": sub}, JWT_SECRET, algorithm=JWT_ALGORITHM)


@pytest.fixture
def user_token():
    return make_user_token()


@pytest.fixture
def client(db_engine, cfg):
    """FastAPI TestClient wired to the in-memory engine."""
    from fastapi.testclient import TestClient

    from locova.api.deps import get_config, get_engine
    from locova.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: cfg
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
