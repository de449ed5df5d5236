"""
locova.database.models — SQLAlchemy 2.0 Data Models
====================================================

Tables:
- user_profiles   — Per-user points, display name, avatar, push token
- trends          — User-submitted place / event / food tips
- trend_comments  — Comments attached to a trend
- trend_likes     — (trend, user) like pairs
- comment_likes   — (comment, user) like pairs
- trend_saves     — (trend, user) bookmark pairs
- reward_ledger   — One row per one-time bonus already paid

Identifiers are opaque strings (UUIDs issued by the auth provider for
users, generated here for trends and comments).
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Locova ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class RewardAction(enum.StrEnum):
    """Engagement actions that pay a one-time bonus to the actor."""
    TREND_LIKE = "trend_like"
    COMMENT_LIKE = "comment_like"
    COMMENT = "comment"


# ---------------------------------------------------------------------------
# UserProfile: one row per signed-up user
# ---------------------------------------------------------------------------
class UserProfile(Base):
    __tablename__ = "user_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(60), default=None)
    avatar_url: Mapped[str | None] = mapped_column(Text, default=None)
    push_token: Mapped[str | None] = mapped_column(String(255), default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    trends: Mapped[list[Trend]] = relationship(back_populates="author")

    __table_args__ = (
        Index("ix_user_profiles_points_desc", "points"),
        CheckConstraint("points >= 0", name="ck_user_profiles_points_nonneg"),
    )

    def __repr__(self) -> str:
        return f"<UserProfile id={self.id} points={self.points}>"


# ---------------------------------------------------------------------------
# Trend: a geo-taggable tip
# ---------------------------------------------------------------------------
class Trend(Base):
    __tablename__ = "trends"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(120), nullable=False)
    category: Mapped[str] = mapped_column(String(40), nullable=False)
    location: Mapped[str] = mapped_column(String(120), nullable=False)
    latitude: Mapped[float | None] = mapped_column(Float, default=None)
    longitude: Mapped[float | None] = mapped_column(Float, default=None)
    user_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="SET NULL"), default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    # Denormalized display fallbacks; the snapshot is authoritative.
    like_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    comment_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    author: Mapped[UserProfile | None] = relationship(back_populates="trends")
    comments: Mapped[list[TrendComment]] = relationship(
        back_populates="trend", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            "(latitude IS NULL AND longitude IS NULL) OR "
            "(latitude IS NOT NULL AND longitude IS NOT NULL)",
            name="ck_trends_coordinates_paired",
        ),
        Index("ix_trends_created_at", "created_at"),
        Index("ix_trends_lat_lng", "latitude", "longitude"),
    )

    def __repr__(self) -> str:
        return f"<Trend id={self.id} title={self.title!r}>"


# ---------------------------------------------------------------------------
# TrendComment
# ---------------------------------------------------------------------------
class TrendComment(Base):
    __tablename__ = "trend_comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    trend_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("trends.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    like_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    trend: Mapped[Trend] = relationship(back_populates="comments")

    __table_args__ = (
        Index("ix_trend_comments_trend_id", "trend_id"),
    )

    def __repr__(self) -> str:
        return f"<TrendComment id={self.id} trend={self.trend_id}>"


# ---------------------------------------------------------------------------
# Like / save join tables, at most one row per (entity, user)
# ---------------------------------------------------------------------------
class TrendLike(Base):
    __tablename__ = "trend_likes"

    trend_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("trends.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class CommentLike(Base):
    __tablename__ = "comment_likes"

    comment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("trend_comments.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class TrendSave(Base):
    __tablename__ = "trend_saves"

    trend_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("trends.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_trend_saves_user_id", "user_id"),
    )


# ---------------------------------------------------------------------------
# RewardLedger: the idempotency record for one-time bonuses
# ---------------------------------------------------------------------------
class RewardLedger(Base):
    """Append-only: a row means the bonus for (target, user, action) is paid.

    The unique constraint is what settles races between devices; the
    client never deletes or updates ledger rows.
    """
    __tablename__ = "reward_ledger"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    target_id: Mapped[str] = mapped_column(String(36), nullable=False)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "target_id", "user_id", "action", name="uq_reward_ledger_target_user_action"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<RewardLedger target={self.target_id} user={self.user_id} "
            f"action={self.action!r}>"
        )
