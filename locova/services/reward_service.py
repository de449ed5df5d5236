"""
locova.services.reward_service — Ledger-guarded point awards
==============================================================

A one-time engagement bonus is paid at most once per
(target, actor, action), however many times the action fires:

    1. Toggle the engagement row; only an ACTIVATED result goes on.
    2. Read the ledger row for (target, actor, action); stop if present.
    3. Insert the ledger row inside a SAVEPOINT.  A uniqueness conflict
       means a concurrent caller claimed it first: no credit, no error.
    4. Issue exactly one point increment for the actor.

Failures in steps 2–4 are logged and swallowed; the engagement itself
is already committed and a missed bonus is an acceptable outcome.

Un-liking never takes points back.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from locova.database.models import RewardAction, RewardLedger, TrendComment, UserProfile
from locova.engine.events import ToggleResult
from locova.services import engagement_service
from locova.services.profile_service import get_or_create_profile

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


class RewardOutcome(enum.StrEnum):
    CREDITED = "credited"
    ALREADY_CREDITED = "already_credited"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class RewardResult:
    outcome: RewardOutcome
    points_awarded: int = 0
    new_total: int | None = None


@dataclass(frozen=True, slots=True)
class EngagementResult:
    """What a rewarded engagement action did."""

    state: ToggleResult
    reward: RewardResult | None = None


# ---------------------------------------------------------------------------
# Ledger primitives
# ---------------------------------------------------------------------------
def read_ledger(
    session: Session, target_id: str, user_id: str, action: RewardAction
) -> RewardLedger | None:
    return session.scalar(
        select(RewardLedger).where(
            RewardLedger.target_id == target_id,
            RewardLedger.user_id == user_id,
            RewardLedger.action == action.value,
        )
    )


def insert_ledger(
    session: Session,
    target_id: str,
    user_id: str,
    action: RewardAction,
    points: int,
) -> bool:
    """Claim the ledger row.  Returns False if someone else holds it."""
    try:
        with session.begin_nested():  # SAVEPOINT
            session.add(RewardLedger(
                target_id=target_id,
                user_id=user_id,
                action=action.value,
                points=points,
            ))
            session.flush()
    except IntegrityError:
        return False
    return True


def increment_points(engine: Engine, user_id: str, amount: int) -> int:
    """Atomically add *amount* to the user's points; return the new total.

    Creates the profile if it doesn't exist.  Raises ValueError for a
    non-positive amount: points never go down.
    """
    if amount <= 0:
        raise ValueError(f"Point increments must be positive, got {amount}")

    with Session(engine) as session:
        result = session.execute(
            update(UserProfile)
            .where(UserProfile.id == user_id)
            .values(points=UserProfile.points + amount)
        )
        if result.rowcount == 0:
            session.add(UserProfile(id=user_id, points=amount))
            session.flush()
        session.commit()
        total = session.scalar(select(UserProfile.points).where(UserProfile.id == user_id))
    logger.info("Awarded %d points to %s (total %s)", amount, user_id, total)
    return int(total or 0)


# ---------------------------------------------------------------------------
# Guarded claim
# ---------------------------------------------------------------------------
def claim_reward(
    engine: Engine,
    *,
    target_id: str,
    user_id: str,
    action: RewardAction,
    amount: int,
) -> RewardResult:
    """Pay the bonus for (target, user, action) at most once.

    Never raises for backend failures; they come back as ``FAILED``.
    """
    try:
        with Session(engine) as session:
            get_or_create_profile(session, user_id)
            if read_ledger(session, target_id, user_id, action) is not None:
                logger.debug("Reward already paid: %s/%s/%s", action, target_id, user_id)
                return RewardResult(RewardOutcome.ALREADY_CREDITED)

            claimed = insert_ledger(session, target_id, user_id, action, amount)
            session.commit()

        if not claimed:
            logger.info(
                "Ledger conflict for %s/%s/%s — concurrent claim won",
                action, target_id, user_id,
            )
            return RewardResult(RewardOutcome.ALREADY_CREDITED)

        total = increment_points(engine, user_id, amount)
        return RewardResult(RewardOutcome.CREDITED, points_awarded=amount, new_total=total)

    except SQLAlchemyError:
        logger.exception(
            "Reward step failed for %s/%s/%s; engagement kept, bonus skipped",
            action, target_id, user_id,
        )
        return RewardResult(RewardOutcome.FAILED)


def _reward_if_activated(
    engine: Engine,
    state: ToggleResult,
    *,
    target_id: str,
    user_id: str,
    action: RewardAction,
    amount: int,
) -> EngagementResult:
    if state is not ToggleResult.ACTIVATED:
        return EngagementResult(state)
    reward = claim_reward(
        engine, target_id=target_id, user_id=user_id, action=action, amount=amount
    )
    return EngagementResult(state, reward)


# ---------------------------------------------------------------------------
# Rewarded engagement actions
# ---------------------------------------------------------------------------
def like_trend(engine: Engine, trend_id: str, user_id: str, amount: int) -> EngagementResult:
    """Toggle a trend like; the first like of this trend pays *amount*."""
    state = engagement_service.toggle_trend_like(engine, trend_id, user_id)
    return _reward_if_activated(
        engine, state, target_id=trend_id, user_id=user_id,
        action=RewardAction.TREND_LIKE, amount=amount,
    )


def like_comment(engine: Engine, comment_id: str, user_id: str, amount: int) -> EngagementResult:
    """Toggle a comment like; the first like of this comment pays *amount*."""
    state = engagement_service.toggle_comment_like(engine, comment_id, user_id)
    return _reward_if_activated(
        engine, state, target_id=comment_id, user_id=user_id,
        action=RewardAction.COMMENT_LIKE, amount=amount,
    )


def comment_on_trend(
    engine: Engine, trend_id: str, user_id: str, body: str, amount: int
) -> tuple[TrendComment, RewardResult | None]:
    """Post a comment; the first comment on a trend pays *amount*."""
    comment = engagement_service.add_comment(engine, trend_id, user_id, body)
    # A new comment is always an activation.
    result = _reward_if_activated(
        engine, ToggleResult.ACTIVATED, target_id=trend_id, user_id=user_id,
        action=RewardAction.COMMENT, amount=amount,
    )
    return comment, result.reward
