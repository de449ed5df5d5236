"""
tests/test_reward_service.py — Reward Ledger Guard
===================================================

Covers the one-time bonus guarantee: a (target, user, action) pays at
most once no matter how many times it is toggled, retried or raced.

Uses an in-memory SQLite database via the shared conftest fixtures.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from conftest import make_comment, make_profile, make_trend, points_of
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from locova.database.models import RewardAction, RewardLedger
from locova.engine.events import ToggleResult
from locova.services import reward_service, trend_service
from locova.services.reward_service import RewardOutcome


@pytest.fixture
def engine(db_engine):
    """Re-use the shared conftest db_engine (SQLite, StaticPool)."""
    return db_engine


def _ledger_rows(engine) -> list[RewardLedger]:
    with Session(engine) as session:
        return list(session.scalars(select(RewardLedger)).all())


class TestIncrementPoints:
    def test_creates_profile(self, engine):
        assert reward_service.increment_points(engine, "new", 5) == 5
        assert points_of(engine, "new") == 5

    def test_accumulates(self, engine):
        make_profile(engine, "u", 40)
        assert reward_service.increment_points(engine, "u", 10) == 50

    @pytest.mark.parametrize("amount", [0, -2])
    def test_rejects_non_positive(self, engine, amount):
        with pytest.raises(ValueError):
            reward_service.increment_points(engine, "u", amount)


class TestClaimReward:
    def _claim(self, engine, **overrides):
        kwargs = dict(
            target_id="t1", user_id="fan", action=RewardAction.TREND_LIKE, amount=2
        )
        kwargs.update(overrides)
        return reward_service.claim_reward(engine, **kwargs)

    def test_first_claim_credits(self, engine):
        result = self._claim(engine)
        assert result.outcome is RewardOutcome.CREDITED
        assert result.points_awarded == 2
        assert result.new_total == 2
        assert len(_ledger_rows(engine)) == 1

    def test_second_claim_is_noop(self, engine):
        self._claim(engine)
        result = self._claim(engine)
        assert result.outcome is RewardOutcome.ALREADY_CREDITED
        assert points_of(engine, "fan") == 2

    def test_actions_are_keyed_separately(self, engine):
        self._claim(engine)
        result = self._claim(engine, action=RewardAction.COMMENT, amount=3)
        assert result.outcome is RewardOutcome.CREDITED
        assert points_of(engine, "fan") == 5

    def test_concurrent_claim_increments_once(self, engine):
        """The loser of a read/insert race sees the unique conflict and stops."""
        self._claim(engine)
        with (
            patch.object(reward_service, "read_ledger", return_value=None),
            patch.object(
                reward_service, "increment_points", wraps=reward_service.increment_points
            ) as increment,
        ):
            result = self._claim(engine)
        assert result.outcome is RewardOutcome.ALREADY_CREDITED
        increment.assert_not_called()
        assert points_of(engine, "fan") == 2
        assert len(_ledger_rows(engine)) == 1

    def test_backend_failure_is_reported_not_raised(self, engine):
        with patch.object(
            reward_service,
            "increment_points",
            side_effect=OperationalError("UPDATE", {}, Exception("down")),
        ):
            result = self._claim(engine)
        assert result.outcome is RewardOutcome.FAILED


class TestLikeTrend:
    def test_like_pays_once_across_unlike_relike(self, engine):
        trend_id = make_trend(engine, "author")

        first = reward_service.like_trend(engine, trend_id, "fan", 2)
        unlike = reward_service.like_trend(engine, trend_id, "fan", 2)
        relike = reward_service.like_trend(engine, trend_id, "fan", 2)

        assert first.state is ToggleResult.ACTIVATED
        assert first.reward.outcome is RewardOutcome.CREDITED
        assert unlike.state is ToggleResult.DEACTIVATED
        assert unlike.reward is None
        assert relike.reward.outcome is RewardOutcome.ALREADY_CREDITED
        assert points_of(engine, "fan") == 2

    def test_unlike_never_decrements(self, engine):
        trend_id = make_trend(engine, "author")
        reward_service.like_trend(engine, trend_id, "fan", 2)
        with patch.object(reward_service, "increment_points") as increment:
            reward_service.like_trend(engine, trend_id, "fan", 2)
        increment.assert_not_called()
        assert points_of(engine, "fan") == 2

    def test_liking_own_trend_pays_once(self, engine):
        trend_id = make_trend(engine, "author")
        result = reward_service.like_trend(engine, trend_id, "author", 2)
        assert result.state is ToggleResult.ACTIVATED
        assert result.reward.outcome is RewardOutcome.CREDITED
        assert result.reward.points_awarded == 2
        assert points_of(engine, "author") == 2

    def test_reward_failure_keeps_like(self, engine):
        trend_id = make_trend(engine, "author")
        with patch.object(
            reward_service,
            "claim_reward",
            return_value=reward_service.RewardResult(RewardOutcome.FAILED),
        ):
            result = reward_service.like_trend(engine, trend_id, "fan", 2)
        assert result.state is ToggleResult.ACTIVATED
        assert result.reward.outcome is RewardOutcome.FAILED
        # The like stands; a later toggle is an unlike.
        again = reward_service.like_trend(engine, trend_id, "fan", 2)
        assert again.state is ToggleResult.DEACTIVATED


class TestCommentRewards:
    def test_comment_bonus_once_per_trend(self, engine):
        trend_id = make_trend(engine, "author")
        _, first = reward_service.comment_on_trend(engine, trend_id, "fan", "Love it", 3)
        _, second = reward_service.comment_on_trend(engine, trend_id, "fan", "Again", 3)
        assert first.outcome is RewardOutcome.CREDITED
        assert second.outcome is RewardOutcome.ALREADY_CREDITED
        assert points_of(engine, "fan") == 3

    def test_comment_like_bonus(self, engine):
        trend_id = make_trend(engine, "author")
        comment_id = make_comment(engine, trend_id, "writer")
        result = reward_service.like_comment(engine, comment_id, "fan", 2)
        assert result.reward.outcome is RewardOutcome.CREDITED
        assert points_of(engine, "fan") == 2

    def test_commenting_on_own_trend_pays_once(self, engine):
        trend_id = make_trend(engine, "author")
        comment, reward = reward_service.comment_on_trend(engine, trend_id, "author", "Mine", 3)
        assert comment.comment == "Mine"
        assert reward.outcome is RewardOutcome.CREDITED
        assert points_of(engine, "author") == 3


class TestScenario:
    def test_submit_then_like_then_refetch(self, engine):
        """Submit (+10), like someone else's trend (+2), re-fetch: 12 total."""
        draft = trend_service.validate_draft("Rooftop bar", "Place", "Lisbon")
        submitted = trend_service.submit_trend(engine, "me", draft, award_points=10)
        assert submitted.new_points == 10

        other = make_trend(engine, "someone-else")
        reward_service.like_trend(engine, other, "me", 2)
        reward_service.like_trend(engine, other, "me", 2)
        reward_service.like_trend(engine, other, "me", 2)

        assert points_of(engine, "me") == 12
        rows = _ledger_rows(engine)
        assert [(r.target_id, r.action) for r in rows] == [(other, "trend_like")]
