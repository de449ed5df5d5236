"""
tests/test_snapshot.py — Engagement Snapshot Builder
=====================================================

Pure folding first, then ``build_snapshot`` against in-memory SQLite.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from conftest import make_comment, make_trend
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from locova.database.models import TrendLike, TrendSave
from locova.engine.snapshot import EngagementCounts, EngagementSnapshot, fold_rows
from locova.services import engagement_service


class TestFoldRows:
    def test_every_requested_id_gets_counts(self):
        snap = fold_rows(["a", "b"], likes=[("a", "u1")])
        assert snap.counts_for("a") == EngagementCounts(1, 0, 0)
        assert snap.counts_for("b") == EngagementCounts(0, 0, 0)
        assert snap.entity_ids == frozenset({"a", "b"})

    def test_rows_outside_batch_ignored(self):
        snap = fold_rows(["a"], likes=[("a", "u1"), ("zzz", "u1")])
        assert "zzz" not in snap.counts
        assert snap.counts_for("a").like_count == 1

    def test_membership_only_for_current_user(self):
        snap = fold_rows(
            ["a", "b"],
            likes=[("a", "me"), ("b", "other")],
            saves=[("b", "me")],
            current_user_id="me",
        )
        assert snap.is_liked("a") and not snap.is_liked("b")
        assert snap.is_saved("b") and not snap.is_saved("a")

    def test_anonymous_has_empty_membership(self):
        snap = fold_rows(["a"], likes=[("a", "me")], saves=[("a", "me")])
        assert snap.liked_by_me == frozenset()
        assert snap.saved_by_me == frozenset()

    def test_counts_sum_to_row_totals(self):
        likes = [("a", "u1"), ("a", "u2"), ("b", "u1")]
        comments = [("a", "u3"), ("b", "u3"), ("b", "u3"), ("b", "u4")]
        snap = fold_rows(["a", "b"], likes=likes, comments=comments)
        assert sum(c.like_count for c in snap.counts.values()) == len(likes)
        assert sum(c.comment_count for c in snap.counts.values()) == len(comments)

    def test_to_dict_shape(self):
        snap = fold_rows(["a"], likes=[("a", "me")], current_user_id="me")
        assert snap.to_dict() == {
            "a": {
                "like_count": 1,
                "comment_count": 0,
                "save_count": 0,
                "liked_by_me": True,
                "saved_by_me": False,
            }
        }

    def test_unknown_id_reads_as_zero(self):
        assert EngagementSnapshot.empty().counts_for("nope") == EngagementCounts()


class TestBuildSnapshot:
    def test_empty_batch_issues_no_reads(self, db_engine):
        with (
            patch.object(engagement_service, "batch_read_likes") as likes,
            patch.object(engagement_service, "batch_read_comments") as comments,
            patch.object(engagement_service, "batch_read_saves") as saves,
        ):
            snap = engagement_service.build_snapshot(db_engine, [], "me")
        assert snap == EngagementSnapshot.empty()
        likes.assert_not_called()
        comments.assert_not_called()
        saves.assert_not_called()

    def test_counts_and_membership(self, db_engine):
        t1 = make_trend(db_engine)
        t2 = make_trend(db_engine, title="Jazz night")
        with Session(db_engine) as session:
            session.add_all([
                TrendLike(trend_id=t1, user_id="author"),
                TrendSave(trend_id=t2, user_id="author"),
            ])
            session.commit()
        make_comment(db_engine, t1, "visitor")
        make_comment(db_engine, t1, "visitor", "Again")

        snap = engagement_service.build_snapshot(db_engine, [t1, t2], "author")
        assert snap.counts_for(t1) == EngagementCounts(1, 2, 0)
        assert snap.counts_for(t2) == EngagementCounts(0, 0, 1)
        assert snap.is_liked(t1)
        assert snap.is_saved(t2)

    def test_duplicate_ids_collapse(self, db_engine):
        t1 = make_trend(db_engine)
        snap = engagement_service.build_snapshot(db_engine, [t1, t1, ""])
        assert snap.entity_ids == frozenset({t1})

    def test_batch_limit_enforced(self, db_engine):
        with pytest.raises(ValueError, match="exceeds limit"):
            engagement_service.build_snapshot(
                db_engine, ["a", "b", "c"], max_batch=2
            )

    def test_failed_read_produces_no_partial_snapshot(self, db_engine):
        t1 = make_trend(db_engine)
        with patch.object(
            engagement_service,
            "batch_read_saves",
            side_effect=OperationalError("SELECT", {}, Exception("boom")),
        ):
            with pytest.raises(OperationalError):
                engagement_service.build_snapshot(db_engine, [t1], "me")

    def test_comment_snapshot(self, db_engine):
        t1 = make_trend(db_engine)
        c1 = make_comment(db_engine, t1, "visitor")
        engagement_service.toggle_comment_like(db_engine, c1, "me")
        snap = engagement_service.build_comment_snapshot(db_engine, [c1], "me")
        assert snap.counts_for(c1).like_count == 1
        assert snap.is_liked(c1)
