"""
locova.services.engagement_controller — Per-view engagement orchestration
==========================================================================

One controller backs one rendered list of trends.  It owns:

* the current :class:`EngagementSnapshot` for the rendered ids;
* a busy set keyed by entity id, so a double tap on the same trend
  issues one request (other trends stay tappable);
* the comment thread that is open, if any.

Manual refresh, pull-to-refresh and realtime invalidation all end in
:meth:`EngagementController.refresh`.  A failed refresh keeps the
previous snapshot whole rather than mixing fresh and stale counts.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from locova.config import LocovaConfig
from locova.database.engine import run_db
from locova.engine.events import ToggleResult
from locova.engine.snapshot import EngagementSnapshot
from locova.services import engagement_service, reward_service, trend_service
from locova.services.reward_service import EngagementResult, RewardResult
from locova.session import SessionContext

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from locova.database.models import TrendComment

logger = logging.getLogger(__name__)


class EngagementController:
    def __init__(
        self,
        engine: Engine,
        session: SessionContext,
        cfg: LocovaConfig | None = None,
    ) -> None:
        self._engine = engine
        self._session = session
        self._cfg = cfg or LocovaConfig()

        self._snapshot = EngagementSnapshot.empty()
        self._active_ids: tuple[str, ...] = ()
        self._busy: set[str] = set()

        self._thread_trend_id: str | None = None
        self._thread: list[TrendComment] = []
        self._thread_snapshot = EngagementSnapshot.empty()

        self._unsubscribe_session = session.subscribe(self._on_session_change)

    # -------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------
    @property
    def snapshot(self) -> EngagementSnapshot:
        return self._snapshot

    @property
    def active_ids(self) -> tuple[str, ...]:
        return self._active_ids

    @property
    def open_thread_id(self) -> str | None:
        return self._thread_trend_id

    @property
    def thread(self) -> list[TrendComment]:
        return list(self._thread)

    @property
    def thread_snapshot(self) -> EngagementSnapshot:
        return self._thread_snapshot

    @property
    def thread_comment_ids(self) -> frozenset[str]:
        return frozenset(c.id for c in self._thread)

    def is_busy(self, entity_id: str) -> bool:
        return entity_id in self._busy

    def set_active(self, trend_ids: Iterable[str]) -> tuple[str, ...]:
        """Set the rendered ids, deduplicated and capped at the batch limit."""
        ids = tuple(dict.fromkeys(i for i in trend_ids if i))
        limit = self._cfg.snapshot_batch_limit
        if len(ids) > limit:
            logger.warning("Rendered list of %d trends capped to %d", len(ids), limit)
            ids = ids[:limit]
        self._active_ids = ids
        return ids

    # -------------------------------------------------------------------
    # Refresh
    # -------------------------------------------------------------------
    async def refresh(self) -> bool:
        """Rebuild the snapshot for the active ids.

        Returns False (and keeps the previous snapshot) on backend failure.
        """
        try:
            snapshot = await run_db(
                engagement_service.build_snapshot,
                self._engine,
                self._active_ids,
                self._session.user_id,
                max_batch=self._cfg.snapshot_batch_limit,
            )
        except SQLAlchemyError:
            logger.warning("Snapshot refresh failed; keeping previous snapshot", exc_info=True)
            return False
        self._snapshot = snapshot
        return True

    async def open_thread(self, trend_id: str) -> list[TrendComment]:
        self._thread_trend_id = trend_id
        self._thread = []
        self._thread_snapshot = EngagementSnapshot.empty()
        await self.refresh_thread()
        return self.thread

    def close_thread(self) -> None:
        self._thread_trend_id = None
        self._thread = []
        self._thread_snapshot = EngagementSnapshot.empty()

    async def refresh_thread(self) -> bool:
        """Re-fetch the open thread and its comment-like snapshot."""
        trend_id = self._thread_trend_id
        if trend_id is None:
            return False
        try:
            comments = await run_db(engagement_service.list_comments, self._engine, trend_id)
            snapshot = await run_db(
                engagement_service.build_comment_snapshot,
                self._engine,
                [c.id for c in comments],
                self._session.user_id,
            )
        except SQLAlchemyError:
            logger.warning("Thread refresh failed for %s", trend_id, exc_info=True)
            return False
        if self._thread_trend_id != trend_id:
            # Thread was closed or switched while loading.
            return False
        self._thread = comments
        self._thread_snapshot = snapshot
        return True

    # -------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------
    async def _guarded(self, entity_id: str, action: str, func, *args):
        """Run *func* once per entity at a time; None if busy or failed."""
        user_id = self._session.require_user(action)
        if entity_id in self._busy:
            logger.debug("Ignoring %s on %s: request already in flight", action, entity_id)
            return None
        self._busy.add(entity_id)
        try:
            return await run_db(func, self._engine, entity_id, user_id, *args)
        except SQLAlchemyError:
            logger.exception("%s failed for %s", action, entity_id)
            return None
        finally:
            self._busy.discard(entity_id)

    async def toggle_like(self, trend_id: str) -> EngagementResult | None:
        result = await self._guarded(
            trend_id, "liking a trend", reward_service.like_trend, self._cfg.like_points
        )
        if result is not None:
            await self.refresh()
        return result

    async def toggle_save(self, trend_id: str) -> ToggleResult | None:
        result = await self._guarded(
            trend_id, "saving a trend", engagement_service.toggle_trend_save
        )
        if result is not None:
            await self.refresh()
        return result

    async def toggle_comment_like(self, comment_id: str) -> EngagementResult | None:
        result = await self._guarded(
            comment_id, "liking a comment", reward_service.like_comment,
            self._cfg.like_points,
        )
        if result is not None:
            await self.refresh_thread()
        return result

    async def add_comment(
        self, trend_id: str, body: str
    ) -> tuple[TrendComment, RewardResult | None] | None:
        result = await self._guarded(
            trend_id, "commenting", reward_service.comment_on_trend,
            body, self._cfg.comment_points,
        )
        if result is not None:
            await self.refresh()
            if self._thread_trend_id == trend_id:
                await self.refresh_thread()
        return result

    async def submit_trend(
        self,
        title: str,
        category: str,
        location: str,
        lat: float | None = None,
        lng: float | None = None,
    ) -> trend_service.SubmitResult:
        """Validate locally, then submit and collect the base award.

        Auth and validation errors are raised before any backend call.
        """
        user_id = self._session.require_user("submitting a trend")
        draft = trend_service.validate_draft(title, category, location, lat, lng)
        return await run_db(
            trend_service.submit_trend,
            self._engine,
            user_id,
            draft,
            award_points=self._cfg.submit_points,
        )

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def _on_session_change(self, user_id: str | None) -> None:
        # Membership belonged to the previous user; counts stay valid.
        self._snapshot = EngagementSnapshot(counts=dict(self._snapshot.counts))
        self._thread_snapshot = EngagementSnapshot(counts=dict(self._thread_snapshot.counts))

    def close(self) -> None:
        self._unsubscribe_session()
        self.close_thread()
