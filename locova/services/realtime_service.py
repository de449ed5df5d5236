"""
locova.services.realtime_service — Realtime invalidation
========================================================

An :class:`InvalidationTrigger` ties a :class:`ChangeFeed` to one
:class:`EngagementController` for the lifetime of a screen.  Change
events never patch state directly: a burst of events is coalesced into
one debounced ``controller.refresh()``, the same path a manual refresh
takes.  Events for a trend that isn't rendered are ignored, and the open
comment thread is re-fetched when an event touches it.

Change callbacks may fire on the listener thread, so everything is
handed to the event loop with ``call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable

from locova.engine.changefeed import ChangeFeed
from locova.engine.events import ChangeEvent
from locova.services.engagement_controller import EngagementController

logger = logging.getLogger(__name__)

# Tables whose changes alter a trend's snapshot, keyed by trend id.
SNAPSHOT_TABLES = frozenset({"trend_likes", "trend_comments", "trend_saves"})

FeedRefresher = Callable[[], Awaitable[object]]


class InvalidationTrigger:
    def __init__(
        self,
        feed: ChangeFeed,
        controller: EngagementController,
        *,
        debounce_ms: int = 250,
        on_feed_change: FeedRefresher | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._feed = feed
        self._controller = controller
        self._debounce = max(debounce_ms, 0) / 1000
        self._on_feed_change = on_feed_change
        self._loop = loop

        self._unsubscribes: list[Callable[[], None]] = []
        self._pending: asyncio.Task | None = None
        self._snapshot_dirty = False
        self._thread_dirty = False
        self._feed_dirty = False
        self.refresh_count = 0

    @property
    def active(self) -> bool:
        return bool(self._unsubscribes)

    def start(self, tables: Iterable[str] | None = None) -> None:
        """Subscribe to change events; call from inside the event loop."""
        if self._unsubscribes:
            return
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        wanted = set(tables) if tables is not None else set(SNAPSHOT_TABLES) | {"comment_likes"}
        if self._on_feed_change is not None:
            wanted.add("trends")
        for table in sorted(wanted):
            self._unsubscribes.append(self._feed.subscribe(table, self._on_event))
        logger.debug("Invalidation trigger watching %s", ", ".join(sorted(wanted)))

    def close(self) -> None:
        """Unsubscribe from everything and drop any pending refresh."""
        for unsubscribe in self._unsubscribes:
            unsubscribe()
        self._unsubscribes.clear()
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None
        self._snapshot_dirty = self._thread_dirty = self._feed_dirty = False

    # -------------------------------------------------------------------
    # Event handling
    # -------------------------------------------------------------------
    def _on_event(self, event: ChangeEvent) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._mark, event)

    def _mark(self, event: ChangeEvent) -> None:
        if not self._unsubscribes:
            return  # closed while the callback was in flight

        controller = self._controller
        touched = False
        if event.table == "trends":
            self._feed_dirty = touched = True
        elif event.table == "comment_likes":
            if event.entity_id is None or event.entity_id in controller.thread_comment_ids:
                self._thread_dirty = touched = True
        elif event.table in SNAPSHOT_TABLES:
            if event.entity_id is None or event.entity_id in controller.active_ids:
                self._snapshot_dirty = touched = True
            if event.table == "trend_comments" and (
                event.entity_id is None or event.entity_id == controller.open_thread_id
            ):
                self._thread_dirty = touched = True

        if not touched:
            return
        if self._pending is None or self._pending.done():
            self._pending = asyncio.ensure_future(self._flush(), loop=self._loop)

    async def _flush(self) -> None:
        # Events arriving while a refresh runs schedule one more pass.
        while self._snapshot_dirty or self._thread_dirty or self._feed_dirty:
            await asyncio.sleep(self._debounce)
            snapshot, self._snapshot_dirty = self._snapshot_dirty, False
            thread, self._thread_dirty = self._thread_dirty, False
            feed, self._feed_dirty = self._feed_dirty, False

            if feed and self._on_feed_change is not None:
                try:
                    await self._on_feed_change()
                except Exception:
                    logger.exception("Feed refresh after change event failed")
            if snapshot or feed:
                try:
                    await self._controller.refresh()
                except Exception:
                    logger.exception("Snapshot refresh after change event failed")
            if thread:
                try:
                    await self._controller.refresh_thread()
                except Exception:
                    logger.exception("Thread refresh after change event failed")
            self.refresh_count += 1
