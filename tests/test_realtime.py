"""
tests/test_realtime.py — InvalidationTrigger
=============================================

Change events coalesce into one debounced refresh through the same
path a manual refresh takes.
"""

from __future__ import annotations

import asyncio
import threading
from unittest.mock import AsyncMock, MagicMock

from conftest import run_async

from locova.engine.changefeed import ChangeFeed
from locova.engine.events import ChangeEvent, ChangeOp
from locova.services.engagement_controller import EngagementController
from locova.services.realtime_service import InvalidationTrigger

SETTLE = 0.1


def _controller(active=("t1",), thread_id=None, comment_ids=frozenset()):
    ctrl = MagicMock(spec=EngagementController)
    ctrl.active_ids = tuple(active)
    ctrl.open_thread_id = thread_id
    ctrl.thread_comment_ids = frozenset(comment_ids)
    ctrl.refresh = AsyncMock(return_value=True)
    ctrl.refresh_thread = AsyncMock(return_value=True)
    return ctrl


def _like(trend_id: str) -> ChangeEvent:
    return ChangeEvent("trend_likes", ChangeOp.INSERT, trend_id, "someone")


class TestInvalidationTrigger:
    def test_burst_coalesces_into_one_refresh(self):
        ctrl = _controller()

        async def _inner():
            feed = ChangeFeed()
            trigger = InvalidationTrigger(feed, ctrl, debounce_ms=20)
            trigger.start()
            for _ in range(5):
                feed.publish(_like("t1"))
            await asyncio.sleep(SETTLE)
            trigger.close()
            return trigger.refresh_count

        assert run_async(_inner()) == 1
        ctrl.refresh.assert_awaited_once()
        ctrl.refresh_thread.assert_not_awaited()

    def test_refresh_error_keeps_trigger_alive(self):
        ctrl = _controller()
        ctrl.refresh = AsyncMock(side_effect=[RuntimeError("render bug"), True])

        async def _inner():
            feed = ChangeFeed()
            trigger = InvalidationTrigger(feed, ctrl, debounce_ms=10)
            trigger.start()
            feed.publish(_like("t1"))
            await asyncio.sleep(SETTLE)
            feed.publish(_like("t1"))
            await asyncio.sleep(SETTLE)
            trigger.close()
            return trigger.refresh_count

        assert run_async(_inner()) == 2
        assert ctrl.refresh.await_count == 2

    def test_unrendered_trend_is_ignored(self):
        ctrl = _controller(active=("t1",))

        async def _inner():
            feed = ChangeFeed()
            trigger = InvalidationTrigger(feed, ctrl, debounce_ms=10)
            trigger.start()
            feed.publish(_like("elsewhere"))
            await asyncio.sleep(SETTLE)
            trigger.close()

        run_async(_inner())
        ctrl.refresh.assert_not_awaited()

    def test_comment_on_open_thread_refreshes_both(self):
        ctrl = _controller(active=("t1",), thread_id="t1")

        async def _inner():
            feed = ChangeFeed()
            trigger = InvalidationTrigger(feed, ctrl, debounce_ms=10)
            trigger.start()
            feed.publish(ChangeEvent("trend_comments", ChangeOp.INSERT, "t1", "x"))
            await asyncio.sleep(SETTLE)
            trigger.close()

        run_async(_inner())
        ctrl.refresh.assert_awaited_once()
        ctrl.refresh_thread.assert_awaited_once()

    def test_comment_like_in_thread_refreshes_thread_only(self):
        ctrl = _controller(active=(), thread_id="t1", comment_ids={"c1"})

        async def _inner():
            feed = ChangeFeed()
            trigger = InvalidationTrigger(feed, ctrl, debounce_ms=10)
            trigger.start()
            feed.publish(ChangeEvent("comment_likes", ChangeOp.DELETE, "c1", "x"))
            feed.publish(ChangeEvent("comment_likes", ChangeOp.INSERT, "c-other", "x"))
            await asyncio.sleep(SETTLE)
            trigger.close()

        run_async(_inner())
        ctrl.refresh.assert_not_awaited()
        ctrl.refresh_thread.assert_awaited_once()

    def test_events_from_listener_thread(self):
        ctrl = _controller()

        async def _inner():
            feed = ChangeFeed()
            trigger = InvalidationTrigger(feed, ctrl, debounce_ms=20)
            trigger.start()
            worker = threading.Thread(
                target=lambda: [feed.publish(_like("t1")) for _ in range(3)]
            )
            worker.start()
            worker.join()
            await asyncio.sleep(SETTLE)
            trigger.close()

        run_async(_inner())
        ctrl.refresh.assert_awaited_once()

    def test_new_trend_calls_feed_refresher(self):
        ctrl = _controller()
        on_feed_change = AsyncMock()

        async def _inner():
            feed = ChangeFeed()
            trigger = InvalidationTrigger(
                feed, ctrl, debounce_ms=10, on_feed_change=on_feed_change
            )
            trigger.start()
            feed.publish(ChangeEvent("trends", ChangeOp.INSERT, "t-new", "x"))
            await asyncio.sleep(SETTLE)
            trigger.close()

        run_async(_inner())
        on_feed_change.assert_awaited_once()
        ctrl.refresh.assert_awaited_once()

    def test_trends_not_watched_without_refresher(self):
        ctrl = _controller()

        async def _inner():
            feed = ChangeFeed()
            InvalidationTrigger(feed, ctrl).start()
            return feed.subscriber_count("trends"), feed.subscriber_count()

        assert run_async(_inner()) == (0, 4)

    def test_close_unsubscribes_and_drops_pending(self):
        ctrl = _controller()

        async def _inner():
            feed = ChangeFeed()
            trigger = InvalidationTrigger(feed, ctrl, debounce_ms=50)
            trigger.start()
            feed.publish(_like("t1"))
            await asyncio.sleep(0)
            trigger.close()
            feed.publish(_like("t1"))
            await asyncio.sleep(SETTLE)
            return feed.subscriber_count(), trigger.active

        assert run_async(_inner()) == (0, False)
        ctrl.refresh.assert_not_awaited()
