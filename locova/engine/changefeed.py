"""
locova.engine.changefeed — In-Process Change Feed with PG LISTEN/NOTIFY
=========================================================================

Services announce committed changes with :func:`notify_before_commit`,
which issues a ``NOTIFY`` inside the writing transaction so the message
is delivered only if the write commits.  A :class:`ChangeFeed` LISTENs on
that channel from a background thread and fans each parsed
:class:`ChangeEvent` out to the callbacks subscribed to its table.

There is no replay: a notification missed while the listener is down is
made up for by the next manual refresh.
"""

from __future__ import annotations

import logging
import random
import select as _select
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.orm import Session

from locova.engine.events import WATCHED_TABLES, ChangeEvent

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

NOTIFY_CHANNEL = "locova_changes"

ChangeCallback = Callable[[ChangeEvent], None]


class ChangeFeed:
    """Per-table fan-out of change events.

    Usage::

        feed = ChangeFeed(engine)
        unsubscribe = feed.subscribe("trend_likes", on_change)
        feed.start_listener()
        ...
        unsubscribe()
        feed.stop_listener()
    """

    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine
        self._lock = threading.Lock()
        # table → callbacks, in subscription order
        self._subscribers: dict[str, list[ChangeCallback]] = {}

        self._listener_healthy = False
        self._listener_failed = False
        self._listener_thread: threading.Thread | None = None
        self._shutdown_event = threading.Event()

    # -------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------
    def subscribe(self, table: str, callback: ChangeCallback) -> Callable[[], None]:
        """Subscribe *callback* to *table*; returns the unsubscribe handle."""
        if table not in WATCHED_TABLES:
            raise ValueError(
                f"Cannot subscribe to '{table}'. Allowed: {sorted(WATCHED_TABLES)}"
            )
        with self._lock:
            self._subscribers.setdefault(table, []).append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(table, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return _unsubscribe

    def subscriber_count(self, table: str | None = None) -> int:
        with self._lock:
            if table is not None:
                return len(self._subscribers.get(table, []))
            return sum(len(v) for v in self._subscribers.values())

    def publish(self, event: ChangeEvent) -> int:
        """Deliver *event* to its table's subscribers; returns how many ran.

        A failing callback is logged and does not stop the others.
        """
        with self._lock:
            callbacks = list(self._subscribers.get(event.table, []))
        delivered = 0
        for callback in callbacks:
            try:
                callback(event)
                delivered += 1
            except Exception:
                logger.exception("Change callback failed for %s", event.table)
        return delivered

    def handle_notify(self, payload: str) -> None:
        """Parse a raw NOTIFY payload and publish it."""
        try:
            event = ChangeEvent.from_payload(payload)
        except ValueError:
            logger.warning("Ignoring malformed change payload: %s", payload)
            return
        if event.table not in WATCHED_TABLES:
            logger.warning("Unknown table in NOTIFY: %s — ignoring", event.table)
            return
        self.publish(event)

    # -------------------------------------------------------------------
    # PG LISTEN thread
    # -------------------------------------------------------------------
    @property
    def listener_healthy(self) -> bool:
        """Return True if the LISTEN thread is alive and connected."""
        return self._listener_healthy and not self._listener_failed

    @property
    def listener_failed(self) -> bool:
        """Return True if the listener exhausted reconnect attempts."""
        return self._listener_failed

    def start_listener(self) -> None:
        """Start a background thread that LISTENs on :data:`NOTIFY_CHANNEL`.

        Reconnects with exponential backoff plus jitter and gives up after
        ten consecutive failures.
        """
        if self._engine is None:
            raise RuntimeError("ChangeFeed needs an engine to listen")
        if self._listener_thread is not None and self._listener_thread.is_alive():
            return

        import psycopg2

        max_backoff = 60.0
        base_backoff = 1.0
        max_reconnect_attempts = 10

        def _listen_thread() -> None:
            raw_url = self._engine.url.render_as_string(hide_password=False)
            dsn = raw_url.replace("postgresql+psycopg2://", "postgresql://")
            attempt = 0

            while not self._shutdown_event.is_set():
                conn = None
                try:
                    conn = psycopg2.connect(dsn)
                    conn.set_isolation_level(0)  # autocommit
                    cur = conn.cursor()
                    cur.execute(f"LISTEN {NOTIFY_CHANNEL};")
                    logger.info("PG LISTEN started on channel '%s'", NOTIFY_CHANNEL)

                    attempt = 0
                    self._listener_healthy = True

                    while not self._shutdown_event.is_set():
                        if _select.select([conn], [], [], 5.0) == ([], [], []):
                            continue
                        conn.poll()
                        while conn.notifies:
                            notify = conn.notifies.pop(0)
                            logger.debug("NOTIFY received: %s", notify.payload)
                            self.handle_notify(notify.payload or "")

                except Exception:
                    self._listener_healthy = False
                    attempt += 1
                    if attempt >= max_reconnect_attempts:
                        logger.critical(
                            "PG LISTEN exhausted %d retries. Realtime refresh disabled.",
                            max_reconnect_attempts,
                        )
                        self._listener_failed = True
                        break

                    backoff = min(base_backoff * (2 ** (attempt - 1)), max_backoff)
                    wait = backoff + random.uniform(0, backoff * 0.5)
                    logger.exception(
                        "PG LISTEN connection lost (attempt %d/%d). "
                        "Reconnecting in %.1fs…",
                        attempt, max_reconnect_attempts, wait,
                    )
                    if self._shutdown_event.wait(timeout=wait):
                        break
                finally:
                    if conn is not None:
                        try:
                            conn.close()
                        except Exception:
                            logger.debug("Error closing LISTEN connection", exc_info=True)

            self._listener_healthy = False

        self._shutdown_event.clear()
        thread = threading.Thread(target=_listen_thread, daemon=True, name="pg-change-listener")
        self._listener_thread = thread
        thread.start()
        logger.info("PG change listener thread started")

    def stop_listener(self) -> None:
        """Signal the listener thread to stop and wait for it to exit."""
        self._shutdown_event.set()
        if self._listener_thread is not None and self._listener_thread.is_alive():
            self._listener_thread.join(timeout=5)
            logger.info("PG change listener thread stopped")
        self._listener_thread = None


def notify_before_commit(session: Session, event: ChangeEvent) -> None:
    """Queue a NOTIFY for *event* inside the current transaction.

    Only PostgreSQL has LISTEN/NOTIFY; on other dialects this is a no-op.
    """
    if event.table not in WATCHED_TABLES:
        raise ValueError(
            f"Invalid table name for NOTIFY: '{event.table}'. "
            f"Allowed: {sorted(WATCHED_TABLES)}"
        )
    bind = session.get_bind()
    if bind.dialect.name != "postgresql":
        return
    session.execute(
        text("SELECT pg_notify(:channel, :payload)"),
        {"channel": NOTIFY_CHANNEL, "payload": event.to_payload()},
    )
