"""
locova.session — Explicit Session Context
==========================================

Holds "who is signed in" for one client.  Anything that needs the
current user receives this object instead of reading ambient global
state, and anything that must react to sign-in / sign-out registers a
listener here, at the one subscription point.  Listeners stay registered
across sign-out and sign-in until they unsubscribe or the context is
closed.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

SessionListener = Callable[[str | None], None]


class AuthRequiredError(Exception):
    """An action needs a signed-in user and none is present."""

    def __init__(self, action: str = "this action") -> None:
        super().__init__(f"Please log in to perform {action}.")
        self.action = action


class SessionContext:
    """Current-user holder with change listeners.

    Usage::

        ctx = SessionContext()
        unsubscribe = ctx.subscribe(lambda uid: print("now", uid))
        ctx.sign_in("3f2a…")
        user_id = ctx.require_user("liking a trend")
        ctx.sign_out()
    """

    def __init__(self, user_id: str | None = None) -> None:
        self._user_id = user_id
        self._lock = threading.Lock()
        self._listeners: list[SessionListener] = []

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def is_authenticated(self) -> bool:
        return self._user_id is not None

    def require_user(self, action: str = "this action") -> str:
        """Return the signed-in user id or raise :class:`AuthRequiredError`."""
        user_id = self._user_id
        if not user_id:
            raise AuthRequiredError(action)
        return user_id

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register *listener*; returns an idempotent unsubscribe handle."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def sign_in(self, user_id: str) -> None:
        if not user_id:
            raise ValueError("user_id must be a non-empty string")
        if user_id == self._user_id:
            return
        self._user_id = user_id
        logger.info("Session signed in: %s", user_id)
        self._notify(user_id)

    def sign_out(self) -> None:
        """Clear the user and notify listeners."""
        if self._user_id is None:
            return
        self._user_id = None
        logger.info("Session signed out")
        self._notify(None)

    def close(self) -> None:
        """Drop every listener; the context stops announcing changes."""
        with self._lock:
            self._listeners.clear()

    def _notify(self, user_id: str | None) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(user_id)
            except Exception:
                logger.exception("Session listener failed")
