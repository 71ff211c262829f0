"""Explicit holder of the current identity, with change listeners."""

from __future__ import annotations

import logging
from collections.abc import Callable

from apptrack.errors import NotAuthenticatedError
from apptrack.models.identity import Identity

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Identity | None, Identity | None], None]


class SessionContext:
    def __init__(self, identity: Identity | None = None) -> None:
        self._identity = identity
        self._listeners: list[IdentityListener] = []

    @property
    def identity(self) -> Identity | None:
        return self._identity

    def require_identity(self) -> Identity:
        if self._identity is None:
            raise NotAuthenticatedError("No authenticated identity in session")
        return self._identity

    def set_identity(self, identity: Identity | None) -> None:
        """Switch identity and notify listeners with (old, new)."""
        old = self._identity
        self._identity = identity
        for listener in self._listeners[:]:
            try:
                listener(old, identity)
            except Exception:
                logger.exception("Identity listener %r failed", listener)

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
