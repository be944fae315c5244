"""
Session Store.

Provides an injectable ``SessionStore`` that holds the controller's
``ControllerState`` for the lifetime of the process.

Usage::

    from auth_session.store import SessionStore

    store = SessionStore(logger=get_logger("store"))
    unsubscribe = store.subscribe(lambda state: print(state.session))
    store.apply(initializing=False)
    state = store.get()
"""

from __future__ import annotations

import threading
from typing import Any, Callable

from auth_session.logger import StructuredLogger
from auth_session.models.state import ControllerState

StateListener = Callable[[ControllerState], None]
Unsubscribe = Callable[[], None]


class SessionStore:
    """Single-writer holder of the current ``ControllerState``.

    Each instance maintains its own state, so tests can create isolated
    stores.  ``apply`` is the only mutation path: it swaps in a new frozen
    snapshot and then notifies listeners in subscription order.  A
    listener that raises is logged and skipped; the remaining listeners
    still run and the new state stays in place.
    """

    _FIELDS: frozenset[str] = frozenset(ControllerState.model_fields)

    def __init__(self, logger: StructuredLogger) -> None:
        self._logger: StructuredLogger = logger
        self._lock: threading.RLock = threading.RLock()
        self._state: ControllerState = ControllerState()
        self._listeners: list[StateListener] = []

    def get(self) -> ControllerState:
        """Return the current state snapshot."""
        with self._lock:
            return self._state

    def subscribe(self, listener: StateListener) -> Unsubscribe:
        """Register *listener* for every subsequent state transition.

        Returns a callable that removes the listener.  Calling it more
        than once is a no-op.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def apply(self, **changes: Any) -> ControllerState:
        """Merge *changes* into the state atomically and notify listeners.

        Raises:
            ValueError: If a field name is unknown, or if ``initializing``
                would be set back to ``True`` after it has cleared.
        """
        unknown = set(changes) - self._FIELDS
        if unknown:
            raise ValueError(f"Unknown controller state field(s): {sorted(unknown)}")

        with self._lock:
            if changes.get("initializing") is True and not self._state.initializing:
                raise ValueError("initializing cannot return to True once cleared")
            self._state = self._state.model_copy(update=changes)
            snapshot = self._state
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(snapshot)
            except Exception as exc:
                self._logger.error(
                    "State listener %r failed: %s", listener, exc,
                    exc_info=True,
                    extra={"event": "LISTENER_FAILED"},
                )
        return snapshot
