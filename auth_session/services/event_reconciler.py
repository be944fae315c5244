"""
Event Reconciler.

Keeps ``SessionStore`` aligned with the identity backend's pushed
auth-state events and performs the one-time bootstrap fetch of the
current session.

Ordering
--------
The event subscription is installed before the initial ``get_session()``
is dispatched, so no event pushed during startup is missed.  The two
race by construction: whichever resolves first clears ``initializing``
and any later arrival still applies its session (last write wins).

The reconciler does not retry.  If the backend's stream stops, the
session stays frozen until the next start.
"""

from __future__ import annotations

from typing import Optional, Union

from auth_session.backend.protocol import IdentityBackend, Unsubscribe
from auth_session.logger import StructuredLogger
from auth_session.models.enums import AuthEventKind
from auth_session.models.result import Failure
from auth_session.models.session import Session
from auth_session.services.base_service import BaseService
from auth_session.store import SessionStore


class EventReconciler(BaseService):
    """Merges backend auth events into a ``SessionStore``.

    Parameters
    ----------
    backend:
        Identity backend providing the event stream and ``get_session``.
    store:
        The store to update.  All writes go through ``store.apply``.
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        backend: IdentityBackend,
        store: SessionStore,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._backend: IdentityBackend = backend
        self._store: SessionStore = store
        self._unsubscribe: Optional[Unsubscribe] = None
        self._started: bool = False
        self._event_seen: bool = False

    @property
    def is_subscribed(self) -> bool:
        """``True`` while the backend subscription is held."""
        return self._unsubscribe is not None

    async def start(self) -> None:
        """Subscribe to backend events, then bootstrap the session.

        Idempotent: only the first call subscribes and fetches.
        """
        if self._started:
            return
        self._started = True

        self._unsubscribe = self._backend.subscribe_auth_events(self._on_event)
        self._logger.debug("Subscribed to auth events.")

        await self._bootstrap()

    def close(self) -> None:
        """Release the backend subscription.  Safe to call repeatedly."""
        if self._unsubscribe is None:
            return
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        try:
            unsubscribe()
        except Exception as exc:
            self._logger.warning("Failed to release auth event subscription: %s", exc)
        self._logger.debug("Auth event subscription released.")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _on_event(
        self,
        kind: Union[AuthEventKind, str],
        session: Optional[Session],
    ) -> None:
        try:
            self._event_seen = True
            self._logger.info(
                "Auth state changed: %s %s",
                kind,
                session.user.email if session is not None else None,
                extra={"event": "AUTH_EVENT", "kind": str(kind)},
            )
            self._store.apply(session=session, initializing=False, last_error=None)
        except Exception as exc:
            self._logger.error(
                "Failed to reconcile auth event %s: %s", kind, exc,
                exc_info=True,
                extra={"event": "AUTH_EVENT_FAILED"},
            )

    async def _bootstrap(self) -> None:
        result = await self._call_backend("get_session", self._backend.get_session)

        if isinstance(result, Failure):
            if self._event_seen:
                self._store.apply(initializing=False)
            else:
                self._store.apply(initializing=False, last_error=result.kind)
            return

        self._store.apply(session=result.value, initializing=False)
        self._logger.info(
            "Initial session resolved (authenticated=%s).",
            result.value is not None,
            extra={"event": "INITIAL_SESSION"},
        )
