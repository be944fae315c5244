"""
Authentication Service.

Single facade for every authentication concern the UI needs: sign-up,
password sign-in, OAuth initiation, sign-out, password reset, inbound
redirect resolution, and the observable session state.

Sits between the UI layer and the identity backend so that screens stay
thin form handlers.  All operations return ``Success`` / ``Failure``
values from :mod:`auth_session.models.result`; the UI never inspects raw
exceptions.

Concurrency
-----------
Execution is single-threaded asyncio.  At most one mutating operation
(sign-up, sign-in, OAuth, sign-out, reset) runs at a time per store;
a second call while one is pending returns ``Failure(BUSY)`` without
touching the backend.  The in-flight flag is released on every exit
path, and each operation's outcome is applied to the store in a single
``apply`` together with that release.
"""

from __future__ import annotations

import asyncio
import re
from collections import OrderedDict
from contextlib import asynccontextmanager
from types import TracebackType
from typing import Any, AsyncGenerator, Awaitable, Callable, Optional, TypeVar
from urllib.parse import urlsplit

from pydantic import BaseModel

from auth_session.backend.protocol import IdentityBackend
from auth_session.config import AppConfig
from auth_session.logger import StructuredLogger
from auth_session.models.enums import ErrorKind
from auth_session.models.result import Failure, Result, Success
from auth_session.models.session import Session, SignUpOutcome
from auth_session.models.state import ControllerState
from auth_session.services.base_service import BaseService
from auth_session.services.event_reconciler import EventReconciler
from auth_session.services.redirect_resolver import RedirectResolver
from auth_session.store import SessionStore, StateListener, Unsubscribe

T = TypeVar("T")

_BUSY_MESSAGE: str = "Another authentication operation is already in progress"

# Successful redirect outcomes kept so a re-delivered URI is not replayed.
HANDLED_REDIRECT_LIMIT: int = 32


class ValidationResult(BaseModel):
    """Result of a single client-side field validation check."""

    is_valid: bool
    error_message: Optional[str] = None


class AuthService(BaseService):
    """Centralised authentication facade.

    Receives all collaborators via ``__init__``.  Use
    :func:`auth_session.services.create_auth_service` to wire one.

    Parameters
    ----------
    backend:
        Identity backend client.
    store:
        The process-wide session store; this service and the reconciler
        are its only writers, both through ``apply``.
    reconciler:
        Event reconciler bound to the same store.
    redirect_resolver:
        Strategy chosen once for the backend's capabilities.
    config:
        Application configuration (redirect URLs, default provider,
        password policy).
    logger:
        Structured JSON logger for audit-grade logging.
    """

    def __init__(
        self,
        backend: IdentityBackend,
        store: SessionStore,
        reconciler: EventReconciler,
        redirect_resolver: RedirectResolver,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._backend: IdentityBackend = backend
        self._store: SessionStore = store
        self._reconciler: EventReconciler = reconciler
        self._redirect_resolver: RedirectResolver = redirect_resolver
        self._config: AppConfig = config
        self._redirects_in_flight: dict[str, asyncio.Future[Result[Session]]] = {}
        self._handled_redirects: OrderedDict[str, Success[Session]] = OrderedDict()

    # ==================================================================
    # Lifecycle
    # ==================================================================

    async def start(self) -> None:
        """Subscribe to backend events and bootstrap the current session."""
        await self._reconciler.start()

    def close(self) -> None:
        """Release the backend event subscription."""
        self._reconciler.close()

    async def __aenter__(self) -> "AuthService":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    # ==================================================================
    # State
    # ==================================================================

    def get_state(self) -> ControllerState:
        """Return the current state snapshot."""
        return self._store.get()

    def subscribe(self, listener: StateListener) -> Unsubscribe:
        """Register *listener* for state transitions; returns its remover."""
        return self._store.subscribe(listener)

    # ==================================================================
    # Validation helpers
    # ==================================================================

    @staticmethod
    def validate_password(password: str, min_length: int = 6) -> ValidationResult:
        """Enforce the sign-up password policy.

        Policy: at least *min_length* characters with one upper-case
        letter, one lower-case letter and one digit.
        """
        if len(password) < min_length:
            return ValidationResult(
                is_valid=False,
                error_message=f"Password must be at least {min_length} characters long",
            )
        if not (
            re.search(r"[a-z]", password)
            and re.search(r"[A-Z]", password)
            and re.search(r"\d", password)
        ):
            return ValidationResult(
                is_valid=False,
                error_message=(
                    "Password should contain at least one uppercase letter, "
                    "one lowercase letter, and one number"
                ),
            )
        return ValidationResult(is_valid=True)

    @staticmethod
    def normalize_email(email: str) -> str:
        """Normalise an email address: strip whitespace and lowercase."""
        return email.strip().lower()

    # ==================================================================
    # In-flight guard
    # ==================================================================

    def _busy_failure(self, operation: str) -> Optional[Failure]:
        if not self._store.get().pending:
            return None
        self._logger.info(
            "Rejected %s: another operation is pending.", operation,
            extra={"event": "BUSY", "operation": operation},
        )
        return Failure(kind=ErrorKind.BUSY, message=_BUSY_MESSAGE)

    @asynccontextmanager
    async def _in_flight(self) -> AsyncGenerator[dict[str, Any], None]:
        """Hold ``pending`` for the duration of the block.

        The block fills the yielded dict with the state changes of its
        outcome; they are applied together with ``pending=False`` on every
        exit path, including exceptions and cancellation.
        """
        self._store.apply(pending=True)
        changes: dict[str, Any] = {}
        try:
            yield changes
        finally:
            self._store.apply(pending=False, **changes)

    async def _run(
        self,
        operation: str,
        call: Callable[[], Awaitable[T]],
        on_success: Callable[[T, dict[str, Any]], None],
    ) -> Result[T]:
        busy = self._busy_failure(operation)
        if busy is not None:
            return busy

        async with self._in_flight() as changes:
            result = await self._call_backend(operation, call)
            if isinstance(result, Failure):
                changes["last_error"] = result.kind
            else:
                changes["last_error"] = None
                on_success(result.value, changes)
        return result

    # ==================================================================
    # Sign-up
    # ==================================================================

    async def sign_up(
        self,
        email: str,
        password: str,
        display_name: Optional[str] = None,
    ) -> Result[SignUpOutcome]:
        """Register a new account.

        The password policy is checked before any backend call.  On
        success ``needs_confirmation`` tells the UI whether the user must
        verify their email before a session exists; the store session is
        replaced only when the backend issued one.
        """
        busy = self._busy_failure("sign_up")
        if busy is not None:
            return busy

        pw_check = self.validate_password(password, self._config.PASSWORD_MIN_LENGTH)
        if not pw_check.is_valid:
            self._store.apply(last_error=ErrorKind.WEAK_PASSWORD)
            return Failure(
                kind=ErrorKind.WEAK_PASSWORD,
                message=pw_check.error_message or "Weak password",
            )

        email = self.normalize_email(email)
        name = display_name.strip() if display_name else None

        def on_success(outcome: SignUpOutcome, changes: dict[str, Any]) -> None:
            if outcome.session is not None:
                changes["session"] = outcome.session
            self._logger.info(
                "User registered: %s (needs confirmation: %s).",
                email,
                outcome.needs_confirmation,
                extra={"event": "SIGN_UP", "email": email},
            )

        return await self._run(
            "sign_up",
            lambda: self._backend.sign_up(email, password, name or None),
            on_success,
        )

    # ==================================================================
    # Sign-in
    # ==================================================================

    async def sign_in(self, email: str, password: str) -> Result[Session]:
        """Authenticate with email and password."""
        email = self.normalize_email(email)

        def on_success(session: Session, changes: dict[str, Any]) -> None:
            changes["session"] = session
            self._logger.info(
                "User authenticated: %s",
                session.user.email,
                extra={"event": "SIGN_IN", "user_id": session.user.id},
            )

        return await self._run(
            "sign_in",
            lambda: self._backend.sign_in_with_password(email, password),
            on_success,
        )

    async def sign_in_with_oauth(self, provider: Optional[str] = None) -> Result[str]:
        """Start an OAuth flow and return the provider authorisation URL.

        No session is established here; it arrives later through
        :meth:`resolve_redirect` or a backend event.
        """
        resolved_provider = provider or self._config.DEFAULT_OAUTH_PROVIDER
        redirect_uri = self._config.OAUTH_REDIRECT_URL

        def on_success(url: str, changes: dict[str, Any]) -> None:
            self._logger.info(
                "OAuth flow initiated with %s.", resolved_provider,
                extra={"event": "OAUTH_INITIATED", "redirect_uri": redirect_uri},
            )

        return await self._run(
            "sign_in_with_oauth",
            lambda: self._backend.initiate_oauth(resolved_provider, redirect_uri),
            on_success,
        )

    # ==================================================================
    # Sign-out
    # ==================================================================

    async def sign_out(self) -> Result[None]:
        """Revoke the server session and clear the local one."""
        current = self._store.get().session
        user_email = current.user.email if current is not None else "unknown"

        def on_success(_: None, changes: dict[str, Any]) -> None:
            changes["session"] = None
            self._logger.info(
                "User signed out: %s", user_email,
                extra={"event": "SIGN_OUT", "email": user_email},
            )

        return await self._run("sign_out", self._backend.sign_out, on_success)

    # ==================================================================
    # Password reset
    # ==================================================================

    async def reset_password(self, email: str) -> Result[None]:
        """Request a password-reset email.  Never establishes a session."""
        email = self.normalize_email(email)
        redirect_uri = self._config.PASSWORD_RESET_REDIRECT_URL

        def on_success(_: None, changes: dict[str, Any]) -> None:
            self._logger.info(
                "Password reset requested for %s.", email,
                extra={"event": "PASSWORD_RESET_REQUESTED", "email": email},
            )

        return await self._run(
            "reset_password",
            lambda: self._backend.request_password_reset(email, redirect_uri),
            on_success,
        )

    # ==================================================================
    # Inbound redirects
    # ==================================================================

    async def resolve_redirect(self, uri: str) -> Result[Session]:
        """Resolve an inbound deep-link URI into a session.

        Deliveries of a URI that is still resolving share that resolution.
        A URI that already established a session returns the same outcome
        without touching the backend or the state again; the most recent
        ``HANDLED_REDIRECT_LIMIT`` such URIs are remembered.  A URI without
        a session leaves the state untouched.
        """
        handled = self._handled_redirects.get(uri)
        if handled is not None:
            self._logger.debug(
                "Redirect already handled: %s", _describe_uri(uri),
                extra={"event": "REDIRECT_DUPLICATE"},
            )
            return handled

        future = self._redirects_in_flight.get(uri)
        if future is None:
            future = asyncio.ensure_future(self._resolve_and_apply(uri))
            self._redirects_in_flight[uri] = future
        else:
            self._logger.debug(
                "Redirect already resolving: %s", _describe_uri(uri),
                extra={"event": "REDIRECT_DUPLICATE"},
            )
        # Shielded so an abandoned caller does not drop the outcome.
        return await asyncio.shield(future)

    async def _resolve_and_apply(self, uri: str) -> Result[Session]:
        try:
            result = await self._redirect_resolver.resolve(uri)
        finally:
            self._redirects_in_flight.pop(uri, None)

        if isinstance(result, Success):
            self._remember_redirect(uri, result)
            self._store.apply(session=result.value, last_error=None)
            self._logger.info(
                "Session established from redirect for %s.",
                result.value.user.email,
                extra={"event": "REDIRECT_RESOLVED", "uri": _describe_uri(uri)},
            )
        elif result.kind != ErrorKind.NO_SESSION_IN_URL:
            self._store.apply(last_error=result.kind)
        return result

    def _remember_redirect(self, uri: str, result: Success[Session]) -> None:
        self._handled_redirects[uri] = result
        while len(self._handled_redirects) > HANDLED_REDIRECT_LIMIT:
            self._handled_redirects.popitem(last=False)


def _describe_uri(uri: str) -> str:
    """Return *uri* without its query and fragment, which may hold tokens."""
    try:
        parts = urlsplit(uri)
        return parts._replace(query="", fragment="").geturl()
    except (ValueError, TypeError, AttributeError):
        return "<malformed uri>"
