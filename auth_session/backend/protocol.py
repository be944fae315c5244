"""
Identity Backend Contract.

Structural interface for the remote identity/session service.  The
controller depends only on this protocol; ``SupabaseIdentityBackend``
is the shipped implementation and tests substitute in-memory fakes.

Every method is asynchronous and individually fallible.  Declared
failures (the backend answered with an error) are raised as
:class:`BackendError`; anything else that escapes is treated by the
callers as unexpected.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol, Union, runtime_checkable

from auth_session.models.enums import AuthEventKind
from auth_session.models.session import Session, SignUpOutcome

AuthEventCallback = Callable[[Union[AuthEventKind, str], Optional[Session]], None]
Unsubscribe = Callable[[], None]


class BackendError(Exception):
    """A declared error returned by the identity backend.

    Attributes
    ----------
    message:
        The backend's message, preserved verbatim for the UI.
    status:
        HTTP status reported by the backend, when known.
    code:
        Machine-readable error code (e.g. ``"invalid_credentials"``).
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message: str = message
        self.status: Optional[int] = status
        self.code: Optional[str] = code


@runtime_checkable
class IdentityBackend(Protocol):
    """Operations the controller consumes from the identity backend."""

    @property
    def supports_redirect_exchange(self) -> bool:
        """``True`` when :meth:`exchange_redirect` is usable."""
        ...

    async def get_session(self) -> Optional[Session]:
        ...

    def subscribe_auth_events(self, callback: AuthEventCallback) -> Unsubscribe:
        """Register *callback* for auth-state events.

        Events are delivered in backend order as ``(kind, session)``.
        The returned callable releases the subscription.
        """
        ...

    async def sign_up(
        self,
        email: str,
        password: str,
        display_name: Optional[str] = None,
    ) -> SignUpOutcome:
        ...

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        ...

    async def initiate_oauth(self, provider: str, redirect_uri: str) -> str:
        """Return the provider authorisation URL to open in a browser."""
        ...

    async def exchange_redirect(self, uri: str) -> Optional[Session]:
        """Resolve a session directly from an inbound redirect URI."""
        ...

    async def set_session(self, access_token: str, refresh_token: str) -> Session:
        ...

    async def sign_out(self) -> None:
        ...

    async def request_password_reset(self, email: str, redirect_uri: str) -> None:
        ...
