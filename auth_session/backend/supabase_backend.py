"""
Supabase Identity Backend.

Adapts ``supabase.AsyncClient`` to the :class:`IdentityBackend` protocol.

The adapter owns three translations so that nothing Supabase-specific
leaks into the controller:

- Supabase ``Session`` / ``User`` objects become the frozen domain models
  in :mod:`auth_session.models.session`.
- ``supabase.AuthError`` (and its ``AuthApiError`` subclass) becomes
  :class:`BackendError` with message, status and code preserved.
- Redirect URLs and OAuth query parameters come from ``AppConfig``.

Usage (dependency injection at app startup)::

    from auth_session.backend import SupabaseIdentityBackend

    backend = await SupabaseIdentityBackend.create(
        config=get_config(),
        logger=get_logger("backend"),
    )
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Generator, Optional

from supabase import AsyncClient, AuthError, acreate_client

from auth_session.backend.protocol import AuthEventCallback, BackendError, Unsubscribe
from auth_session.config import AppConfig
from auth_session.logger import StructuredLogger
from auth_session.models.session import Session, SignUpOutcome, User


_DISPLAY_NAME_KEYS: tuple[str, ...] = ("full_name", "display_name", "name")


@contextmanager
def _translate_auth_errors() -> Generator[None, None, None]:
    """Re-raise Supabase auth errors as :class:`BackendError`."""
    try:
        yield
    except AuthError as exc:
        raise BackendError(
            message=exc.message,
            status=getattr(exc, "status", None),
            code=getattr(exc, "code", None),
        ) from exc


def to_domain_user(raw_user: Any) -> User:
    """Convert a Supabase ``User`` into the domain ``User`` model."""
    metadata: dict[str, Any] = getattr(raw_user, "user_metadata", None) or {}
    display_name: Optional[str] = None
    for key in _DISPLAY_NAME_KEYS:
        if metadata.get(key):
            display_name = str(metadata[key])
            break
    return User(
        id=raw_user.id,
        email=raw_user.email or "",
        display_name=display_name,
    )


def to_domain_session(raw_session: Any) -> Optional[Session]:
    """Convert a Supabase ``Session`` into the domain ``Session`` model.

    Returns ``None`` for a missing session or one without a user.
    ``expires_at`` falls back to ``now + expires_in`` when the backend
    omits the absolute timestamp.
    """
    if raw_session is None or getattr(raw_session, "user", None) is None:
        return None

    expires_at_raw: Optional[int] = getattr(raw_session, "expires_at", None)
    if expires_at_raw is not None:
        expires_at = datetime.fromtimestamp(expires_at_raw, tz=timezone.utc)
    else:
        expires_in: int = getattr(raw_session, "expires_in", None) or 0
        expires_at = datetime.now(tz=timezone.utc) + timedelta(seconds=expires_in)

    return Session(
        user=to_domain_user(raw_session.user),
        access_token=raw_session.access_token,
        refresh_token=raw_session.refresh_token or "",
        expires_at=expires_at,
    )


class SupabaseIdentityBackend:
    """Supabase Auth implementation of :class:`IdentityBackend`.

    Parameters
    ----------
    client:
        An initialised ``supabase.AsyncClient``.
    config:
        Application configuration (redirect URLs, OAuth query params).
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        client: AsyncClient,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        self._client: AsyncClient = client
        self._config: AppConfig = config
        self._logger: StructuredLogger = logger

    @classmethod
    async def create(
        cls,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> "SupabaseIdentityBackend":
        """Build the async Supabase client from *config* and wrap it.

        Raises
        ------
        ValueError
            If the Supabase URL or anon key is not configured.
        """
        config.validate_supabase_config()
        client = await acreate_client(
            config.SUPABASE_URL,
            config.SUPABASE_ANON_KEY.get_secret_value(),
        )
        logger.info("Supabase client initialized.")
        return cls(client=client, config=config, logger=logger)

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    @property
    def supports_redirect_exchange(self) -> bool:
        """``True`` when the installed auth client can parse redirect URLs."""
        return callable(getattr(self._client.auth, "get_session_from_url", None))

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def get_session(self) -> Optional[Session]:
        with _translate_auth_errors():
            raw_session = await self._client.auth.get_session()
        return to_domain_session(raw_session)

    def subscribe_auth_events(self, callback: AuthEventCallback) -> Unsubscribe:
        def _on_change(event: str, raw_session: Any) -> None:
            callback(event, to_domain_session(raw_session))

        subscription = self._client.auth.on_auth_state_change(_on_change)
        return subscription.unsubscribe

    async def set_session(self, access_token: str, refresh_token: str) -> Session:
        with _translate_auth_errors():
            response = await self._client.auth.set_session(access_token, refresh_token)
        session = to_domain_session(response.session)
        if session is None:
            raise BackendError("Backend did not return a session for the token pair")
        return session

    async def exchange_redirect(self, uri: str) -> Optional[Session]:
        resolver = getattr(self._client.auth, "get_session_from_url", None)
        if resolver is None:
            raise NotImplementedError("Auth client cannot resolve sessions from URLs")
        with _translate_auth_errors():
            response = await resolver(uri)
        # Some client versions return ``(session, redirect_type)``.
        raw_session = response[0] if isinstance(response, tuple) else getattr(
            response, "session", response,
        )
        return to_domain_session(raw_session)

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    async def sign_up(
        self,
        email: str,
        password: str,
        display_name: Optional[str] = None,
    ) -> SignUpOutcome:
        options: dict[str, Any] = {
            "email_redirect_to": self._config.EMAIL_CONFIRM_REDIRECT_URL,
        }
        if display_name:
            options["data"] = {"full_name": display_name}

        with _translate_auth_errors():
            response = await self._client.auth.sign_up({
                "email": email,
                "password": password,
                "options": options,
            })

        session = to_domain_session(response.session)
        user = to_domain_user(response.user) if response.user is not None else None
        return SignUpOutcome(
            user=user,
            session=session,
            needs_confirmation=session is None,
        )

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        with _translate_auth_errors():
            response = await self._client.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        session = to_domain_session(response.session)
        if session is None:
            raise BackendError("Backend did not return a session for the credentials")
        return session

    async def initiate_oauth(self, provider: str, redirect_uri: str) -> str:
        with _translate_auth_errors():
            response = await self._client.auth.sign_in_with_oauth({
                "provider": provider,
                "options": {
                    "redirect_to": redirect_uri,
                    "query_params": dict(self._config.OAUTH_QUERY_PARAMS),
                },
            })
        if not response.url:
            raise BackendError(f"Failed to get {provider} OAuth URL")
        return response.url

    async def sign_out(self) -> None:
        with _translate_auth_errors():
            await self._client.auth.sign_out()

    async def request_password_reset(self, email: str, redirect_uri: str) -> None:
        with _translate_auth_errors():
            await self._client.auth.reset_password_for_email(
                email, {"redirect_to": redirect_uri},
            )
