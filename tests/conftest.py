"""Pytest configuration and fixtures for auth_session tests."""

import asyncio
import io
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

# Keep test runs from writing a rotating log file into the working tree.
os.environ.setdefault("LOG_FILE", "")

import pytest

from auth_session.backend.protocol import AuthEventCallback, BackendError, Unsubscribe
from auth_session.config import AppConfig
from auth_session.logger import StructuredLogger
from auth_session.models import Session, SignUpOutcome, User
from auth_session.services import create_auth_service
from auth_session.store import SessionStore


def make_session(
    user_id: str = "user-a",
    email: str = "a@b.com",
    access_token: str = "access-a",
    refresh_token: str = "refresh-a",
    display_name: Optional[str] = None,
) -> Session:
    """Build a domain session for tests."""
    return Session(
        user=User(id=user_id, email=email, display_name=display_name),
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=datetime.now(tz=timezone.utc) + timedelta(hours=1),
    )


class FakeBackend:
    """In-memory identity backend.

    Each operation records its arguments in ``calls``.  Set ``errors[name]``
    to an exception to make that operation raise, or ``gates[name]`` to an
    ``asyncio.Event`` to hold the operation until the event is set.
    """

    def __init__(self, supports_redirect_exchange: bool = False) -> None:
        self._supports_redirect_exchange = supports_redirect_exchange
        self.calls: list[tuple] = []
        self.errors: dict[str, Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.callbacks: list[AuthEventCallback] = []
        self.unsubscribed: int = 0

        self.current_session: Optional[Session] = None
        self.sign_in_session: Session = make_session()
        self.sign_up_outcome: SignUpOutcome = SignUpOutcome(
            user=User(id="user-new", email="new@b.com"),
            session=None,
            needs_confirmation=True,
        )
        self.exchange_result: Optional[Session] = make_session(access_token="exchanged")
        self.oauth_url: str = "https://accounts.example.com/o/oauth2/auth?state=xyz"

    @property
    def supports_redirect_exchange(self) -> bool:
        return self._supports_redirect_exchange

    async def _enter(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        error = self.errors.get(name)
        if error is not None:
            raise error

    def called(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    def emit(self, kind: str, session: Optional[Session]) -> None:
        for callback in list(self.callbacks):
            callback(kind, session)

    # -- IdentityBackend ---------------------------------------------------

    async def get_session(self) -> Optional[Session]:
        await self._enter("get_session")
        return self.current_session

    def subscribe_auth_events(self, callback: AuthEventCallback) -> Unsubscribe:
        self.calls.append(("subscribe_auth_events",))
        self.callbacks.append(callback)

        def unsubscribe() -> None:
            self.unsubscribed += 1
            if callback in self.callbacks:
                self.callbacks.remove(callback)

        return unsubscribe

    async def sign_up(self, email, password, display_name=None) -> SignUpOutcome:
        await self._enter("sign_up", email, password, display_name)
        return self.sign_up_outcome

    async def sign_in_with_password(self, email, password) -> Session:
        await self._enter("sign_in_with_password", email, password)
        return self.sign_in_session

    async def initiate_oauth(self, provider, redirect_uri) -> str:
        await self._enter("initiate_oauth", provider, redirect_uri)
        return self.oauth_url

    async def exchange_redirect(self, uri) -> Optional[Session]:
        await self._enter("exchange_redirect", uri)
        return self.exchange_result

    async def set_session(self, access_token, refresh_token) -> Session:
        await self._enter("set_session", access_token, refresh_token)
        return make_session(access_token=access_token, refresh_token=refresh_token)

    async def sign_out(self) -> None:
        await self._enter("sign_out")

    async def request_password_reset(self, email, redirect_uri) -> None:
        await self._enter("request_password_reset", email, redirect_uri)


@pytest.fixture
def log_stream():
    """Captured JSON log output."""
    return io.StringIO()


@pytest.fixture
def logger(log_stream):
    """Structured logger writing to an in-memory stream only."""
    structured = StructuredLogger(name="tests.auth_session", log_file="")
    # Handlers persist across tests for a given name; point them at this stream.
    for handler in structured.logger.handlers:
        handler.setStream(log_stream)
    structured.logger.setLevel("DEBUG")
    for handler in structured.logger.handlers:
        handler.setLevel("DEBUG")
    return structured


@pytest.fixture
def config():
    """Configuration isolated from any local .env file."""
    return AppConfig(
        _env_file=None,
        SUPABASE_URL="https://test.supabase.co",
        SUPABASE_ANON_KEY="anon-key",
        APP_SCHEME="app",
    )


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def store(logger):
    return SessionStore(logger=logger)


@pytest.fixture
def service(backend, config, logger, store):
    return create_auth_service(backend=backend, config=config, logger=logger, store=store)


@pytest.fixture
def signed_in_service(service, store):
    """Service whose store already holds a session."""
    store.apply(session=make_session(), initializing=False)
    return service
