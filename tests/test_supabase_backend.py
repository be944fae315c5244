"""Tests for the Supabase identity backend adapter."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from supabase import AuthApiError

from auth_session.backend import BackendError, IdentityBackend, SupabaseIdentityBackend
from auth_session.backend.supabase_backend import to_domain_session

_AUTH_METHODS = [
    "get_session",
    "on_auth_state_change",
    "sign_up",
    "sign_in_with_password",
    "sign_in_with_oauth",
    "set_session",
    "sign_out",
    "reset_password_for_email",
]


def raw_user(user_id="u1", email="a@b.com", metadata=None):
    return SimpleNamespace(id=user_id, email=email, user_metadata=metadata or {})


def raw_session(access_token="at", refresh_token="rt", expires_at=1_700_000_000, user=None):
    return SimpleNamespace(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=expires_at,
        expires_in=3600,
        user=user or raw_user(),
    )


@pytest.fixture
def mock_supabase():
    """Create a mock Supabase async client without a URL resolver."""
    client = MagicMock()
    client.auth = MagicMock(spec=_AUTH_METHODS)
    for name in _AUTH_METHODS:
        setattr(client.auth, name, AsyncMock())
    client.auth.on_auth_state_change = MagicMock()
    return client


@pytest.fixture
def adapter(mock_supabase, config, logger):
    return SupabaseIdentityBackend(client=mock_supabase, config=config, logger=logger)


class TestConversions:

    def test_session_conversion(self):
        session = to_domain_session(
            raw_session(user=raw_user(metadata={"full_name": "Ann Lee"})),
        )

        assert session.user.id == "u1"
        assert session.user.display_name == "Ann Lee"
        assert session.expires_at == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)

    def test_missing_refresh_token_becomes_empty(self):
        session = to_domain_session(raw_session(refresh_token=None))
        assert session.refresh_token == ""

    def test_expires_at_derived_from_expires_in(self):
        session = to_domain_session(raw_session(expires_at=None))
        assert session.expires_at > datetime.now(tz=timezone.utc)

    def test_none_session(self):
        assert to_domain_session(None) is None


class TestSupabaseIdentityBackend:

    def test_satisfies_protocol(self, adapter):
        assert isinstance(adapter, IdentityBackend)

    def test_redirect_exchange_capability(self, adapter, config, logger):
        assert adapter.supports_redirect_exchange is False

        client = MagicMock()
        client.auth.get_session_from_url = AsyncMock()
        other = SupabaseIdentityBackend(client=client, config=config, logger=logger)
        assert other.supports_redirect_exchange is True

    @pytest.mark.asyncio
    async def test_sign_in_with_password(self, adapter, mock_supabase):
        mock_supabase.auth.sign_in_with_password.return_value = SimpleNamespace(
            user=raw_user(), session=raw_session(),
        )

        session = await adapter.sign_in_with_password("a@b.com", "Secret123")

        assert session.access_token == "at"
        mock_supabase.auth.sign_in_with_password.assert_awaited_once_with(
            {"email": "a@b.com", "password": "Secret123"},
        )

    @pytest.mark.asyncio
    async def test_auth_api_error_translated(self, adapter, mock_supabase):
        mock_supabase.auth.sign_in_with_password.side_effect = AuthApiError(
            "Invalid login credentials", 400, "invalid_credentials",
        )

        with pytest.raises(BackendError) as excinfo:
            await adapter.sign_in_with_password("a@b.com", "short")

        assert excinfo.value.message == "Invalid login credentials"
        assert excinfo.value.status == 400
        assert excinfo.value.code == "invalid_credentials"

    @pytest.mark.asyncio
    async def test_sign_up_without_session_needs_confirmation(self, adapter, mock_supabase):
        mock_supabase.auth.sign_up.return_value = SimpleNamespace(
            user=raw_user(user_id="new"), session=None,
        )

        outcome = await adapter.sign_up("new@b.com", "Secret123", "Ann")

        assert outcome.needs_confirmation is True
        assert outcome.user.id == "new"
        payload = mock_supabase.auth.sign_up.await_args.args[0]
        assert payload["options"]["data"] == {"full_name": "Ann"}
        assert payload["options"]["email_redirect_to"] == "app://auth/confirm"

    @pytest.mark.asyncio
    async def test_initiate_oauth(self, adapter, mock_supabase):
        mock_supabase.auth.sign_in_with_oauth.return_value = SimpleNamespace(
            provider="google", url="https://accounts.example.com/auth",
        )

        url = await adapter.initiate_oauth("google", "app://auth/callback")

        assert url == "https://accounts.example.com/auth"
        payload = mock_supabase.auth.sign_in_with_oauth.await_args.args[0]
        assert payload["provider"] == "google"
        assert payload["options"]["redirect_to"] == "app://auth/callback"
        assert payload["options"]["query_params"] == {"access_type": "offline", "prompt": "consent"}

    @pytest.mark.asyncio
    async def test_set_session_without_result_is_backend_error(self, adapter, mock_supabase):
        mock_supabase.auth.set_session.return_value = SimpleNamespace(user=None, session=None)

        with pytest.raises(BackendError):
            await adapter.set_session("T1", "R1")

    @pytest.mark.asyncio
    async def test_password_reset_passes_redirect(self, adapter, mock_supabase):
        await adapter.request_password_reset("a@b.com", "app://auth/reset-password")

        mock_supabase.auth.reset_password_for_email.assert_awaited_once_with(
            "a@b.com", {"redirect_to": "app://auth/reset-password"},
        )

    def test_event_subscription(self, adapter, mock_supabase):
        subscription = MagicMock()
        mock_supabase.auth.on_auth_state_change.return_value = subscription
        received = []

        unsubscribe = adapter.subscribe_auth_events(
            lambda kind, session: received.append((kind, session)),
        )
        handler = mock_supabase.auth.on_auth_state_change.call_args.args[0]
        handler("SIGNED_IN", raw_session())
        handler("SIGNED_OUT", None)
        unsubscribe()

        assert received[0][0] == "SIGNED_IN"
        assert received[0][1].user.email == "a@b.com"
        assert received[1] == ("SIGNED_OUT", None)
        subscription.unsubscribe.assert_called_once()
