"""Tests for AppConfig defaults and derived values."""

import logging

import pytest

from auth_session.config import AppConfig


def test_redirect_urls_derived_from_scheme():
    config = AppConfig(_env_file=None, APP_SCHEME="myapp")

    assert config.OAUTH_REDIRECT_URL == "myapp://auth/callback"
    assert config.EMAIL_CONFIRM_REDIRECT_URL == "myapp://auth/confirm"
    assert config.PASSWORD_RESET_REDIRECT_URL == "myapp://auth/reset-password"


def test_explicit_redirect_url_kept():
    config = AppConfig(_env_file=None, OAUTH_REDIRECT_URL="https://example.com/cb")
    assert config.OAUTH_REDIRECT_URL == "https://example.com/cb"


def test_validate_supabase_config(config):
    config.validate_supabase_config()

    with pytest.raises(ValueError):
        AppConfig(_env_file=None, SUPABASE_URL="", SUPABASE_ANON_KEY="").validate_supabase_config()


def test_log_level_fallback():
    assert AppConfig(_env_file=None, LOG_LEVEL="debug").log_level == logging.DEBUG
    assert AppConfig(_env_file=None, LOG_LEVEL="chatty").log_level == logging.INFO
