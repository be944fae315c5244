"""
Application Configuration.

Pydantic Settings model for the authentication session controller.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import Field, SecretStr, model_validator


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Supabase ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")

    # --- Deep links ---
    # Custom URL scheme registered with the OS for inbound redirects.
    APP_SCHEME: str = "caloriee"
    OAUTH_REDIRECT_URL: str = ""
    EMAIL_CONFIRM_REDIRECT_URL: str = ""
    PASSWORD_RESET_REDIRECT_URL: str = ""

    # --- OAuth ---
    DEFAULT_OAUTH_PROVIDER: str = "google"
    OAUTH_QUERY_PARAMS: dict[str, str] = Field(default_factory=lambda: {
        "access_type": "offline",
        "prompt": "consent",
    })

    # --- Password policy (sign-up only) ---
    PASSWORD_MIN_LENGTH: int = 6

    # --- Logging ---
    LOG_FILE: str = "auth_session.log"
    LOG_LEVEL: str = "INFO"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _fill_redirect_urls(self) -> "AppConfig":
        """Derive unset redirect URLs from ``APP_SCHEME``."""
        if not self.OAUTH_REDIRECT_URL:
            self.OAUTH_REDIRECT_URL = f"{self.APP_SCHEME}://auth/callback"
        if not self.EMAIL_CONFIRM_REDIRECT_URL:
            self.EMAIL_CONFIRM_REDIRECT_URL = f"{self.APP_SCHEME}://auth/confirm"
        if not self.PASSWORD_RESET_REDIRECT_URL:
            self.PASSWORD_RESET_REDIRECT_URL = f"{self.APP_SCHEME}://auth/reset-password"
        return self

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when critical configuration is empty.

        Pydantic silently falls back to defaults when ``.env`` is missing.
        This validator logs a warning so operators know the controller is
        running with placeholder values.
        """
        _log = logging.getLogger("auth_session.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; all configuration loaded from "
                "environment variables or defaults."
            )

        if not self.SUPABASE_URL or not self.SUPABASE_ANON_KEY.get_secret_value():
            _log.warning(
                "SUPABASE_URL or SUPABASE_ANON_KEY is empty; the Supabase "
                "identity backend cannot be created."
            )

        return self

    @property
    def log_level(self) -> int:
        """Numeric logging level for ``LOG_LEVEL``, ``INFO`` when unknown."""
        level = logging.getLevelName(self.LOG_LEVEL.upper())
        return level if isinstance(level, int) else logging.INFO

    def validate_supabase_config(self) -> None:
        """Validate that the Supabase connection settings are present.

        Raises:
            ValueError: If the project URL or anon key is missing.
        """
        if not self.SUPABASE_URL or not self.SUPABASE_ANON_KEY.get_secret_value():
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    On first call, creates an ``AppConfig`` instance (reading from ``.env``).
    Subsequent calls return the same instance.  Uses a check-lock-check
    pattern so the fast path skips the lock.

    Prefer direct constructor injection of ``AppConfig`` in new code.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
