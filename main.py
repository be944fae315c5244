"""
Authentication Session Controller Entry Point.

Bootstraps the dependency graph via constructor injection, starts the
controller against Supabase, and optionally resolves a deep-link URI
passed by the OS (e.g. ``caloriee://auth/callback#access_token=...``).
Every subsystem is wired here, with no module-level globals.

Usage::

    python main.py                 # print the current session state
    python main.py <redirect-uri>  # complete an OAuth redirect
"""

from __future__ import annotations

import asyncio
import sys
from typing import Optional

from auth_session.backend import SupabaseIdentityBackend
from auth_session.config import get_config
from auth_session.logger import StructuredLogger, get_logger
from auth_session.models import ControllerState, Failure
from auth_session.services import create_auth_service


def _describe_state(state: ControllerState) -> str:
    if state.session is None:
        return "Not signed in."
    user = state.session.user
    return f"Signed in as {user.display_name or user.email} ({user.id})."


async def run(redirect_uri: Optional[str] = None) -> int:
    """Wire dependencies, start the controller and handle *redirect_uri*."""
    logger: StructuredLogger = get_logger("main")
    logger.info("Starting auth session controller...")

    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = get_config()

    # ------------------------------------------------------------------
    # 2. Identity backend
    # ------------------------------------------------------------------
    backend = await SupabaseIdentityBackend.create(
        config=config,
        logger=get_logger("backend"),
    )

    # ------------------------------------------------------------------
    # 3. Controller (store + reconciler + resolver + facade)
    # ------------------------------------------------------------------
    service = create_auth_service(
        backend=backend,
        config=config,
        logger=get_logger("auth"),
    )

    async with service:
        if redirect_uri:
            result = await service.resolve_redirect(redirect_uri)
            if isinstance(result, Failure):
                print(f"Redirect not completed: {result.message}")
        print(_describe_state(service.get_state()))

    logger.info("Auth session controller shut down.")
    return 0


def main() -> None:
    """Console entry point."""
    redirect_uri = sys.argv[1] if len(sys.argv) > 1 else None
    try:
        sys.exit(asyncio.run(run(redirect_uri)))
    except KeyboardInterrupt:
        pass
    except ValueError as exc:
        sys.stderr.write(f"Configuration error: {exc}\n")
        sys.exit(2)


if __name__ == "__main__":
    main()
