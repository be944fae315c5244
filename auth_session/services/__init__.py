"""
Authentication Services Package.

The ``create_auth_service()`` factory wires the session store, the event
reconciler, the redirect-resolver strategy and the facade together for
one backend, returning a ready-to-start ``AuthService``.
"""

from __future__ import annotations

from typing import Optional

from auth_session.backend.protocol import IdentityBackend
from auth_session.config import AppConfig
from auth_session.logger import StructuredLogger, get_logger
from auth_session.services.auth_service import AuthService, ValidationResult
from auth_session.services.event_reconciler import EventReconciler
from auth_session.services.redirect_resolver import (
    BackendRedirectResolver,
    FragmentRedirectResolver,
    RedirectResolver,
    select_redirect_resolver,
)
from auth_session.store import SessionStore


def create_auth_service(
    backend: IdentityBackend,
    config: AppConfig,
    logger: Optional[StructuredLogger] = None,
    store: Optional[SessionStore] = None,
) -> AuthService:
    """
    Wire the controller for *backend*.

    This is the single composition root for the controller.  Each call
    builds an isolated ``SessionStore`` unless one is supplied.

    Args:
        backend: Identity backend client (Supabase adapter or a fake).
        config: Application configuration.
        logger: Logger shared by all components; ``auth_session`` by default.
        store: Optional pre-built store, e.g. to observe it in tests.

    Returns:
        An ``AuthService`` that has not been started yet.
    """
    logger = logger or get_logger("services")
    store = store or SessionStore(logger=logger)

    reconciler = EventReconciler(backend=backend, store=store, logger=logger)
    redirect_resolver = select_redirect_resolver(backend=backend, logger=logger)

    return AuthService(
        backend=backend,
        store=store,
        reconciler=reconciler,
        redirect_resolver=redirect_resolver,
        config=config,
        logger=logger,
    )


__all__ = [
    "AuthService",
    "BackendRedirectResolver",
    "EventReconciler",
    "FragmentRedirectResolver",
    "RedirectResolver",
    "ValidationResult",
    "create_auth_service",
    "select_redirect_resolver",
]
