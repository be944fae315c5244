"""
Redirect Resolver.

Turns the URI the OS hands back after an external OAuth step into a
``Result[Session]``.  Two strategies exist and one is chosen per backend
by :func:`select_redirect_resolver`:

- :class:`BackendRedirectResolver` delegates to the backend's own
  "session from URL" primitive.
- :class:`FragmentRedirectResolver` parses ``access_token`` /
  ``refresh_token`` out of the URI fragment and establishes the session
  through the backend's token-pair primitive.

Resolvers never touch ``SessionStore``; the caller applies the result.
A URI that carries no session is a normal outcome
(``NO_SESSION_IN_URL``) and is logged at DEBUG only.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from auth_session.backend.protocol import BackendError, IdentityBackend
from auth_session.logger import StructuredLogger
from auth_session.models.enums import ErrorKind
from auth_session.models.result import Failure, Result, Success
from auth_session.models.session import Session
from auth_session.services.base_service import BaseService

NO_SESSION_MESSAGE: str = "No session found in URL"
_CALLBACK_FAILED_MESSAGE: str = "Failed to handle auth callback"


def _no_session() -> Failure:
    return Failure(kind=ErrorKind.NO_SESSION_IN_URL, message=NO_SESSION_MESSAGE)


class RedirectResolver(BaseService, ABC):
    """Strategy interface for resolving an inbound redirect URI."""

    def __init__(self, backend: IdentityBackend, logger: StructuredLogger) -> None:
        super().__init__(logger)
        self._backend: IdentityBackend = backend

    @abstractmethod
    async def resolve(self, uri: str) -> Result[Session]:
        """Resolve *uri* into a session.  Never raises."""


class BackendRedirectResolver(RedirectResolver):
    """Delegates URI parsing and token exchange to the backend."""

    async def resolve(self, uri: str) -> Result[Session]:
        try:
            session: Optional[Session] = await self._backend.exchange_redirect(uri)
        except BackendError as exc:
            self._logger.warning(
                "Backend could not resolve redirect: %s", exc.message,
                extra={"event": "REDIRECT_FAILED", "status": exc.status},
            )
            return Failure(kind=ErrorKind.UNEXPECTED, message=exc.message, status=exc.status)
        except Exception as exc:
            self._logger.error(
                "Handle auth callback error: %s", exc,
                exc_info=True,
                extra={"event": "REDIRECT_FAILED"},
            )
            return Failure(kind=ErrorKind.UNEXPECTED, message=_CALLBACK_FAILED_MESSAGE)

        if session is None:
            self._logger.debug("Redirect URI carried no session.")
            return _no_session()
        return Success(value=session)


class FragmentRedirectResolver(RedirectResolver):
    """Parses tokens from the URI fragment and sets the session by token pair."""

    async def resolve(self, uri: str) -> Result[Session]:
        try:
            params = parse_qs(urlsplit(uri).fragment)
        except (ValueError, TypeError, AttributeError) as exc:
            self._logger.warning(
                "Malformed redirect URI: %s", exc,
                extra={"event": "REDIRECT_FAILED"},
            )
            return Failure(kind=ErrorKind.UNEXPECTED, message=_CALLBACK_FAILED_MESSAGE)

        access_token: str = params.get("access_token", [""])[0]
        refresh_token: str = params.get("refresh_token", [""])[0]

        if not access_token:
            provider_error = (
                params.get("error_description", [""])[0] or params.get("error", [""])[0]
            )
            if provider_error:
                self._logger.debug("Redirect URI carried a provider error: %s", provider_error)
            else:
                self._logger.debug("Redirect URI carried no access token.")
            return _no_session()

        return await self._call_backend(
            "set_session",
            lambda: self._backend.set_session(access_token, refresh_token),
        )


def select_redirect_resolver(
    backend: IdentityBackend,
    logger: StructuredLogger,
) -> RedirectResolver:
    """Pick the resolver strategy once, based on backend capability."""
    if backend.supports_redirect_exchange:
        logger.debug("Using backend redirect exchange.")
        return BackendRedirectResolver(backend=backend, logger=logger)
    logger.debug("Backend lacks redirect exchange; parsing URI fragments.")
    return FragmentRedirectResolver(backend=backend, logger=logger)
