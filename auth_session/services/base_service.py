"""
Base Service Class.

Minimal base class standardizing the logger pattern for all services and
the normalisation of backend calls into ``Result`` values.
"""

from __future__ import annotations

from typing import Awaitable, Callable, TypeVar

from auth_session.backend.protocol import BackendError
from auth_session.logger import StructuredLogger
from auth_session.models.enums import ErrorKind
from auth_session.models.result import BACKEND_ERROR_MAP, Failure, Result, Success

T = TypeVar("T")


def classify_backend_error(exc: BackendError) -> Failure:
    """Map a declared backend error to a ``Failure``.

    The backend's code is matched first, then its message.  The message
    and status are passed through verbatim.
    """
    haystack = f"{exc.code or ''} {exc.message}".lower()
    kind = ErrorKind.NETWORK_OR_BACKEND
    for key, mapped_kind in BACKEND_ERROR_MAP.items():
        if key in haystack:
            kind = mapped_kind
            break
    return Failure(kind=kind, message=exc.message, status=exc.status)


class BaseService:
    """Base class for all service classes. Provides a logger."""

    def __init__(self, logger: StructuredLogger) -> None:
        self._logger: StructuredLogger = logger

    async def _call_backend(
        self,
        operation: str,
        call: Callable[[], Awaitable[T]],
    ) -> Result[T]:
        """Await *call* and normalise its outcome into a ``Result``.

        Declared backend errors are classified; any other exception is
        logged with its traceback and reported as ``UNEXPECTED``.
        """
        try:
            value = await call()
        except BackendError as exc:
            failure = classify_backend_error(exc)
            self._logger.warning(
                "%s rejected by backend (%s): %s", operation, failure.kind, exc.message,
                extra={"event": f"{operation.upper()}_FAILED", "status": exc.status},
            )
            return failure
        except Exception as exc:
            self._logger.error(
                "Unexpected error during %s: %s", operation, exc,
                exc_info=True,
                extra={"event": f"{operation.upper()}_FAILED"},
            )
            return Failure(
                kind=ErrorKind.UNEXPECTED,
                message=f"An unexpected error occurred during {operation.replace('_', ' ')}",
            )
        return Success(value=value)
