"""
Operation Result Models.

Pydantic models for the uniform success/failure envelope returned by
every public controller operation.  The UI inspects ``ok`` to choose the
happy path and ``kind`` to decide which feedback to show; it never sees
a raw exception.
"""

from __future__ import annotations

from typing import Generic, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict

from auth_session.models.enums import ErrorKind

T = TypeVar("T")


class Success(BaseModel, Generic[T]):
    """Nominal outcome carrying the operation's payload."""

    value: T
    ok: Literal[True] = True

    model_config = ConfigDict(frozen=True)


class Failure(BaseModel):
    """Failed outcome.

    Attributes
    ----------
    kind:
        Structured failure category.
    message:
        Human-readable description.  Backend messages are passed through
        verbatim.
    status:
        HTTP-style status code reported by the backend, when any.
    """

    kind: ErrorKind
    message: str
    status: Optional[int] = None
    ok: Literal[False] = False

    model_config = ConfigDict(frozen=True)


Result = Union[Success[T], Failure]


# ---------------------------------------------------------------------------
# Backend error-code mapping
# ---------------------------------------------------------------------------

BACKEND_ERROR_MAP: dict[str, ErrorKind] = {
    "invalid_credentials": ErrorKind.INVALID_CREDENTIALS,
    "invalid_grant": ErrorKind.INVALID_CREDENTIALS,
    "invalid login credentials": ErrorKind.INVALID_CREDENTIALS,
    "weak_password": ErrorKind.WEAK_PASSWORD,
}
