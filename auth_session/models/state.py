"""
Controller State Model.

The single snapshot type published by ``SessionStore``.  Snapshots are
frozen; the store produces a new one on every update.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

from auth_session.models.enums import ErrorKind
from auth_session.models.session import Session


class ControllerState(BaseModel):
    """Local view of "who is logged in right now".

    Attributes
    ----------
    session:
        The current session, or ``None`` when unauthenticated.
    initializing:
        ``True`` until the initial session fetch or the first backend
        event has resolved.
    pending:
        ``True`` while a sign-in, sign-up, OAuth, sign-out or reset
        operation is in flight.
    last_error:
        Kind of the most recent failure, cleared on the next success.
    """

    session: Optional[Session] = None
    initializing: bool = True
    pending: bool = False
    last_error: Optional[ErrorKind] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_authenticated(self) -> bool:
        """``True`` when a session is present."""
        return self.session is not None
