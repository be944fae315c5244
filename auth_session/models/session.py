"""
Session and User Models.

Immutable Pydantic models for the authenticated principal and its
credentials.  A ``Session`` is replaced as a whole whenever the backend
issues new tokens; it is never edited field-by-field.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class User(BaseModel):
    """Identity of the authenticated principal, as issued by the backend."""

    id: str
    email: str
    display_name: Optional[str] = None

    model_config = ConfigDict(frozen=True, from_attributes=True)


class Session(BaseModel):
    """An authenticated user together with its access and refresh tokens.

    Every field is required so a session can never exist with a user but
    no tokens (or the reverse).  ``refresh_token`` may be the empty string
    when the redirect that produced the session carried none.
    """

    user: User
    access_token: str
    refresh_token: str
    expires_at: datetime

    model_config = ConfigDict(frozen=True, from_attributes=True)


class SignUpOutcome(BaseModel):
    """Result payload of a sign-up request.

    Attributes
    ----------
    user:
        The created user, when the backend returned one.
    session:
        The established session, or ``None`` when the account must be
        confirmed (e.g. by email) before it can sign in.
    needs_confirmation:
        ``True`` when no session was issued.
    """

    user: Optional[User] = None
    session: Optional[Session] = None
    needs_confirmation: bool

    model_config = ConfigDict(frozen=True)
