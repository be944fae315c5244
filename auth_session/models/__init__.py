from __future__ import annotations

"""
Data Models Package.

Re-exports all Pydantic models for convenient imports:
    from auth_session.models import Session, User, ControllerState
    from auth_session.models import Success, Failure, Result, ErrorKind
"""

from auth_session.models.enums import AuthEventKind, ErrorKind
from auth_session.models.result import Failure, Result, Success
from auth_session.models.session import Session, SignUpOutcome, User
from auth_session.models.state import ControllerState

__all__ = [
    "AuthEventKind",
    "ErrorKind",
    "Failure",
    "Result",
    "Success",
    "Session",
    "SignUpOutcome",
    "User",
    "ControllerState",
]
