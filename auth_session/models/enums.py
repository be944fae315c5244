"""
Shared Enumerations for the Authentication Models.

All string enumerations for type-safe field constraints.
StrEnum values compare equal to their string equivalents, so a backend
event name such as ``"SIGNED_IN"`` matches ``AuthEventKind.SIGNED_IN``.
"""

from __future__ import annotations
from enum import StrEnum


class ErrorKind(StrEnum):
    """Exhaustive enumeration of controller failure categories.

    ``WEAK_PASSWORD`` is a client-side policy failure raised before any
    backend call.  ``NO_SESSION_IN_URL`` is a normal outcome for inbound
    URIs that are not auth callbacks and is never logged as an error.
    """

    INVALID_CREDENTIALS = "invalid_credentials"
    WEAK_PASSWORD = "weak_password"
    NO_SESSION_IN_URL = "no_session_in_url"
    BUSY = "busy"
    NETWORK_OR_BACKEND = "network_or_backend"
    UNEXPECTED = "unexpected"


class AuthEventKind(StrEnum):
    """Event names pushed by the identity backend's auth-state stream."""

    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"
    MFA_CHALLENGE_VERIFIED = "MFA_CHALLENGE_VERIFIED"
