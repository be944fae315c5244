"""
Identity Backend Package.

Exposes the backend contract consumed by the controller together with the
Supabase implementation:
    from auth_session.backend import IdentityBackend, BackendError
    from auth_session.backend import SupabaseIdentityBackend
"""

from __future__ import annotations

from auth_session.backend.protocol import (
    AuthEventCallback,
    BackendError,
    IdentityBackend,
    Unsubscribe,
)
from auth_session.backend.supabase_backend import SupabaseIdentityBackend

__all__ = [
    "AuthEventCallback",
    "BackendError",
    "IdentityBackend",
    "Unsubscribe",
    "SupabaseIdentityBackend",
]
