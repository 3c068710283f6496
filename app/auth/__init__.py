"""Authentication, key material and rate limiting.

Public API:
  - authenticate_request()  — FastAPI dependency: Supabase JWT → Principal
  - resolve_bearer()        — header → Authenticated | MissingCredentials | MalformedCredentials
  - generate_public_key() / generate_secret() / hash_secret() / get_last4()
  - FixedWindowLimiter, KeyIssuanceLimits — per-principal key issuance limits
  - RandomnessUnavailable   — raised when the OS entropy source fails
"""

from __future__ import annotations

from app.auth.keys import (
    RandomnessUnavailable,
    generate_public_key,
    generate_secret,
    get_last4,
    hash_secret,
)
from app.auth.limiter import FixedWindowLimiter, KeyIssuanceLimits
from app.auth.middleware import authenticate_request, resolve_bearer
from app.auth.models import (
    Authenticated,
    AuthOutcome,
    MalformedCredentials,
    MissingCredentials,
    Principal,
)

__all__ = [
    "RandomnessUnavailable",
    "generate_public_key",
    "generate_secret",
    "get_last4",
    "hash_secret",
    "FixedWindowLimiter",
    "KeyIssuanceLimits",
    "authenticate_request",
    "resolve_bearer",
    "Authenticated",
    "AuthOutcome",
    "MalformedCredentials",
    "MissingCredentials",
    "Principal",
]
