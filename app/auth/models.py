"""Authentication outcome types.

resolve_bearer() never raises; it returns exactly one of:

  Authenticated          — signature and claims verified; carries the Principal
  MissingCredentials     — no usable ``Authorization: Bearer`` header
  MalformedCredentials   — a token was presented but failed verification

The FastAPI dependency turns the two failure variants into HTTP 401 and hands
route handlers a typed Principal, so handlers never inspect raw claims.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Principal:
    """The authenticated caller for one request.

    subject:  JWT ``sub`` — the Supabase user id; never empty.
    role:     JWT ``role`` (``authenticated`` for signed-in users).
    email:    JWT ``email``; may be empty for phone / anonymous sign-ins.
    provider: ``app_metadata.provider`` (email, github, google, ...).
    """

    subject: str
    role: str = ""
    email: str = ""
    provider: str = ""

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "Principal":
        app_metadata = claims.get("app_metadata") or {}
        return cls(
            subject=str(claims.get("sub") or ""),
            role=str(claims.get("role") or ""),
            email=str(claims.get("email") or ""),
            provider=str(app_metadata.get("provider") or "") if isinstance(app_metadata, dict) else "",
        )


@dataclass(frozen=True)
class Authenticated:
    principal: Principal


@dataclass(frozen=True)
class MissingCredentials:
    reason: str = "missing_authorization_header"


@dataclass(frozen=True)
class MalformedCredentials:
    reason: str = "invalid_token"


AuthOutcome = Union[Authenticated, MissingCredentials, MalformedCredentials]
