"""Supabase JWT authentication.

Provides ``authenticate_request()``: a FastAPI Depends()-compatible dependency
that verifies ``Authorization: Bearer <jwt>`` and returns the caller's
Principal. Every ``/api/v1`` route depends on it, so a request without a
valid token is rejected with HTTP 401 before any handler logic runs.

Tokens are verified with PyJWT against SUPABASE_JWT_SECRET. Only HMAC
algorithms are accepted; a token signed with anything else (including
``none``) is rejected. ``sub`` is required and must be non-empty.

401 bodies:
  - no header / not a Bearer header → "Missing or invalid Authorization header"
  - bad signature, expired, wrong algorithm, bad claims → "Invalid token"
"""

from __future__ import annotations

import re
from typing import Optional

import jwt
from fastapi import Request

from app.auth.models import (
    Authenticated,
    AuthOutcome,
    MalformedCredentials,
    MissingCredentials,
    Principal,
)
from app.config import AuthConfig
from app.errors import APIError, ErrorCode
from app.utils.logger import get_logger

logger = get_logger(__name__)

#: HMAC family only; asymmetric and "none" algorithms are refused.
ALLOWED_ALGORITHMS: list[str] = ["HS256", "HS384", "HS512"]

_BEARER_RE = re.compile(r"^Bearer\s+(\S+)\s*$", re.IGNORECASE)


def _extract_bearer(authorization: str) -> Optional[str]:
    """Return the token from ``Bearer <token>``, or None for anything else."""
    if not authorization:
        return None
    m = _BEARER_RE.match(authorization.strip())
    return m.group(1) if m else None


def resolve_bearer(authorization: str, auth_config: AuthConfig) -> AuthOutcome:
    """Verify an Authorization header value and classify the result.

    Args:
        authorization: Raw header value (empty string when absent).
        auth_config: JWT secret and optional expected audience.

    Returns:
        Authenticated, MissingCredentials or MalformedCredentials. Never raises.
    """
    token = _extract_bearer(authorization)
    if token is None:
        return MissingCredentials()

    try:
        claims = jwt.decode(
            token,
            auth_config.jwt_secret,
            algorithms=ALLOWED_ALGORITHMS,
            audience=auth_config.jwt_audience,
            options={
                "require": ["sub"],
                "verify_aud": auth_config.jwt_audience is not None,
            },
        )
    except jwt.ExpiredSignatureError:
        return MalformedCredentials(reason="token_expired")
    except jwt.InvalidTokenError as exc:
        return MalformedCredentials(reason=type(exc).__name__)

    principal = Principal.from_claims(claims)
    if not principal.subject:
        return MalformedCredentials(reason="empty_subject")
    return Authenticated(principal=principal)


async def authenticate_request(request: Request) -> Principal:
    """FastAPI dependency: authenticate the caller or raise 401.

    Reads the JWT settings from ``request.app.state.config``.

    Raises:
        APIError(UNAUTHORIZED): header missing/not Bearer, or token invalid.
    """
    auth_config: AuthConfig = request.app.state.config.auth
    outcome = resolve_bearer(request.headers.get("Authorization", ""), auth_config)

    if isinstance(outcome, Authenticated):
        return outcome.principal

    if isinstance(outcome, MissingCredentials):
        logger.warning(
            "authentication_failed",
            reason=outcome.reason,
            path=str(request.url.path),
            method=request.method,
        )
        raise APIError(ErrorCode.UNAUTHORIZED)

    logger.warning(
        "authentication_failed",
        reason=outcome.reason,
        path=str(request.url.path),
        method=request.method,
    )
    raise APIError(ErrorCode.UNAUTHORIZED, "Invalid token")
