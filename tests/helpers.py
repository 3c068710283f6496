"""Shared test helpers for the LibPulse API suite.

  - make_token()       — mint a Supabase-style HS256 access token with PyJWT
  - auth_headers()     — ``Authorization: Bearer`` header for a token
  - make_test_config() — Config populated with the test secrets
"""

from __future__ import annotations

import time
from typing import Any, Optional

import jwt

from app.config import AuthConfig, Config, SupabaseConfig

TEST_JWT_SECRET = "test-jwt-secret-with-at-least-32-bytes!!"
TEST_PEPPER = "test-pepper-for-secret-fingerprints"
TEST_USER_ID = "7c2f1f0e-5d0a-4b8e-9d55-1a2b3c4d5e6f"
OTHER_USER_ID = "0b9e4d7a-6c1f-4e2a-8f3b-9a8b7c6d5e4f"
TEST_PROJECT_ID = "3f6c1d2e-8a9b-4c0d-b1e2-f3a4b5c6d7e8"

REQUIRED_ENV = {
    "SUPABASE_JWT_SECRET": TEST_JWT_SECRET,
    "SUPABASE_SERVICE_ROLE_KEY": "service-role-key",
    "SUPABASE_AUTH_URL": "https://example.supabase.co/auth/v1",
    "SUPABASE_PROJECT_URL": "https://example.supabase.co",
    "LIBPULSE_SECRET_PEPPER": TEST_PEPPER,
}


def make_token(
    sub: Optional[str] = TEST_USER_ID,
    *,
    secret: str = TEST_JWT_SECRET,
    algorithm: str = "HS256",
    expires_in: int = 3600,
    **claims: Any,
) -> str:
    """Mint a signed access token. ``sub=None`` omits the claim entirely."""
    now = int(time.time())
    payload: dict[str, Any] = {
        "iat": now,
        "exp": now + expires_in,
        "role": "authenticated",
        "email": "dev@example.com",
        "app_metadata": {"provider": "github"},
    }
    if sub is not None:
        payload["sub"] = sub
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm=algorithm)


def auth_headers(token: Optional[str] = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {token or make_token()}"}


def make_test_config() -> Config:
    return Config(
        supabase=SupabaseConfig(
            auth_url=REQUIRED_ENV["SUPABASE_AUTH_URL"],
            project_url=REQUIRED_ENV["SUPABASE_PROJECT_URL"],
            service_role_key=REQUIRED_ENV["SUPABASE_SERVICE_ROLE_KEY"],
        ),
        auth=AuthConfig(jwt_secret=TEST_JWT_SECRET, secret_pepper=TEST_PEPPER),
    )
