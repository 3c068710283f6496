"""Project key material: public keys, secrets and their fingerprints.

Implements:
  - generate_public_key() — ``pk_live_<32 url-safe chars>`` (24 random bytes)
  - generate_secret()     — ``psk_live_<43 url-safe chars>`` (32 random bytes)
  - hash_secret()         — HMAC-SHA256(pepper, secret) as 64 hex chars
  - get_last4()           — display fragment kept next to the hash

Non-negotiables:
  - Randomness comes from the OS CSPRNG (``secrets``); if it cannot be read
    RandomnessUnavailable is raised and the request fails. No fallback.
  - The plaintext secret is never stored; only hash_secret() output and the
    last-4 fragment are persisted.
  - The pepper is server-held configuration and never stored with the hash.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

from app.constants import (
    PUBLIC_KEY_BYTES,
    PUBLIC_KEY_PREFIX,
    SECRET_BYTES,
    SECRET_DISPLAY_CHARS,
    SECRET_PREFIX,
)


class RandomnessUnavailable(Exception):
    """Raised when the OS entropy source cannot be read."""

    def __init__(self, message: str = "Secure random source unavailable") -> None:
        super().__init__(message)
        self.message = message


def _random_token(nbytes: int) -> str:
    """URL-safe base64 (no padding) encoding of ``nbytes`` random bytes."""
    try:
        return secrets.token_urlsafe(nbytes)
    except (OSError, NotImplementedError) as exc:
        raise RandomnessUnavailable(f"Secure random source unavailable: {exc}") from exc


def generate_public_key() -> str:
    """Return a new public key, e.g. ``pk_live_Xk3v...`` (40 chars total).

    Raises:
        RandomnessUnavailable: entropy source could not be read.
    """
    return PUBLIC_KEY_PREFIX + _random_token(PUBLIC_KEY_BYTES)


def generate_secret() -> str:
    """Return a new project secret, e.g. ``psk_live_9aQ...`` (52 chars total).

    The caller is responsible for returning it to the user exactly once and
    persisting only hash_secret(secret) and get_last4(secret).

    Raises:
        RandomnessUnavailable: entropy source could not be read.
    """
    return SECRET_PREFIX + _random_token(SECRET_BYTES)


def hash_secret(secret: str, pepper: str) -> str:
    """Keyed one-way fingerprint of ``secret``.

    Deterministic for a given (secret, pepper) pair, so a presented secret can
    later be verified by recomputing the digest.

    Args:
        secret: Plaintext secret.
        pepper: Process-wide server secret (LIBPULSE_SECRET_PEPPER).

    Returns:
        64-character lowercase hex HMAC-SHA256 digest.
    """
    return hmac.new(pepper.encode("utf-8"), secret.encode("utf-8"), hashlib.sha256).hexdigest()


def get_last4(secret: str) -> str:
    """Last 4 characters of ``secret``; the whole string when shorter."""
    if len(secret) < SECRET_DISPLAY_CHARS:
        return secret
    return secret[-SECRET_DISPLAY_CHARS:]
