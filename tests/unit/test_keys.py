"""Unit tests for app/auth/keys.py.

Verifies:
  - public keys and secrets carry their prefixes and URL-safe bodies
  - generated values are unique across calls
  - hash_secret() is a deterministic, pepper-keyed 64-char hex digest
  - get_last4() keeps the tail (or the whole string when shorter)
  - an unreadable entropy source surfaces as RandomnessUnavailable
"""

from __future__ import annotations

import hashlib
import hmac
import re

import pytest

from app.auth import keys
from app.auth.keys import (
    RandomnessUnavailable,
    generate_public_key,
    generate_secret,
    get_last4,
    hash_secret,
)

_URLSAFE_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class TestGeneratePublicKey:
    def test_prefix_and_length(self) -> None:
        key = generate_public_key()
        assert key.startswith("pk_live_")
        # 24 bytes → 32 base64url chars, no padding.
        assert len(key) == len("pk_live_") + 32

    def test_body_is_url_safe(self) -> None:
        body = generate_public_key()[len("pk_live_"):]
        assert _URLSAFE_RE.match(body)

    def test_unique(self) -> None:
        assert len({generate_public_key() for _ in range(200)}) == 200


class TestGenerateSecret:
    def test_prefix_and_length(self) -> None:
        secret = generate_secret()
        assert secret.startswith("psk_live_")
        # 32 bytes → 43 base64url chars, no padding.
        assert len(secret) == len("psk_live_") + 43

    def test_body_is_url_safe(self) -> None:
        assert _URLSAFE_RE.match(generate_secret()[len("psk_live_"):])

    def test_unique(self) -> None:
        assert len({generate_secret() for _ in range(200)}) == 200

    def test_entropy_failure_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def broken(nbytes: int) -> str:
            raise OSError("getrandom failed")

        monkeypatch.setattr(keys.secrets, "token_urlsafe", broken)
        with pytest.raises(RandomnessUnavailable) as exc_info:
            generate_secret()
        assert "getrandom failed" in exc_info.value.message

    def test_entropy_failure_on_public_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def broken(nbytes: int) -> str:
            raise NotImplementedError

        monkeypatch.setattr(keys.secrets, "token_urlsafe", broken)
        with pytest.raises(RandomnessUnavailable):
            generate_public_key()


class TestHashSecret:
    def test_is_hmac_sha256_hex(self) -> None:
        expected = hmac.new(b"pepper", b"psk_live_abc", hashlib.sha256).hexdigest()
        assert hash_secret("psk_live_abc", "pepper") == expected

    def test_length_and_charset(self) -> None:
        digest = hash_secret(generate_secret(), "pepper")
        assert len(digest) == 64
        assert re.fullmatch(r"[0-9a-f]{64}", digest)

    def test_deterministic(self) -> None:
        assert hash_secret("s", "p") == hash_secret("s", "p")

    def test_pepper_changes_digest(self) -> None:
        assert hash_secret("s", "pepper-a") != hash_secret("s", "pepper-b")

    def test_never_contains_plaintext(self) -> None:
        secret = generate_secret()
        assert secret not in hash_secret(secret, "pepper")


class TestGetLast4:
    def test_tail(self) -> None:
        assert get_last4("psk_live_abcdWXYZ") == "WXYZ"

    def test_exactly_four(self) -> None:
        assert get_last4("abcd") == "abcd"

    @pytest.mark.parametrize("value", ["", "a", "abc"])
    def test_short_returns_whole(self, value: str) -> None:
        assert get_last4(value) == value

    def test_matches_generated_secret(self) -> None:
        secret = generate_secret()
        assert secret.endswith(get_last4(secret))
