"""Request identifiers.

Each inbound API call is tagged with a ULID: 26 Crockford Base32 characters,
time-ordered, so request ids sort in arrival order in the log stream.
Generated and validated with the ``python-ulid`` package.
"""

from __future__ import annotations

from ulid import ULID


def generate_ulid() -> str:
    """Return a fresh ULID string, e.g. ``"01KJ0JRVHYA7KX32VPN5ZSCTMV"``."""
    return str(ULID())


def is_ulid(value: str) -> bool:
    """True when ``value`` is a canonical (uppercase) in-range ULID.

    Used to decide whether a client-supplied ``X-Request-ID`` can be reused
    as the log correlation key or must be replaced.
    """
    try:
        parsed = ULID.from_str(value)
    except ValueError:
        return False
    return str(parsed) == value
