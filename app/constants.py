"""Shared constants for the LibPulse API.

Key formats, validation bounds, rate-limit defaults and outbound timeouts
live here so the service, store and tests agree on the same numbers.
"""

# ─── Project key material ─────────────────────────────────────────────────────

#: Prefix of the public half of a project key pair.
PUBLIC_KEY_PREFIX: str = "pk_live_"

#: Prefix of the secret half of a project key pair.
SECRET_PREFIX: str = "psk_live_"

#: Random bytes behind a public key (32 URL-safe base64 characters).
PUBLIC_KEY_BYTES: int = 24

#: Random bytes behind a secret (43 URL-safe base64 characters).
SECRET_BYTES: int = 32

#: Length of the display fragment kept for a secret.
SECRET_DISPLAY_CHARS: int = 4

# ─── Validation bounds ────────────────────────────────────────────────────────

PROJECT_NAME_MAX_LENGTH: int = 64
KEY_LABEL_MAX_LENGTH: int = 64

DEFAULT_KEY_ENV: str = "prod"
DEFAULT_KEY_SCOPES: tuple[str, ...] = ("ingest",)

# ─── Key issuance rate limits ─────────────────────────────────────────────────

#: Burst protection: keys per principal per burst window.
KEY_BURST_MAX: int = 3
KEY_BURST_WINDOW_S: float = 60.0

#: Daily quota: keys per principal per day.
KEY_DAILY_MAX: int = 5
KEY_DAILY_WINDOW_S: float = 24 * 60 * 60.0

# ─── Outbound HTTP (Supabase) ─────────────────────────────────────────────────

#: Every Supabase call is bounded by this timeout (seconds).
SUPABASE_TIMEOUT_S: float = 5.0

POOL_MAX_CONNECTIONS: int = 50
POOL_MAX_KEEPALIVE: int = 20
POOL_KEEPALIVE_EXPIRY_S: float = 30.0
