"""Config loading for the LibPulse API.

Settings come from two layers:

  1. An optional YAML file for non-secret tuning (server binding, CORS,
     rate limits). Search order:
       a. ``config_path`` argument (tests / explicit override)
       b. ``LIBPULSE_CONFIG`` environment variable
       c. ``.libpulse/config.yaml`` (working directory)
       d. ``~/.libpulse/config.yaml``
     A missing file is not an error. A present file must be a mapping with
     ``version: 1``.
  2. Environment variables, which always win. Secrets are read from the
     environment only, never from the YAML file:
       SUPABASE_JWT_SECRET, SUPABASE_SERVICE_ROLE_KEY, SUPABASE_AUTH_URL,
       SUPABASE_PROJECT_URL, LIBPULSE_SECRET_PEPPER (all required)
       CORS_ALLOWED_ORIGINS, LIBPULSE_HOST, LIBPULSE_PORT (optional)

Any invalid or missing required setting writes a message to stderr and raises
SystemExit(1) so the process never starts half-configured.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Any, NoReturn, Optional

import yaml

from app.constants import (
    KEY_BURST_MAX,
    KEY_BURST_WINDOW_S,
    KEY_DAILY_MAX,
    KEY_DAILY_WINDOW_S,
    SUPABASE_TIMEOUT_S,
)
from app.utils.logger import get_logger

logger = get_logger(__name__)

SUPPORTED_CONFIG_VERSION = 1
SUPPORTED_VERSIONS: frozenset[int] = frozenset({1})

DEFAULT_CONFIG_PATHS = [
    ".libpulse/config.yaml",
    os.path.expanduser("~/.libpulse/config.yaml"),
]

DEFAULT_CORS_ORIGINS: tuple[str, ...] = (
    "http://localhost:3000",
    "http://localhost:8080",
)

#: Environment variables that must be present before the API can start.
REQUIRED_ENV_VARS: tuple[str, ...] = (
    "SUPABASE_JWT_SECRET",
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_AUTH_URL",
    "SUPABASE_PROJECT_URL",
    "LIBPULSE_SECRET_PEPPER",
)


# ─── Dataclasses ─────────────────────────────────────────────────────────────


@dataclass
class SupabaseConfig:
    """Where and how to reach Supabase.

    auth_url:    Auth base URL, e.g. ``https://<ref>.supabase.co/auth/v1``.
    project_url: Project base URL; the REST root is ``<project_url>/rest/v1``.
    """

    auth_url: str = ""
    project_url: str = ""
    service_role_key: str = field(default="", repr=False)
    timeout_s: float = SUPABASE_TIMEOUT_S

    @property
    def rest_url(self) -> str:
        return self.project_url.rstrip("/") + "/rest/v1"


@dataclass
class AuthConfig:
    """JWT verification and secret hashing material."""

    jwt_secret: str = field(default="", repr=False)
    # None disables the audience check (Supabase access tokens use "authenticated").
    jwt_audience: Optional[str] = None
    secret_pepper: str = field(default="", repr=False)


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class CorsConfig:
    allowed_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))


@dataclass
class RateLimitConfig:
    """Per-principal limits on project key issuance."""

    burst_max: int = KEY_BURST_MAX
    burst_window_s: float = KEY_BURST_WINDOW_S
    daily_max: int = KEY_DAILY_MAX
    daily_window_s: float = KEY_DAILY_WINDOW_S


@dataclass
class Config:
    """Root configuration object."""

    version: int = SUPPORTED_CONFIG_VERSION
    supabase: SupabaseConfig = field(default_factory=SupabaseConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    cors: CorsConfig = field(default_factory=CorsConfig)
    rate_limits: RateLimitConfig = field(default_factory=RateLimitConfig)
    path: Optional[str] = None

    @classmethod
    def defaults(cls) -> "Config":
        return cls()

    @classmethod
    def from_dict(cls, raw: dict, path: Optional[str] = None) -> "Config":
        """Build a Config from a parsed YAML mapping, merging onto defaults.

        Unknown keys are ignored. Secret fields are deliberately not read
        here; they only come from the environment.
        """
        server_raw = raw.get("server") or {}
        server = ServerConfig(
            host=server_raw.get("host", ServerConfig.host),
            port=_as_int(server_raw.get("port", ServerConfig.port), "server.port"),
        )

        cors_raw = raw.get("cors") or {}
        origins = cors_raw.get("allowed_origins")
        if origins is None:
            cors = CorsConfig()
        elif isinstance(origins, str):
            cors = CorsConfig(allowed_origins=_split_origins(origins))
        else:
            cors = CorsConfig(allowed_origins=[str(o).strip() for o in origins if str(o).strip()])

        limits_raw = raw.get("rate_limits") or {}
        rate_limits = RateLimitConfig(
            burst_max=_as_int(limits_raw.get("burst_max", KEY_BURST_MAX), "rate_limits.burst_max"),
            burst_window_s=_as_float(
                limits_raw.get("burst_window_s", KEY_BURST_WINDOW_S), "rate_limits.burst_window_s"
            ),
            daily_max=_as_int(limits_raw.get("daily_max", KEY_DAILY_MAX), "rate_limits.daily_max"),
            daily_window_s=_as_float(
                limits_raw.get("daily_window_s", KEY_DAILY_WINDOW_S), "rate_limits.daily_window_s"
            ),
        )

        supabase_raw = raw.get("supabase") or {}
        supabase = SupabaseConfig(
            timeout_s=_as_float(supabase_raw.get("timeout_s", SUPABASE_TIMEOUT_S), "supabase.timeout_s"),
        )

        auth_raw = raw.get("auth") or {}
        auth = AuthConfig(jwt_audience=auth_raw.get("jwt_audience"))

        return cls(
            version=raw.get("version", SUPPORTED_CONFIG_VERSION),
            supabase=supabase,
            auth=auth,
            server=server,
            cors=cors,
            rate_limits=rate_limits,
            path=path,
        )


# ─── Config loading ───────────────────────────────────────────────────────────


def load_config(config_path: Optional[str] = None, require_secrets: bool = True) -> Config:
    """Load, merge and validate the service configuration.

    Args:
        config_path: Explicit YAML path tried before the default search list.
        require_secrets: When True (the default), refuse to start unless every
            variable in REQUIRED_ENV_VARS is set. ``create_app()`` passes False
            because it only needs the CORS origins.

    Returns:
        Fully populated Config.

    Raises:
        SystemExit(1): On YAML errors, missing/unsupported ``version``,
            invalid values, or missing required environment variables.
    """
    search_paths: list[str] = []
    if config_path:
        search_paths.append(config_path)
    env_config = os.environ.get("LIBPULSE_CONFIG")
    if env_config:
        search_paths.append(env_config)
    search_paths.extend(DEFAULT_CONFIG_PATHS)

    found_path: Optional[str] = None
    for candidate in search_paths:
        expanded = os.path.expanduser(candidate)
        if os.path.isfile(expanded):
            found_path = expanded
            break

    if found_path is None:
        logger.debug("config_file_not_found", searched=search_paths)
        config = Config.defaults()
    else:
        config = Config.from_dict(_read_config_file(found_path), path=found_path)

    _apply_env_overrides(config)

    if require_secrets:
        _require_secrets()

    logger.info(
        "config_loaded",
        path=config.path,
        cors_origins=config.cors.allowed_origins,
        burst_max=config.rate_limits.burst_max,
        daily_max=config.rate_limits.daily_max,
    )
    return config


def _read_config_file(found_path: str) -> dict:
    try:
        with open(found_path) as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        _fail(f"CONFIG ERROR: Failed to parse {found_path}: {exc}")
    except OSError as exc:
        _fail(f"CONFIG ERROR: Could not read {found_path}: {exc}")

    if not isinstance(raw, dict):
        if raw is None:
            _fail(
                f"CONFIG ERROR: {found_path} is missing the required 'version' field.\n"
                "Add 'version: 1' to the top of your config file."
            )
        _fail(
            f"CONFIG ERROR: {found_path} is not a valid YAML mapping.\n"
            "The config file must be a YAML dictionary at the top level."
        )

    version = raw.get("version")
    if version is None:
        _fail(
            f"CONFIG ERROR: {found_path} is missing the required 'version' field.\n"
            "Add 'version: 1' to the top of your config file."
        )
    if version not in SUPPORTED_VERSIONS:
        _fail(
            f"CONFIG ERROR: Unsupported config version: {version}. "
            f"Supported versions: {sorted(SUPPORTED_VERSIONS)}."
        )
    return raw


def _apply_env_overrides(config: Config) -> None:
    """Apply environment variables onto ``config`` in place (env always wins)."""
    env = os.environ

    config.auth.jwt_secret = env.get("SUPABASE_JWT_SECRET", config.auth.jwt_secret)
    config.auth.secret_pepper = env.get("LIBPULSE_SECRET_PEPPER", config.auth.secret_pepper)
    if env.get("SUPABASE_JWT_AUDIENCE"):
        config.auth.jwt_audience = env["SUPABASE_JWT_AUDIENCE"]

    config.supabase.service_role_key = env.get(
        "SUPABASE_SERVICE_ROLE_KEY", config.supabase.service_role_key
    )
    config.supabase.auth_url = env.get("SUPABASE_AUTH_URL", config.supabase.auth_url).rstrip("/")
    config.supabase.project_url = env.get(
        "SUPABASE_PROJECT_URL", config.supabase.project_url
    ).rstrip("/")

    origins = env.get("CORS_ALLOWED_ORIGINS")
    if origins:
        config.cors.allowed_origins = _split_origins(origins)

    if env.get("LIBPULSE_HOST"):
        config.server.host = env["LIBPULSE_HOST"]
    env_port = env.get("LIBPULSE_PORT")
    if env_port is not None:
        config.server.port = _as_int(env_port, "LIBPULSE_PORT")


def _require_secrets() -> None:
    missing = [name for name in REQUIRED_ENV_VARS if not os.environ.get(name)]
    if missing:
        _fail(
            f"CONFIG ERROR: {', '.join(REQUIRED_ENV_VARS)} must be set "
            f"(missing: {', '.join(missing)})"
        )


def _split_origins(value: str) -> list[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


def _as_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        _fail(f"CONFIG ERROR: {name} is not a valid integer: {value!r}")


def _as_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        _fail(f"CONFIG ERROR: {name} is not a valid number: {value!r}")


def _fail(message: str) -> NoReturn:
    print(message, file=sys.stderr)
    raise SystemExit(1)
