"""Programmatic uvicorn entry point for the LibPulse API.

Reads host and port from the loaded config (0.0.0.0:8080 by default, overridable
with LIBPULSE_HOST / LIBPULSE_PORT) and starts uvicorn with bounded
concurrency:

  --limit-concurrency 100  Max 100 concurrent connections; HTTP 503 when exceeded
  --backlog 50             OS connection queue depth
  --timeout-keep-alive 5   Idle keep-alive connections are closed after 5 s

Usage:
    python -m app.run          # reads env + optional .libpulse/config.yaml
    libpulse-api               # via pyproject.toml [project.scripts]
"""

from __future__ import annotations

import uvicorn

from app.config import load_config

# Must stay above the httpx pool size (POOL_MAX_CONNECTIONS in app/constants.py)
# so a saturated upstream pool queues requests instead of failing them.
UVICORN_LIMIT_CONCURRENCY: int = 100

UVICORN_BACKLOG: int = 50

UVICORN_TIMEOUT_KEEP_ALIVE: int = 5


def main() -> None:
    """Start the LibPulse API server.

    Secrets are checked here as well as in the lifespan, so a misconfigured
    deployment exits before uvicorn binds the port.

    Raises:
        SystemExit: Propagated from load_config() on missing secrets or a bad
            config file.
    """
    config = load_config()

    uvicorn.run(
        "app.main:app",
        host=config.server.host,
        port=config.server.port,
        limit_concurrency=UVICORN_LIMIT_CONCURRENCY,
        backlog=UVICORN_BACKLOG,
        timeout_keep_alive=UVICORN_TIMEOUT_KEEP_ALIVE,
    )


if __name__ == "__main__":
    main()
