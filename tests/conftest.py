"""Root test configuration for the LibPulse API.

Every test runs with the five required secrets present in the environment so
that load_config() never exits unless a test removes one on purpose. Optional
overrides (CORS, host, port, audience, config path) are cleared so a developer
shell cannot leak into the suite.

Helpers shared across modules live in tests/helpers.py.
"""

from __future__ import annotations

import time
from typing import Iterator
from unittest.mock import AsyncMock

import pytest
import time_machine
from fastapi import FastAPI

from app.config import Config
from app.main import create_app, init_app_state
from tests.helpers import REQUIRED_ENV, make_test_config


@pytest.fixture(autouse=True)
def required_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name, value in REQUIRED_ENV.items():
        monkeypatch.setenv(name, value)
    for name in (
        "CORS_ALLOWED_ORIGINS",
        "LIBPULSE_CONFIG",
        "LIBPULSE_HOST",
        "LIBPULSE_PORT",
        "SUPABASE_JWT_AUDIENCE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def test_config() -> Config:
    return make_test_config()


@pytest.fixture
def frozen_time() -> Iterator[time_machine.Coordinates]:
    """Stop the wall clock at the current whole second; move it with ``.shift()``."""
    with time_machine.travel(int(time.time()), tick=False) as traveller:
        yield traveller


@pytest.fixture
def stores() -> dict[str, AsyncMock]:
    """AsyncMock stores keyed by role: ``users``, ``projects``, ``keys``."""
    return {"users": AsyncMock(), "projects": AsyncMock(), "keys": AsyncMock()}


@pytest.fixture
def api_app(test_config: Config, stores: dict[str, AsyncMock]) -> FastAPI:
    """Application with state wired to the mock stores (lifespan not run)."""
    application = create_app(test_config)
    init_app_state(
        application,
        test_config,
        user_store=stores["users"],
        project_store=stores["projects"],
        key_store=stores["keys"],
    )
    return application
