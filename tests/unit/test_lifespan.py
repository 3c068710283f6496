"""Unit tests for the application lifespan and /healthz in app/main.py.

Covers:
  - GET /healthz returns 503 {"status": "starting"} before startup completes
  - startup builds the Supabase stores, limiter pair and ProjectService
  - GET /healthz returns 200 {"status": "ok"} once ready
  - shutdown clears the ready flag and closes both Supabase clients
  - a failing client factory aborts startup and releases the HTTP client
  - importing app.main never requires the secrets
"""

from __future__ import annotations

from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from starlette.testclient import TestClient

from app.auth.limiter import KeyIssuanceLimits
from app.config import Config, SupabaseConfig
from app.main import create_app
from app.projects.service import ProjectService
from app.store.supabase_store import SupabaseProjectStore, SupabaseUserStore
from tests.helpers import make_test_config


def _patch_startup(
    monkeypatch: pytest.MonkeyPatch,
    config: Config,
    init_error: Optional[Exception] = None,
) -> tuple[httpx.AsyncClient, MagicMock]:
    """Stub load_config() and both outbound clients used by the lifespan."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
    supabase = MagicMock()
    supabase.postgrest.aclose = AsyncMock()

    async def fake_create_supabase_client(supabase_config: SupabaseConfig) -> MagicMock:
        assert supabase_config is config.supabase
        if init_error is not None:
            raise init_error
        return supabase

    monkeypatch.setattr("app.main.load_config", lambda: config)
    monkeypatch.setattr("app.main.create_http_client", lambda timeout_s: http_client)
    monkeypatch.setattr("app.main.create_supabase_client", fake_create_supabase_client)
    return http_client, supabase


@pytest.mark.asyncio
async def test_healthz_503_before_ready() -> None:
    app = create_app(make_test_config())
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/healthz")
    assert response.status_code == 503
    assert response.json() == {"status": "starting"}


def test_startup_wires_state(monkeypatch: pytest.MonkeyPatch) -> None:
    config = make_test_config()
    _, supabase = _patch_startup(monkeypatch, config)
    app = create_app(config)

    with TestClient(app):
        assert app.state.ready is True
        assert app.state.config is config
        assert app.state.supabase is supabase
        assert isinstance(app.state.user_store, SupabaseUserStore)
        assert isinstance(app.state.key_limits, KeyIssuanceLimits)
        assert isinstance(app.state.project_service, ProjectService)
        assert app.state.project_service.limits is app.state.key_limits
        assert isinstance(app.state.project_service.projects, SupabaseProjectStore)
        assert app.state.project_service.projects.client is supabase


def test_healthz_200_when_ready(monkeypatch: pytest.MonkeyPatch) -> None:
    config = make_test_config()
    _patch_startup(monkeypatch, config)

    with TestClient(create_app(config)) as client:
        response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_shutdown_closes_clients(monkeypatch: pytest.MonkeyPatch) -> None:
    config = make_test_config()
    http_client, supabase = _patch_startup(monkeypatch, config)
    app = create_app(config)

    with TestClient(app):
        assert not http_client.is_closed

    assert app.state.ready is False
    assert http_client.is_closed
    supabase.postgrest.aclose.assert_awaited_once()


def test_postgrest_close_error_is_not_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    config = make_test_config()
    http_client, supabase = _patch_startup(monkeypatch, config)
    supabase.postgrest.aclose.side_effect = RuntimeError("already closed")
    app = create_app(config)

    with TestClient(app):
        pass

    assert http_client.is_closed
    assert app.state.ready is False


def test_client_init_failure_aborts_startup(monkeypatch: pytest.MonkeyPatch) -> None:
    config = make_test_config()
    http_client, _ = _patch_startup(monkeypatch, config, init_error=RuntimeError("Invalid API key"))
    app = create_app(config)

    with pytest.raises(RuntimeError, match="Invalid API key"):
        with TestClient(app):
            pass

    assert app.state.ready is False
    assert http_client.is_closed


def test_each_app_gets_its_own_limiter(monkeypatch: pytest.MonkeyPatch) -> None:
    config = make_test_config()
    _patch_startup(monkeypatch, config)
    first, second = create_app(config), create_app(config)

    with TestClient(first), TestClient(second):
        assert first.state.key_limits is not second.state.key_limits


def test_create_app_without_secrets(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("SUPABASE_JWT_SECRET", "LIBPULSE_SECRET_PEPPER"):
        monkeypatch.delenv(name)
    app = create_app()
    assert app.state.ready is False


def test_docs_disabled_by_default() -> None:
    app = create_app(make_test_config())
    assert app.docs_url is None
    assert app.openapi_url is None
