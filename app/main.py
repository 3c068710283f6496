"""LibPulse API FastAPI application factory + lifespan lifecycle.

This module implements:
  - create_app()      — testable application factory
  - init_app_state()  — wires config, stores, limiters and services onto app.state
  - lifespan          — startup/shutdown sequence
  - app = create_app() — module-level instance for uvicorn

Startup sequence:
  1. load_config()            → refuses to start without the required secrets
  2. create_http_client()     → shared httpx.AsyncClient (5 s timeout) for Auth Admin
  3. create_supabase_client() → supabase AsyncClient (PostgREST timeout 5 s)
  4. Supabase stores          → users (Auth Admin), projects, project keys (REST)
  5. init_app_state()         → KeyIssuanceLimits + ProjectService
  6. app.state.ready = True

Shutdown (reverse):
  app.state.ready = False → close the PostgREST session and the shared HTTP client

Routes:
  GET  /healthz                      — liveness (no auth)
  GET  /api/v1/me                    — current user
  POST /api/v1/projects              — create project
  POST /api/v1/projects/{id}/keys    — issue project key
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.auth.limiter import KeyIssuanceLimits
from app.auth.router import router as users_router
from app.config import Config, load_config
from app.errors import APIError, ErrorCode, code_for_status, error_response
from app.health import router as health_router
from app.middleware import RequestContextMiddleware
from app.projects.router import router as projects_router
from app.projects.service import ProjectService
from app.store.protocol import ProjectKeyStore, ProjectStore, UserStore
from app.store.supabase_store import (
    SupabaseProjectKeyStore,
    SupabaseProjectStore,
    SupabaseUserStore,
    create_admin_api,
    create_http_client,
    create_supabase_client,
)
from app.utils.logger import configure_logging, get_logger

# ─── Logging Setup ────────────────────────────────────────────────────────────
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if not DEBUG else "DEBUG")
JSON_LOGS = os.getenv("JSON_LOGS", "true").lower() == "true"

configure_logging(log_level=LOG_LEVEL, json_output=JSON_LOGS)
logger = get_logger(__name__)

API_PREFIX = "/api/v1"


# ─── State wiring ─────────────────────────────────────────────────────────────


def init_app_state(
    app: FastAPI,
    config: Config,
    *,
    user_store: UserStore,
    project_store: ProjectStore,
    key_store: ProjectKeyStore,
) -> None:
    """Attach config, stores and services to ``app.state`` and mark it ready.

    Each application gets its own KeyIssuanceLimits, so rate-limit state is
    never shared between app instances (or between tests).
    """
    limits = KeyIssuanceLimits(config.rate_limits)
    app.state.config = config
    app.state.user_store = user_store
    app.state.key_limits = limits
    app.state.project_service = ProjectService(
        projects=project_store,
        keys=key_store,
        limits=limits,
        secret_pepper=config.auth.secret_pepper,
    )
    app.state.ready = True


# ─── Lifespan ─────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("LibPulse API starting up...")

    # Raises SystemExit(1) on missing secrets; ready is never set.
    config = load_config()

    http_client = create_http_client(config.supabase.timeout_s)
    app.state.http_client = http_client
    try:
        supabase = await create_supabase_client(config.supabase)
    except Exception as exc:
        logger.error(
            "supabase_client_init_failed",
            error=str(exc),
            error_type=type(exc).__name__,
        )
        await http_client.aclose()
        raise
    app.state.supabase = supabase

    init_app_state(
        app,
        config,
        user_store=SupabaseUserStore(create_admin_api(config.supabase, http_client)),
        project_store=SupabaseProjectStore(supabase),
        key_store=SupabaseProjectKeyStore(supabase),
    )
    logger.info(
        "LibPulse API ready",
        auth_url=config.supabase.auth_url,
        rest_url=config.supabase.rest_url,
        timeout_s=config.supabase.timeout_s,
    )

    yield

    logger.info("LibPulse API shutting down...")
    app.state.ready = False

    try:
        await http_client.aclose()
        logger.info("Supabase HTTP client closed")
    except Exception as exc:
        logger.warning("Supabase HTTP client close error (non-fatal)", error=str(exc))

    try:
        await supabase.postgrest.aclose()
        logger.info("Supabase PostgREST session closed")
    except Exception as exc:
        logger.warning("Supabase PostgREST close error (non-fatal)", error=str(exc))

    logger.info("LibPulse API shutdown complete")


# ─── Application Factory ──────────────────────────────────────────────────────


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Used for CORS settings at construction time. Defaults to
            ``load_config(require_secrets=False)`` so importing this module
            never exits; the lifespan reloads with secrets required.

    Returns:
        FastAPI app with middleware, routers and exception handlers. Routes
        need ``init_app_state()`` (done by the lifespan) before they serve.
    """
    config = config or load_config(require_secrets=False)

    application = FastAPI(
        title="LibPulse API",
        description="Backend-for-frontend for LibPulse projects and ingestion keys",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if DEBUG else None,
        redoc_url="/redoc" if DEBUG else None,
        openapi_url="/openapi.json" if DEBUG else None,
    )

    application.state.ready = False
    application.state.config = config

    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["Origin", "Content-Type", "Authorization"],
        expose_headers=["Content-Length"],
        max_age=12 * 3600,
    )
    # Added last so it runs first: every log line below it carries request_id.
    application.add_middleware(RequestContextMiddleware)

    application.include_router(health_router)
    application.include_router(users_router, prefix=API_PREFIX)
    application.include_router(projects_router, prefix=API_PREFIX)

    # ── Exception handlers: every failure leaves as {error, code} ─────────────

    @application.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("API error", code=exc.code.value, path=str(request.url.path))
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @application.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        logger.warning(
            "HTTP exception",
            status_code=exc.status_code,
            detail=exc.detail,
            path=str(request.url.path),
        )
        code = code_for_status(exc.status_code)
        response = error_response(code)
        # Keep the framework status (e.g. 405) even when it has no code of its own.
        response.status_code = exc.status_code
        return response

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.info("Request validation failed", path=str(request.url.path), errors=len(exc.errors()))
        return error_response(ErrorCode.BAD_REQUEST)

    @application.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=str(request.url.path),
        )
        return error_response(ErrorCode.INTERNAL_ERROR)

    return application


# ─── Module-Level App (for uvicorn) ───────────────────────────────────────────
#   uvicorn app.main:app --host 0.0.0.0 --port 8080

app = create_app()
