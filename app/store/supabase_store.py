"""Supabase-backed stores built on supabase-py.

Two clients, both created once in the app lifespan:

  - ``supabase.AsyncClient`` (``create_supabase_client``) for the REST tables,
    with the PostgREST timeout set through ``AsyncClientOptions``:

        projects      .select("*").eq("id", ...)  /  .insert(...)   — SupabaseProjectStore
        project_keys  .insert(...)                                  — SupabaseProjectKeyStore

  - ``AsyncGoTrueAdminAPI`` (``create_admin_api``) pointed at SUPABASE_AUTH_URL
    over the shared ``httpx.AsyncClient``, for ``get_user_by_id`` — SupabaseUserStore.

Both authenticate with the service role key (bypasses RLS).

Every call is bounded by the configured timeout (5 s by default). Timeouts
and transport errors become StoreUnavailableError; API errors are classified
by ``classify_api_error`` / ``classify_auth_error``. Raw error text is logged
here and kept on the exception's ``detail`` for the caller's logs, never for
API responses.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import AsyncClient, create_async_client
from supabase.lib.client_options import AsyncClientOptions
from supabase_auth import AsyncGoTrueAdminAPI
from supabase_auth.errors import AuthError

from app.config import SupabaseConfig
from app.constants import (
    POOL_KEEPALIVE_EXPIRY_S,
    POOL_MAX_CONNECTIONS,
    POOL_MAX_KEEPALIVE,
    SUPABASE_TIMEOUT_S,
)
from app.store.errors import (
    NotFoundError,
    StoreError,
    StoreUnavailableError,
    classify_api_error,
    classify_auth_error,
)
from app.store.models import CreateProjectKeyParams, Project, ProjectKey, User
from app.utils.logger import PerformanceLogger, get_logger

logger = get_logger(__name__)

_PROJECTS_TABLE = "projects"
_PROJECT_KEYS_TABLE = "project_keys"


# ─── Clients ──────────────────────────────────────────────────────────────────


def create_http_client(timeout_s: float = SUPABASE_TIMEOUT_S) -> httpx.AsyncClient:
    """Create the shared outbound client used by the Auth Admin API.

    Created once in the lifespan and stored in ``app.state.http_client``;
    never instantiated per request.
    """
    return httpx.AsyncClient(
        limits=httpx.Limits(
            max_connections=POOL_MAX_CONNECTIONS,
            max_keepalive_connections=POOL_MAX_KEEPALIVE,
            keepalive_expiry=POOL_KEEPALIVE_EXPIRY_S,
        ),
        timeout=httpx.Timeout(timeout_s),
        follow_redirects=False,
    )


async def create_supabase_client(config: SupabaseConfig) -> AsyncClient:
    """Create the service-role ``AsyncClient`` for the REST tables."""
    return await create_async_client(
        config.project_url,
        config.service_role_key,
        options=AsyncClientOptions(
            postgrest_client_timeout=config.timeout_s,
            auto_refresh_token=False,
            persist_session=False,
        ),
    )


def create_admin_api(config: SupabaseConfig, http_client: httpx.AsyncClient) -> AsyncGoTrueAdminAPI:
    """Create the Auth Admin API client for ``config.auth_url``."""
    return AsyncGoTrueAdminAPI(
        url=config.auth_url,
        headers={
            "apikey": config.service_role_key,
            "Authorization": f"Bearer {config.service_role_key}",
        },
        http_client=http_client,
    )


async def _execute(query: Any, operation: str) -> list[dict[str, Any]]:
    """Run a PostgREST request builder and return its rows.

    Raises:
        StoreUnavailableError: timeout or transport failure.
        StoreError (or subclass): PostgREST rejected the request, or the
            payload is not a list of rows.
    """
    try:
        with PerformanceLogger(operation, logger):
            response = await query.execute()
    except PostgrestAPIError as exc:
        logger.warning(
            "supabase_api_error",
            operation=operation,
            code=exc.code,
            message=exc.message,
            details=exc.details,
        )
        raise classify_api_error(exc, operation) from exc
    except httpx.TimeoutException as exc:
        raise StoreUnavailableError(f"{operation} timed out", detail=str(exc)) from exc
    except httpx.HTTPError as exc:
        raise StoreUnavailableError(f"{operation} transport error", detail=str(exc)) from exc

    data = response.data
    if not isinstance(data, list):
        raise StoreError(f"{operation} returned an unexpected payload", detail=repr(data)[:200])
    return data


# ─── Stores ───────────────────────────────────────────────────────────────────


class SupabaseUserStore:
    """UserStore backed by the GoTrue Admin API."""

    def __init__(self, admin: AsyncGoTrueAdminAPI) -> None:
        self.admin = admin

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        if not user_id:
            raise StoreError("empty user id")

        operation = "supabase_get_user"
        try:
            with PerformanceLogger(operation, logger):
                response = await self.admin.get_user_by_id(user_id)
        except AuthError as exc:
            logger.warning(
                "supabase_auth_error",
                operation=operation,
                status=getattr(exc, "status", None),
                code=exc.code,
                message=exc.message,
            )
            raise classify_auth_error(exc, operation) from exc
        except httpx.TimeoutException as exc:
            raise StoreUnavailableError(f"{operation} timed out", detail=str(exc)) from exc
        except httpx.HTTPError as exc:
            raise StoreUnavailableError(f"{operation} transport error", detail=str(exc)) from exc
        except ValueError as exc:
            # Non-UUID ids are refused client side; so are unparseable user bodies.
            raise StoreError(f"{operation} rejected the request", detail=str(exc)) from exc

        if response.user is None:
            raise NotFoundError("user not found")
        return User.from_admin_response(response.user.model_dump(mode="json"))


class SupabaseProjectStore:
    """ProjectStore backed by the ``projects`` table."""

    def __init__(self, client: AsyncClient) -> None:
        self.client = client

    async def get_project_by_id(self, project_id: str) -> Optional[Project]:
        if not project_id:
            raise StoreError("project id cannot be empty")

        rows = await _execute(
            self.client.table(_PROJECTS_TABLE).select("*").eq("id", project_id),
            "supabase_get_project",
        )
        if not rows:
            raise NotFoundError("project not found", status_code=200)
        return Project.from_row(rows[0])

    async def create_project(self, name: str, owner_user_id: str) -> Optional[Project]:
        if not name:
            raise StoreError("project name cannot be empty")
        if not owner_user_id:
            raise StoreError("owner user id cannot be empty")

        rows = await _execute(
            self.client.table(_PROJECTS_TABLE).insert({"name": name, "owner_user_id": owner_user_id}),
            "supabase_create_project",
        )
        if not rows:
            raise StoreError("no project returned from database")
        return Project.from_row(rows[0])


class SupabaseProjectKeyStore:
    """ProjectKeyStore backed by the ``project_keys`` table."""

    def __init__(self, client: AsyncClient) -> None:
        self.client = client

    async def create_project_key(self, params: CreateProjectKeyParams) -> Optional[ProjectKey]:
        if not params.project_id:
            raise StoreError("project id cannot be empty")
        if not params.label:
            raise StoreError("label cannot be empty")
        if not params.public_key:
            raise StoreError("public key cannot be empty")
        if not params.secret_hash:
            raise StoreError("secret hash cannot be empty")

        rows = await _execute(
            self.client.table(_PROJECT_KEYS_TABLE).insert(params.to_row()),
            "supabase_create_project_key",
        )
        if not rows:
            raise StoreError("no project key returned from database")
        return ProjectKey.from_row(rows[0])
