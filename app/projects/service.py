"""Project and project-key operations.

ProjectService owns the two write flows behind the project routes:

  create_project()      — validate name → insert → map duplicate to 409
  create_project_key()  — the key issuance pipeline:

     1. project id present                 else 400
     2. burst window allows                else 429
     3. daily window allows                else 429
     4. body valid (label 1–64 chars)      else 400
     5. project lookup                     404 missing / 400 rejected id /
                                           500 store unavailable or None
     6. caller owns the project            else 403
     7. defaults: env "prod", scopes ["ingest"]
     8. public key + secret generated      else 500
     9. secret hashed with the pepper, last-4 kept
    10. key row persisted                  else 500 (error or None)
    11. response carries the plaintext secret — the only time it is shown

Each step short-circuits with an APIError. Nothing is retried: a client
retry after a timeout that happened after step 10 mints a second key.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from app.auth.keys import (
    RandomnessUnavailable,
    generate_public_key,
    generate_secret,
    get_last4,
    hash_secret,
)
from app.auth.limiter import KeyIssuanceLimits
from app.auth.models import Principal
from app.constants import DEFAULT_KEY_ENV, DEFAULT_KEY_SCOPES
from app.errors import APIError, ErrorCode
from app.projects.schemas import CreateProjectKeyRequest, CreateProjectRequest
from app.store.errors import (
    NotFoundError,
    StoreError,
    StoreUnavailableError,
    UniqueViolationError,
)
from app.store.models import CreateProjectKeyParams, Project, format_timestamp
from app.store.protocol import ProjectKeyStore, ProjectStore
from app.utils.logger import get_logger

logger = get_logger(__name__)


def ensure_owner(project: Project, principal: Principal) -> None:
    """Raise Forbidden unless ``principal`` owns ``project``. No I/O."""
    if project.owner_user_id != principal.subject:
        logger.warning(
            "project_access_denied",
            project_id=project.id,
            user_id=principal.subject,
        )
        raise APIError(ErrorCode.FORBIDDEN)


def _parse_body(model: type, raw: bytes) -> Any:
    try:
        return model.model_validate_json(raw or b"")
    except ValidationError as exc:
        logger.info(
            "request_body_invalid",
            model=model.__name__,
            errors=[".".join(str(p) for p in err["loc"]) or err["type"] for err in exc.errors()],
        )
        raise APIError(ErrorCode.BAD_REQUEST) from exc


class ProjectService:
    """Project / project-key flows over injected stores and limiters.

    Args:
        projects: ProjectStore implementation.
        keys: ProjectKeyStore implementation.
        limits: Burst + daily limiter pair (one per application).
        secret_pepper: HMAC key for secret fingerprints.
    """

    def __init__(
        self,
        projects: ProjectStore,
        keys: ProjectKeyStore,
        limits: KeyIssuanceLimits,
        secret_pepper: str,
    ) -> None:
        self.projects = projects
        self.keys = keys
        self.limits = limits
        self._secret_pepper = secret_pepper

    # ── Projects ──────────────────────────────────────────────────────────────

    async def create_project(self, principal: Principal, raw_body: bytes) -> Project:
        """Create a project owned by ``principal``.

        Raises:
            APIError: BAD_REQUEST (invalid body), CONFLICT (name already used
                by this owner), INTERNAL_ERROR (any other store failure).
        """
        body: CreateProjectRequest = _parse_body(CreateProjectRequest, raw_body)

        try:
            project = await self.projects.create_project(body.name, principal.subject)
        except UniqueViolationError as exc:
            logger.info("project_name_conflict", user_id=principal.subject, detail=exc.detail)
            raise APIError(ErrorCode.CONFLICT) from exc
        except StoreError as exc:
            logger.error(
                "project_create_failed",
                user_id=principal.subject,
                error=exc.message,
                detail=exc.detail,
            )
            raise APIError(ErrorCode.INTERNAL_ERROR) from exc

        if project is None:
            logger.error("project_create_returned_none", user_id=principal.subject)
            raise APIError(ErrorCode.INTERNAL_ERROR)

        logger.info("project_created", project_id=project.id, user_id=principal.subject)
        return project

    # ── Project keys ──────────────────────────────────────────────────────────

    async def _load_project(self, project_id: str) -> Project:
        try:
            project = await self.projects.get_project_by_id(project_id)
        except NotFoundError as exc:
            raise APIError(ErrorCode.NOT_FOUND) from exc
        except StoreUnavailableError as exc:
            logger.error("project_lookup_unavailable", project_id=project_id, error=exc.message)
            raise APIError(ErrorCode.INTERNAL_ERROR) from exc
        except StoreError as exc:
            # Rejections here come from the caller's id (e.g. not a UUID).
            logger.warning(
                "project_lookup_rejected",
                project_id=project_id,
                error=exc.message,
                detail=exc.detail,
            )
            raise APIError(ErrorCode.BAD_REQUEST) from exc

        if project is None:
            logger.error("project_lookup_returned_none", project_id=project_id)
            raise APIError(ErrorCode.INTERNAL_ERROR)
        return project

    async def create_project_key(
        self,
        principal: Principal,
        project_id: str,
        raw_body: bytes,
    ) -> dict[str, Any]:
        """Issue a new key pair for ``project_id``.

        Returns:
            Response body: ``{project_key_public, project_secret, key: {id,
            label, env, scopes, secret_last4, created_at}}``. The plaintext
            secret appears here and nowhere else.

        Raises:
            APIError: see the module docstring for the step → code mapping.
        """
        if not project_id or not project_id.strip():
            raise APIError(ErrorCode.BAD_REQUEST)

        if not self.limits.allow_burst(principal.subject):
            raise APIError(ErrorCode.TOO_MANY_REQUESTS)
        if not self.limits.allow_daily(principal.subject):
            raise APIError(ErrorCode.TOO_MANY_REQUESTS)

        body: CreateProjectKeyRequest = _parse_body(CreateProjectKeyRequest, raw_body)

        project = await self._load_project(project_id)
        ensure_owner(project, principal)

        env = body.env or DEFAULT_KEY_ENV
        scopes = list(body.scopes) if body.scopes else list(DEFAULT_KEY_SCOPES)

        try:
            public_key = generate_public_key()
            secret = generate_secret()
        except RandomnessUnavailable as exc:
            logger.error("key_generation_failed", project_id=project_id, error=exc.message)
            raise APIError(ErrorCode.INTERNAL_ERROR) from exc

        secret_last4 = get_last4(secret)
        params = CreateProjectKeyParams(
            project_id=project_id,
            label=body.label,
            env=env,
            signed_only=body.require_signature,
            public_key=public_key,
            secret_hash=hash_secret(secret, self._secret_pepper),
            secret_last4=secret_last4,
            created_by=principal.subject,
        )

        try:
            project_key = await self.keys.create_project_key(params)
        except StoreError as exc:
            logger.error(
                "project_key_create_failed",
                project_id=project_id,
                error=exc.message,
                detail=exc.detail,
            )
            raise APIError(ErrorCode.INTERNAL_ERROR) from exc

        if project_key is None:
            logger.error("project_key_create_returned_none", project_id=project_id)
            raise APIError(ErrorCode.INTERNAL_ERROR)

        logger.info(
            "project_key_created",
            project_id=project_id,
            key_id=project_key.id,
            env=project_key.env,
            user_id=principal.subject,
        )

        return {
            "project_key_public": public_key,
            "project_secret": secret,
            "key": {
                "id": project_key.id,
                "label": project_key.label,
                "env": project_key.env,
                "scopes": scopes,
                "secret_last4": secret_last4,
                "created_at": format_timestamp(project_key.created_at),
            },
        }
