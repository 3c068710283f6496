"""Project endpoints.

  POST /api/v1/projects             — create a project           → 201 {id}
  POST /api/v1/projects/{id}/keys   — issue a project key pair   → 201, secret shown once

Both require a Supabase JWT (Depends(authenticate_request)). Bodies are read
raw and validated by ProjectService so that the key issuance pipeline can
rate-limit before it looks at the body.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.auth.middleware import authenticate_request
from app.auth.models import Principal
from app.projects.service import ProjectService

router = APIRouter(tags=["projects"])


def get_project_service(request: Request) -> ProjectService:
    """Dependency: the per-application ProjectService built in the lifespan."""
    return request.app.state.project_service


@router.post("/projects", status_code=201)
async def create_project(
    request: Request,
    principal: Principal = Depends(authenticate_request),
    service: ProjectService = Depends(get_project_service),
) -> JSONResponse:
    """Create a project owned by the caller. Names are unique per owner (409)."""
    project = await service.create_project(principal, await request.body())
    return JSONResponse(status_code=201, content={"id": project.id})


@router.post("/projects/{project_id}/keys", status_code=201)
async def create_project_key(
    project_id: str,
    request: Request,
    principal: Principal = Depends(authenticate_request),
    service: ProjectService = Depends(get_project_service),
) -> JSONResponse:
    """Issue a key pair for a project the caller owns.

    The response carries ``project_secret`` in plaintext. It is never stored
    and cannot be retrieved again, so the response is marked
    ``Cache-Control: no-store``.
    """
    body = await service.create_project_key(principal, project_id, await request.body())
    return JSONResponse(
        status_code=201,
        content=body,
        headers={"Cache-Control": "no-store"},
    )
