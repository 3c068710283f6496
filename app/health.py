"""Liveness endpoint.

  GET /healthz — 200 {"status": "ok"} once the lifespan has finished startup
                 (config loaded, Supabase client and services built);
                 503 {"status": "starting"} before that and during shutdown.

Unauthenticated and outside the ``/api/v1`` prefix so load balancers and
container probes can reach it.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz(request: Request) -> JSONResponse:
    if not getattr(request.app.state, "ready", False):
        return JSONResponse(status_code=503, content={"status": "starting"})
    return JSONResponse(status_code=200, content={"status": "ok"})
