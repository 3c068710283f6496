"""Request context middleware.

Tags every request with a ULID request id:
  - reuses a well-formed inbound ``X-Request-ID`` (so a frontend or gateway
    can correlate), otherwise generates a new one
  - binds it into the structlog context for the duration of the request
  - echoes it back in the ``X-Request-ID`` response header
  - logs one ``request_completed`` line with method, path, status and latency

Registration (in create_app()):
    application.add_middleware(RequestContextMiddleware)
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.utils.logger import clear_request_id, get_logger, set_request_id
from app.utils.ulid import generate_ulid, is_ulid

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        inbound = request.headers.get(REQUEST_ID_HEADER, "")
        request_id = inbound if is_ulid(inbound) else generate_ulid()
        request.state.request_id = request_id
        set_request_id(request_id)

        start = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            logger.info(
                "request_completed",
                method=request.method,
                path=str(request.url.path),
                status=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            return response
        finally:
            clear_request_id()
