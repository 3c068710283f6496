"""API error taxonomy.

Every failure leaves the service as ``{"error": <message>, "code": <code>}``
with a status code fixed by the error code. Handlers raise ``APIError`` at the
point of detection; the exception handler registered in ``create_app()``
renders it. Messages are stable and never carry store or library text.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from fastapi.responses import JSONResponse


class ErrorCode(str, Enum):
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    CONFLICT = "conflict"
    TOO_MANY_REQUESTS = "too_many_requests"
    INTERNAL_ERROR = "internal_error"


# code -> (HTTP status, default message)
ERROR_MAPPING: dict[ErrorCode, tuple[int, str]] = {
    ErrorCode.BAD_REQUEST: (400, "Invalid request payload"),
    ErrorCode.UNAUTHORIZED: (401, "Missing or invalid Authorization header"),
    ErrorCode.FORBIDDEN: (403, "You do not have access to this resource"),
    ErrorCode.NOT_FOUND: (404, "Resource not found"),
    ErrorCode.METHOD_NOT_ALLOWED: (405, "Method not allowed"),
    ErrorCode.CONFLICT: (409, "Resource already exists"),
    ErrorCode.TOO_MANY_REQUESTS: (429, "Too many requests, try again later"),
    ErrorCode.INTERNAL_ERROR: (500, "Internal server error"),
}

_STATUS_TO_CODE: dict[int, ErrorCode] = {
    status: code for code, (status, _message) in ERROR_MAPPING.items()
}


class APIError(Exception):
    """An error that maps directly onto one externally visible error code.

    Args:
        code: Error code; decides the HTTP status.
        message: Optional override of the default message for ``code``.
    """

    def __init__(self, code: ErrorCode, message: Optional[str] = None) -> None:
        status, default_message = ERROR_MAPPING[code]
        self.code = code
        self.status_code = status
        self.message = message or default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message, "code": self.code.value}


def code_for_status(status_code: int) -> ErrorCode:
    """Best-fitting error code for a bare HTTP status (framework errors)."""
    if status_code in _STATUS_TO_CODE:
        return _STATUS_TO_CODE[status_code]
    if 400 <= status_code < 500:
        return ErrorCode.BAD_REQUEST
    return ErrorCode.INTERNAL_ERROR


def error_response(
    code: ErrorCode,
    message: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    """Build the JSON error response for ``code``."""
    error = APIError(code, message)
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_dict(),
        headers=headers,
    )
