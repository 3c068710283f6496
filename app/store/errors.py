"""Store failure classification.

The adapter decides what a failure means; callers only look at the type:

  StoreError               — generic rejection (e.g. malformed UUID, bad filter)
  ├── NotFoundError        — the requested row / user does not exist
  ├── UniqueViolationError — a unique constraint rejected the write
  └── StoreUnavailableError — timeout, transport failure or 5xx from Supabase

Failures arrive either as ``postgrest.exceptions.APIError`` (REST tables),
as ``supabase_auth.errors.AuthError`` (Auth Admin API) or as a raw status and
body; all three are funnelled through the same rules.

``detail`` keeps the raw store text for logging. It is never sent to API
clients.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from postgrest.exceptions import APIError as PostgrestAPIError
from supabase_auth.errors import AuthError, AuthRetryableError

#: Postgres SQLSTATE for unique_violation.
PG_UNIQUE_VIOLATION = "23505"

#: PostgREST code for "singular response requested but 0 rows returned".
PGRST_NO_ROWS = "PGRST116"

#: PostgREST connection-group codes (database unreachable, pool timeout).
PGRST_CONNECTION_CODES: tuple[str, ...] = ("PGRST000", "PGRST001", "PGRST002", "PGRST003")

#: Auth Admin API code for an unknown user id.
AUTH_USER_NOT_FOUND = "user_not_found"

#: Fallback markers for error bodies that carry no structured code.
_UNIQUE_MARKERS: tuple[str, ...] = (
    "duplicate",
    "unique constraint",
    "unique_violation",
    PG_UNIQUE_VIOLATION,
    "projects_owner_name_unique",
)


class StoreError(Exception):
    """The store rejected or failed an operation."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        detail: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.detail = detail


class NotFoundError(StoreError):
    pass


class UniqueViolationError(StoreError):
    pass


class StoreUnavailableError(StoreError):
    pass


def _parse_error_body(body: str) -> dict[str, Any]:
    try:
        data = json.loads(body)
    except (TypeError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def _classify(
    status_code: Optional[int],
    code: Optional[str],
    detail: str,
    operation: str,
) -> StoreError:
    if status_code is not None:
        message = f"{operation} failed with status {status_code}"
    else:
        message = f"{operation} failed with code {code}"

    if (status_code is not None and status_code >= 500) or code in PGRST_CONNECTION_CODES:
        return StoreUnavailableError(message, status_code=status_code, code=code, detail=detail)

    if code == PG_UNIQUE_VIOLATION:
        return UniqueViolationError(message, status_code=status_code, code=code, detail=detail)

    if status_code == 404 or code in (PGRST_NO_ROWS, AUTH_USER_NOT_FOUND):
        return NotFoundError(message, status_code=status_code, code=code, detail=detail)

    # A structured code is authoritative; details may echo caller values.
    # 409 also covers foreign key violations (23503), so only an uncoded 409
    # counts as a conflict.
    if code is None:
        lowered = detail.lower()
        if status_code == 409 or any(marker in lowered for marker in _UNIQUE_MARKERS):
            return UniqueViolationError(message, status_code=status_code, code=code, detail=detail)

    return StoreError(message, status_code=status_code, code=code, detail=detail)


def classify_error(status_code: Optional[int], body: str, operation: str) -> StoreError:
    """Map a failed Supabase response body onto the StoreError hierarchy.

    PostgREST bodies look like ``{"code": "23505", "message": "...",
    "details": "...", "hint": null}``; the structured ``code`` decides, and
    the marker scan over the raw body only applies when there is none.

    Args:
        status_code: HTTP status of the response, when known.
        body: Raw response body.
        operation: Short label for the failing call, used in the message.
    """
    code = _parse_error_body(body).get("code")
    return _classify(status_code, str(code) if code is not None else None, body, operation)


def classify_api_error(exc: PostgrestAPIError, operation: str) -> StoreError:
    """Classify a ``postgrest.exceptions.APIError`` raised by ``execute()``.

    When the response body was not JSON, postgrest puts the HTTP status in
    ``code``; that case is treated as an uncoded response with a status.
    """
    code = str(exc.code) if exc.code is not None else None
    status_code: Optional[int] = None
    if code is not None and len(code) == 3 and code.isdigit():
        status_code, code = int(code), None
    detail = json.dumps(
        {"code": exc.code, "message": exc.message, "details": exc.details, "hint": exc.hint},
        default=str,
    )
    return _classify(status_code, code, detail, operation)


def classify_auth_error(exc: AuthError, operation: str) -> StoreError:
    """Classify a ``supabase_auth`` error raised by the Auth Admin API."""
    if isinstance(exc, AuthRetryableError):
        return StoreUnavailableError(
            f"{operation} transport error",
            status_code=exc.status or None,
            detail=exc.message,
        )
    status_code = getattr(exc, "status", None)
    code = str(exc.code) if exc.code else None
    return _classify(status_code, code, exc.message, operation)
