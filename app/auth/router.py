"""Current-user endpoint.

  GET /api/v1/me — profile of the authenticated caller, fetched from the
                   Supabase Auth Admin API with the service role key.

Any store failure, including an unknown user id, is reported as 500: the
token was valid, so a missing profile is a server-side inconsistency rather
than a caller error.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from app.auth.middleware import authenticate_request
from app.auth.models import Principal
from app.errors import APIError, ErrorCode
from app.store.errors import StoreError
from app.store.protocol import UserStore
from app.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["users"])


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


@router.get("/me")
async def get_current_user(
    principal: Principal = Depends(authenticate_request),
    users: UserStore = Depends(get_user_store),
) -> dict:
    """Return ``{id, email, name?, avatarUrl?, provider, createdAt, updatedAt}``."""
    try:
        user = await users.get_user_by_id(principal.subject)
    except StoreError as exc:
        logger.error(
            "current_user_lookup_failed",
            user_id=principal.subject,
            error=exc.message,
            error_type=type(exc).__name__,
            detail=exc.detail,
        )
        raise APIError(ErrorCode.INTERNAL_ERROR) from exc

    if user is None:
        logger.error("current_user_lookup_returned_none", user_id=principal.subject)
        raise APIError(ErrorCode.INTERNAL_ERROR)

    return user.to_public_dict()
