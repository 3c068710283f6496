"""Remote store package (Supabase).

Re-exports the public API:

    from app.store import ProjectStore, NotFoundError, CreateProjectKeyParams

Layout:
    models.py         — User, Project, ProjectKey, CreateProjectKeyParams
    errors.py         — StoreError hierarchy + classify_error()
    protocol.py       — UserStore / ProjectStore / ProjectKeyStore Protocols
    supabase_store.py — Supabase REST / Auth Admin implementations
"""

from app.store.errors import (
    NotFoundError,
    StoreError,
    StoreUnavailableError,
    UniqueViolationError,
)
from app.store.models import CreateProjectKeyParams, Project, ProjectKey, User
from app.store.protocol import ProjectKeyStore, ProjectStore, UserStore

__all__ = [
    # Records
    "CreateProjectKeyParams",
    "Project",
    "ProjectKey",
    "User",
    # Errors
    "StoreError",
    "NotFoundError",
    "UniqueViolationError",
    "StoreUnavailableError",
    # Protocols
    "UserStore",
    "ProjectStore",
    "ProjectKeyStore",
]
