"""Store interfaces consumed by the request handlers.

The handlers depend on these Protocols, not on Supabase. Tests substitute
AsyncMock objects; production wires the Supabase implementations from
``app/store/supabase_store.py``.

Contract shared by every method:
  - Failures raise a StoreError subclass (see ``app/store/errors.py``).
  - A successful call returns the record. Returning None is a contract
    violation; callers treat it as an internal error.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from app.store.models import CreateProjectKeyParams, Project, ProjectKey, User


@runtime_checkable
class UserStore(Protocol):
    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        """Fetch a user profile. Raises NotFoundError for unknown ids."""
        ...


@runtime_checkable
class ProjectStore(Protocol):
    async def get_project_by_id(self, project_id: str) -> Optional[Project]:
        """Fetch one project. Raises NotFoundError when no row matches."""
        ...

    async def create_project(self, name: str, owner_user_id: str) -> Optional[Project]:
        """Insert a project. Raises UniqueViolationError on a duplicate (owner, name)."""
        ...


@runtime_checkable
class ProjectKeyStore(Protocol):
    async def create_project_key(self, params: CreateProjectKeyParams) -> Optional[ProjectKey]:
        """Insert a project key and return the stored row."""
        ...
