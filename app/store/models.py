"""Records exchanged with the remote store.

Rows arrive as PostgREST / GoTrue JSON and are converted with the
``from_row`` / ``from_admin_response`` constructors below. Column names follow
the Supabase schema (``owner_user_id``, ``secret_enc``, ...); attribute names
follow what the values mean.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from app.constants import DEFAULT_KEY_SCOPES

_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a Supabase timestamp (``...Z`` or ``...+00:00``, up to 9 fractional digits)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).replace("Z", "+00:00")
    # datetime only keeps microseconds; GoTrue may send nanoseconds.
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    return datetime.fromisoformat(text)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """RFC 3339 in UTC with a ``Z`` suffix; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


# ─── User ─────────────────────────────────────────────────────────────────────


@dataclass
class User:
    """User profile as returned to the frontend by ``GET /me``."""

    id: str
    email: str
    provider: str = ""
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_admin_response(cls, data: dict[str, Any]) -> "User":
        """Build from a GoTrue ``GET /admin/users/{id}`` body."""
        app_metadata = data.get("app_metadata") or {}
        user_metadata = data.get("user_metadata") or {}
        return cls(
            id=data.get("id", ""),
            email=data.get("email") or "",
            provider=app_metadata.get("provider") or "",
            name=user_metadata.get("full_name") or None,
            avatar_url=user_metadata.get("avatar_url") or None,
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
        )

    def to_public_dict(self) -> dict[str, Any]:
        """camelCase JSON for the API; ``name`` / ``avatarUrl`` omitted when unset."""
        body: dict[str, Any] = {
            "id": self.id,
            "email": self.email,
        }
        if self.name:
            body["name"] = self.name
        if self.avatar_url:
            body["avatarUrl"] = self.avatar_url
        body["provider"] = self.provider
        body["createdAt"] = format_timestamp(self.created_at)
        body["updatedAt"] = format_timestamp(self.updated_at)
        return body


# ─── Project ──────────────────────────────────────────────────────────────────


@dataclass
class Project:
    """A row of the ``projects`` table."""

    id: str
    name: str
    owner_user_id: str
    retention_days: Optional[int] = None
    signed_only: Optional[bool] = None
    is_demo: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Project":
        return cls(
            id=row["id"],
            name=row.get("name", ""),
            owner_user_id=row.get("owner_user_id", ""),
            retention_days=row.get("retention_days"),
            signed_only=row.get("signed_only"),
            is_demo=row.get("is_demo"),
            created_at=parse_timestamp(row.get("created_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
        )


# ─── Project keys ─────────────────────────────────────────────────────────────


@dataclass
class ProjectKey:
    """A row of the ``project_keys`` table.

    ``secret_hash`` is stored in the ``secret_enc`` column and ``secret_last4``
    in ``secret_fingerprint``. The plaintext secret is never part of a row.
    """

    id: str
    project_id: str
    label: str
    env: str
    signed_only: bool
    public_key: str
    secret_hash: str = field(repr=False)
    secret_last4: str
    created_by: str
    disabled: bool = False
    scopes: list[str] = field(default_factory=lambda: list(DEFAULT_KEY_SCOPES))
    created_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ProjectKey":
        scopes = row.get("scopes") or list(DEFAULT_KEY_SCOPES)
        return cls(
            id=row["id"],
            project_id=row.get("project_id", ""),
            label=row.get("label", ""),
            env=row.get("env", ""),
            signed_only=bool(row.get("signed_only", False)),
            public_key=row.get("public_key", ""),
            secret_hash=row.get("secret_enc", ""),
            secret_last4=row.get("secret_fingerprint", ""),
            created_by=row.get("created_by", ""),
            disabled=bool(row.get("disabled", False)),
            scopes=list(scopes),
            created_at=parse_timestamp(row.get("created_at")),
            last_used_at=parse_timestamp(row.get("last_used_at")),
        )


@dataclass(frozen=True)
class CreateProjectKeyParams:
    """Everything the store needs to persist a new project key."""

    project_id: str
    label: str
    env: str
    signed_only: bool
    public_key: str
    secret_hash: str = field(repr=False)
    secret_last4: str
    created_by: str

    def to_row(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "label": self.label,
            "env": self.env,
            "signed_only": self.signed_only,
            "public_key": self.public_key,
            "secret_enc": self.secret_hash,
            "secret_fingerprint": self.secret_last4,
            "created_by": self.created_by,
        }
