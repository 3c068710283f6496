"""Request bodies for the project endpoints.

Bodies are validated inside the service (not in the route signature) so that
validation happens at the point in the pipeline where a bad body should
surface, e.g. after rate limiting for key issuance.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr

from app.constants import KEY_LABEL_MAX_LENGTH, PROJECT_NAME_MAX_LENGTH


class CreateProjectRequest(BaseModel):
    """Body of ``POST /api/v1/projects``."""

    name: StrictStr = Field(min_length=1, max_length=PROJECT_NAME_MAX_LENGTH)


class CreateProjectKeyRequest(BaseModel):
    """Body of ``POST /api/v1/projects/{id}/keys``.

    ``env`` and ``scopes`` are optional; the service fills in ``"prod"`` and
    ``["ingest"]`` when they are null or empty.
    """

    model_config = ConfigDict(extra="ignore")

    label: StrictStr = Field(min_length=1, max_length=KEY_LABEL_MAX_LENGTH)
    require_signature: StrictBool = False
    env: Optional[StrictStr] = None
    scopes: Optional[list[StrictStr]] = None
