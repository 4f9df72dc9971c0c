# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import Field

from flexiday.schemas.base import CamelModel


class CreateInvitePayload(CamelModel):
    """Optional lifetime override for a new invite link."""

    ttl_hours: int | None = Field(default=None, ge=1, le=720)


class InviteResponse(CamelModel):
    id: uuid.UUID
    group_id: uuid.UUID
    code: str
    expires_at: datetime
    used_at: datetime | None
    created_at: datetime
