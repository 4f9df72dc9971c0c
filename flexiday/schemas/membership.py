# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import Field

from flexiday.schemas.base import CamelModel


class MemberPermissions(CamelModel):
    """New permission flags for one member of a group."""

    user_id: uuid.UUID
    view_access: bool
    admin_access: bool
    controlled_user: bool


class UpdateMembersPayload(CamelModel):
    """Request body for a batch permission update."""

    group_id: uuid.UUID
    data: list[MemberPermissions] = Field(min_length=1)


class MembershipResponse(CamelModel):
    id: uuid.UUID
    group_id: uuid.UUID
    user_id: uuid.UUID
    view_access: bool
    admin_access: bool
    controlled_user: bool
    created_at: datetime
    updated_at: datetime
