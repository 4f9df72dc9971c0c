# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import Field

from flexiday.schemas.base import CamelModel

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class CreateGroupPayload(CamelModel):
    """Request body for creating a group. The caller becomes its manager."""

    group_name: str = Field(min_length=1, max_length=255)
    default_vacation: int | None = Field(default=None, ge=0, le=99)
    default_home_office: int | None = Field(default=None, ge=0, le=99)
    main_approval_user: uuid.UUID | None = None


class UpdateApproversPayload(CamelModel):
    """Request body for replacing a group's approvers. Null clears a slot."""

    main_approval_user: uuid.UUID | None = None
    temp_approval_user: uuid.UUID | None = None


class UpdateManagerPayload(CamelModel):
    manager_user_id: uuid.UUID


class UpdateQuotaDefaultsPayload(CamelModel):
    default_vacation: int = Field(ge=0, le=99)
    default_home_office: int = Field(ge=0, le=99)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class GroupResponse(CamelModel):
    id: uuid.UUID
    name: str
    default_vacation_days: int
    default_home_office_days: int
    manager_user_id: uuid.UUID
    main_approval_user_id: uuid.UUID | None
    temp_approval_user_id: uuid.UUID | None
    created_at: datetime
    updated_at: datetime


class ApproversResponse(CamelModel):
    """Approver identities of a group. Ids are None when a slot is unset."""

    main_approver_id: uuid.UUID | None = None
    main_approver_email: str | None = None
    temp_approver_id: uuid.UUID | None = None
    temp_approver_email: str | None = None

    def is_approver(self, user_id: uuid.UUID) -> bool:
        return user_id in (self.main_approver_id, self.temp_approver_id)
