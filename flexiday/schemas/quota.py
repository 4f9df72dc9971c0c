# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import Field

from flexiday.schemas.base import CamelModel


class QuotaSeed(CamelModel):
    """Starting balances for one user, group and year."""

    user_id: uuid.UUID
    group_id: uuid.UUID
    related_year: str = Field(pattern=r"^[0-9]{4}$")
    vacation_days: float = Field(ge=0)
    home_office_days: float = Field(ge=0)


class SetBalancesPayload(CamelModel):
    """Absolute balances for a manual correction."""

    vacation_days: float = Field(ge=-366, le=366)
    home_office_days: float = Field(ge=-366, le=366)


class QuotaResponse(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    group_id: uuid.UUID
    related_year: str
    vacation_days: float
    home_office_days: float
    created_at: datetime
    updated_at: datetime
