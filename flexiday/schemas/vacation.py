# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime, time
from typing import Self

from pydantic import model_validator

from flexiday.models.enums import VacationStatus, VacationType
from flexiday.schemas.base import CamelModel

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class FileVacationPayload(CamelModel):
    """Request body for filing a vacation day for the caller."""

    group_id: uuid.UUID
    requested_day: date
    start_time: time | None = None
    end_time: time | None = None
    vacation_type: VacationType = VacationType.VACATION

    @model_validator(mode="after")
    def _validate_times(self) -> Self:
        if self.start_time is not None and self.end_time is not None and self.end_time <= self.start_time:
            msg = "endTime must be after startTime"
            raise ValueError(msg)
        return self


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class VacationResponse(CamelModel):
    """Response schema for a single vacation request."""

    id: uuid.UUID
    user_id: uuid.UUID
    group_id: uuid.UUID
    requested_day: date
    start_time: time | None
    end_time: time | None
    vacation_type: VacationType
    status: VacationStatus
    approved_at: datetime | None
    approved_by: uuid.UUID | None
    rejected_at: datetime | None
    rejected_by: uuid.UUID | None
    created_at: datetime
    updated_at: datetime
