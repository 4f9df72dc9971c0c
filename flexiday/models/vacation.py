# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime, time

import sqlalchemy as sa
from sqlmodel import Field

from flexiday.models.base import ACTIVE_ROWS, SoftDeleteMixin, TimestampMixin, UUIDBase
from flexiday.models.enums import VacationStatus, VacationType, check_values


class VacationRequest(UUIDBase, TimestampMixin, SoftDeleteMixin, table=True):
    """A single requested day off (or home-office day) for one user."""

    __tablename__ = "vacation_request"
    __table_args__ = (
        sa.Index(
            "uq_vacation_user_day_active",
            "user_id",
            "requested_day",
            unique=True,
            postgresql_where=ACTIVE_ROWS,
            sqlite_where=ACTIVE_ROWS,
        ),
        sa.CheckConstraint(check_values("vacation_type", VacationType), name="ck_vacation_request_type"),
    )

    user_id: uuid.UUID = Field(index=True)
    group_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("user_group.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    requested_day: date = Field(index=True)
    start_time: time | None = None
    end_time: time | None = None
    vacation_type: str = Field(
        default=VacationType.VACATION.value,
        max_length=50,
        sa_column_kwargs={"server_default": VacationType.VACATION.value},
    )
    approved_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    approved_by: uuid.UUID | None = None
    rejected_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    rejected_by: uuid.UUID | None = None

    @property
    def status(self) -> VacationStatus:
        if self.deleted_at is not None:
            return VacationStatus.DELETED
        if self.approved_at is not None:
            return VacationStatus.APPROVED
        if self.rejected_at is not None:
            return VacationStatus.REJECTED
        return VacationStatus.REQUESTED
