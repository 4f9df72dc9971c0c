# ruff: noqa: TC003
from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from flexiday.models.base import TimestampMixin, UUIDBase


class UserYearQuota(UUIDBase, TimestampMixin, table=True):
    """Remaining vacation and home-office days for one user in one group and year."""

    __tablename__ = "user_year_quota"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "group_id", "related_year", name="uq_user_year_quota_user_group_year"),
        sa.CheckConstraint("length(related_year) = 4", name="ck_user_year_quota_related_year"),
    )

    user_id: uuid.UUID = Field(index=True)
    group_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("user_group.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    related_year: str = Field(max_length=4)
    vacation_days: float = Field(default=20, sa_column_kwargs={"server_default": "20"})
    home_office_days: float = Field(default=0, sa_column_kwargs={"server_default": "0"})
