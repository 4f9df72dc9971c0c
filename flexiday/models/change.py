# ruff: noqa: TC003
from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from flexiday.models.base import TimestampMixin, UUIDBase
from flexiday.models.enums import ChangeType, check_values


class ChangeRecord(UUIDBase, TimestampMixin, table=True):
    """Append-only record of a state-changing action, kept for compliance review."""

    __tablename__ = "change_record"
    __table_args__ = (
        sa.Index("ix_change_record_group_created", "group_id", "created_at"),
        sa.CheckConstraint(check_values("change_type", ChangeType), name="ck_change_record_type"),
    )

    user_id: uuid.UUID = Field(index=True)
    group_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("user_group.id", ondelete="CASCADE"), nullable=False),
    )
    change_type: str = Field(max_length=50)
    change_detail: str = Field(sa_type=sa.Text)
    changing_user_id: uuid.UUID
