# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from flexiday.models.base import TimestampMixin, UUIDBase


class InviteLink(UUIDBase, TimestampMixin, table=True):
    """One-time, expiring code that grants membership in a group."""

    __tablename__ = "invite_link"

    group_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("user_group.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    code: str = Field(max_length=64, unique=True, index=True)
    expires_at: datetime = Field(sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    used_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    created_by_user_id: uuid.UUID
