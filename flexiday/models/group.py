# ruff: noqa: TC003
from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from flexiday.models.base import ACTIVE_ROWS, SoftDeleteMixin, TimestampMixin, UUIDBase


class Group(UUIDBase, TimestampMixin, SoftDeleteMixin, table=True):
    """A team whose members' leave is managed together."""

    __tablename__ = "user_group"

    name: str = Field(max_length=255)
    default_vacation_days: int = Field(default=20, sa_column_kwargs={"server_default": "20"})
    default_home_office_days: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    manager_user_id: uuid.UUID = Field(index=True)
    main_approval_user_id: uuid.UUID | None = None
    temp_approval_user_id: uuid.UUID | None = None


class GroupMembership(UUIDBase, TimestampMixin, SoftDeleteMixin, table=True):
    """A user's permissions inside one group."""

    __tablename__ = "group_membership"
    __table_args__ = (
        sa.Index(
            "uq_group_membership_active",
            "group_id",
            "user_id",
            unique=True,
            postgresql_where=ACTIVE_ROWS,
            sqlite_where=ACTIVE_ROWS,
        ),
    )

    group_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("user_group.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    user_id: uuid.UUID = Field(index=True)
    view_access: bool = Field(default=False, sa_column_kwargs={"server_default": sa.text("false")})
    admin_access: bool = Field(default=False, sa_column_kwargs={"server_default": sa.text("false")})
    controlled_user: bool = Field(default=False, sa_column_kwargs={"server_default": sa.text("false")})
