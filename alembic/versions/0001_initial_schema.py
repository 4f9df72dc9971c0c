"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from flexiday.models.enums import ChangeType, VacationType, check_values

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_ROWS = sa.text("deleted_at IS NULL")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "user_group",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("default_vacation_days", sa.Integer(), server_default="20", nullable=False),
        sa.Column("default_home_office_days", sa.Integer(), server_default="0", nullable=False),
        sa.Column("manager_user_id", sa.Uuid(), nullable=False),
        sa.Column("main_approval_user_id", sa.Uuid(), nullable=True),
        sa.Column("temp_approval_user_id", sa.Uuid(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_group_manager_user_id", "user_group", ["manager_user_id"])

    op.create_table(
        "group_membership",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("group_id", sa.Uuid(), sa.ForeignKey("user_group.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("view_access", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("admin_access", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("controlled_user", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_group_membership_group_id", "group_membership", ["group_id"])
    op.create_index("ix_group_membership_user_id", "group_membership", ["user_id"])
    op.create_index(
        "uq_group_membership_active",
        "group_membership",
        ["group_id", "user_id"],
        unique=True,
        postgresql_where=ACTIVE_ROWS,
    )

    op.create_table(
        "invite_link",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("group_id", sa.Uuid(), sa.ForeignKey("user_group.id", ondelete="CASCADE"), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by_user_id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_invite_link_group_id", "invite_link", ["group_id"])
    op.create_index("ix_invite_link_code", "invite_link", ["code"], unique=True)

    op.create_table(
        "vacation_request",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("group_id", sa.Uuid(), sa.ForeignKey("user_group.id", ondelete="CASCADE"), nullable=False),
        sa.Column("requested_day", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("vacation_type", sa.String(length=50), server_default=VacationType.VACATION.value, nullable=False),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.Uuid(), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_by", sa.Uuid(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(check_values("vacation_type", VacationType), name="ck_vacation_request_type"),
    )
    op.create_index("ix_vacation_request_user_id", "vacation_request", ["user_id"])
    op.create_index("ix_vacation_request_group_id", "vacation_request", ["group_id"])
    op.create_index("ix_vacation_request_requested_day", "vacation_request", ["requested_day"])
    op.create_index(
        "uq_vacation_user_day_active",
        "vacation_request",
        ["user_id", "requested_day"],
        unique=True,
        postgresql_where=ACTIVE_ROWS,
    )

    op.create_table(
        "user_year_quota",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("group_id", sa.Uuid(), sa.ForeignKey("user_group.id", ondelete="CASCADE"), nullable=False),
        sa.Column("related_year", sa.String(length=4), nullable=False),
        sa.Column("vacation_days", sa.Float(), server_default="20", nullable=False),
        sa.Column("home_office_days", sa.Float(), server_default="0", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "group_id", "related_year", name="uq_user_year_quota_user_group_year"),
        sa.CheckConstraint("length(related_year) = 4", name="ck_user_year_quota_related_year"),
    )
    op.create_index("ix_user_year_quota_user_id", "user_year_quota", ["user_id"])
    op.create_index("ix_user_year_quota_group_id", "user_year_quota", ["group_id"])

    op.create_table(
        "change_record",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("group_id", sa.Uuid(), sa.ForeignKey("user_group.id", ondelete="CASCADE"), nullable=False),
        sa.Column("change_type", sa.String(length=50), nullable=False),
        sa.Column("change_detail", sa.Text(), nullable=False),
        sa.Column("changing_user_id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(check_values("change_type", ChangeType), name="ck_change_record_type"),
    )
    op.create_index("ix_change_record_user_id", "change_record", ["user_id"])
    op.create_index("ix_change_record_group_created", "change_record", ["group_id", "created_at"])


def downgrade() -> None:
    op.drop_table("change_record")
    op.drop_table("user_year_quota")
    op.drop_table("vacation_request")
    op.drop_table("invite_link")
    op.drop_table("group_membership")
    op.drop_table("user_group")
