from __future__ import annotations

import uuid
from datetime import UTC, date, datetime

from flexiday.models import (
    ChangeRecord,
    Group,
    GroupMembership,
    InviteLink,
    SQLModel,
    UserYearQuota,
    VacationRequest,
)
from flexiday.models.enums import ChangeType, VacationStatus, VacationType, check_values

EXPECTED_TABLES = {
    "change_record",
    "group_membership",
    "invite_link",
    "user_group",
    "user_year_quota",
    "vacation_request",
}


def test_all_tables_registered() -> None:
    table_names = set(SQLModel.metadata.tables.keys())
    assert EXPECTED_TABLES.issubset(table_names)


def test_group_defaults() -> None:
    group = Group(name="Platform", manager_user_id=uuid.uuid4())
    assert group.default_vacation_days == 20
    assert group.default_home_office_days == 0
    assert group.main_approval_user_id is None
    assert group.deleted_at is None
    assert group.id is not None


def test_membership_defaults_grant_nothing() -> None:
    membership = GroupMembership(group_id=uuid.uuid4(), user_id=uuid.uuid4())
    assert membership.view_access is False
    assert membership.admin_access is False
    assert membership.controlled_user is False


def test_active_unique_indexes_are_partial() -> None:
    membership_index = next(
        i for i in GroupMembership.__table__.indexes if i.name == "uq_group_membership_active"
    )
    vacation_index = next(i for i in VacationRequest.__table__.indexes if i.name == "uq_vacation_user_day_active")
    for index in (membership_index, vacation_index):
        assert index.unique is True
        assert str(index.dialect_options["postgresql"]["where"]) == "deleted_at IS NULL"
        assert str(index.dialect_options["sqlite"]["where"]) == "deleted_at IS NULL"


def test_quota_unique_per_user_group_year() -> None:
    constraint_names = {c.name for c in UserYearQuota.__table__.constraints}
    assert "uq_user_year_quota_user_group_year" in constraint_names


def test_vacation_request_defaults() -> None:
    vacation = VacationRequest(user_id=uuid.uuid4(), group_id=uuid.uuid4(), requested_day=date(2025, 3, 3))
    assert vacation.vacation_type == VacationType.VACATION.value
    assert vacation.start_time is None
    assert vacation.status == VacationStatus.REQUESTED


def test_vacation_status_is_derived() -> None:
    vacation = VacationRequest(user_id=uuid.uuid4(), group_id=uuid.uuid4(), requested_day=date(2025, 3, 3))
    vacation.approved_at = datetime.now(UTC)
    assert vacation.status == VacationStatus.APPROVED

    vacation.approved_at = None
    vacation.rejected_at = datetime.now(UTC)
    assert vacation.status == VacationStatus.REJECTED

    vacation.deleted_at = datetime.now(UTC)
    assert vacation.status == VacationStatus.DELETED


def test_invite_link_unused_by_default() -> None:
    invite = InviteLink(
        group_id=uuid.uuid4(),
        code="abc",
        expires_at=datetime.now(UTC),
        created_by_user_id=uuid.uuid4(),
    )
    assert invite.used_at is None


def test_change_record_instantiation() -> None:
    record = ChangeRecord(
        user_id=uuid.uuid4(),
        group_id=uuid.uuid4(),
        change_type=ChangeType.GROUP.value,
        change_detail="{}",
        changing_user_id=uuid.uuid4(),
    )
    assert record.change_type == "GROUP"


def test_check_values_lists_every_member() -> None:
    expression = check_values("change_type", ChangeType)
    assert expression == "change_type IN ('GROUP', 'GROUP_USER', 'VACATION', 'USER_YEAR_QUOTAS')"
