"""Tests for the change log: recording, fail-closed writes and the query endpoint."""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import exc as sa_exc
from sqlalchemy import func, select

from flexiday.models.change import ChangeRecord
from flexiday.models.enums import ChangeType
from flexiday.models.group import Group, GroupMembership
from flexiday.schemas.auth import AuthContext
from flexiday.schemas.group import CreateGroupPayload
from flexiday.services import audit as audit_service
from flexiday.services import group as group_service

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from flexiday.services.identity import InMemoryIdentityDirectory
    from tests.conftest import GroupSetup


def _window() -> str:
    start = (datetime.now(UTC) - timedelta(hours=1)).isoformat()
    end = (datetime.now(UTC) + timedelta(hours=1)).isoformat()
    return f"start={start.replace('+', '%2B')}&end={end.replace('+', '%2B')}"


# ---------------------------------------------------------------------------
# Fail-closed
# ---------------------------------------------------------------------------


async def test_audit_failure_rolls_back_group(
    db_session: AsyncSession,
    identity: InMemoryIdentityDirectory,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def _broken_record_change(session: AsyncSession, **kwargs: object) -> ChangeRecord:
        entry = ChangeRecord(
            user_id=kwargs["user_id"],
            group_id=kwargs["group_id"],
            change_type="NOT_A_TYPE",
            change_detail="{}",
            changing_user_id=kwargs["changing_user_id"],
        )
        session.add(entry)
        return entry

    monkeypatch.setattr(group_service, "record_change", _broken_record_change)
    auth = AuthContext(user_id=uuid.uuid4(), session_id="s", user_email="owner@example.com")

    with pytest.raises(sa_exc.IntegrityError):
        await group_service.create_group(db_session, identity, auth, CreateGroupPayload(group_name="Doomed"))

    groups = await db_session.execute(select(func.count()).select_from(Group))
    memberships = await db_session.execute(select(func.count()).select_from(GroupMembership))
    changes = await db_session.execute(select(func.count()).select_from(ChangeRecord))
    assert groups.scalar_one() == 0
    assert memberships.scalar_one() == 0
    assert changes.scalar_one() == 0


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


async def test_vacation_lifecycle_is_recorded(async_client: AsyncClient, group_setup: GroupSetup) -> None:
    filed = await async_client.post(
        "/vacation/create-vacation",
        json={"groupId": group_setup.group_id, "requestedDay": "2025-08-04"},
        headers=group_setup.member.headers,
    )
    vacation_id = filed.json()["id"]
    await async_client.post(f"/vacation/approve/{vacation_id}", headers=group_setup.approver.headers)

    response = await async_client.get(
        f"/changes/{group_setup.group_id}?{_window()}&userId={group_setup.member.id}",
        headers=group_setup.manager.headers,
    )

    assert response.status_code == 200
    records = response.json()
    assert [r["changeType"] for r in records] == ["GROUP_USER", "VACATION", "USER_YEAR_QUOTAS", "VACATION"]
    actions = [json.loads(r["changeDetail"])["action"] for r in records]
    assert actions == ["JOIN", "CREATE", "DEBIT", "APPROVE"]
    assert records[-1]["changingUserId"] == str(group_setup.approver.id)


async def test_changes_require_admin(async_client: AsyncClient, group_setup: GroupSetup) -> None:
    response = await async_client.get(
        f"/changes/{group_setup.group_id}?{_window()}", headers=group_setup.member.headers
    )
    assert response.status_code == 403


async def test_changes_reject_inverted_window(async_client: AsyncClient, group_setup: GroupSetup) -> None:
    response = await async_client.get(
        f"/changes/{group_setup.group_id}?start=2025-02-01T00:00:00&end=2025-01-01T00:00:00",
        headers=group_setup.manager.headers,
    )
    assert response.status_code == 422
    assert response.json() == {"error": "Invalid data", "details": [{"message": "end must be after start"}]}


async def test_query_changes_is_half_open(db_session: AsyncSession) -> None:
    group = Group(name="Ops", manager_user_id=uuid.uuid4())
    db_session.add(group)
    await db_session.commit()

    entry = audit_service.record_change(
        db_session,
        user_id=group.manager_user_id,
        group_id=group.id,
        change_type=ChangeType.GROUP,
        changing_user_id=group.manager_user_id,
        detail=audit_service.describe_change("CREATE"),
    )
    await db_session.commit()
    created_at = entry.created_at

    inside = await audit_service.query_changes(
        db_session, group.id, created_at - timedelta(seconds=1), created_at + timedelta(seconds=1)
    )
    ending_at = await audit_service.query_changes(db_session, group.id, created_at - timedelta(seconds=1), created_at)
    other_user = await audit_service.query_changes(
        db_session,
        group.id,
        created_at - timedelta(seconds=1),
        created_at + timedelta(seconds=1),
        user_id=uuid.uuid4(),
    )

    assert [c.id for c in inside] == [entry.id]
    assert ending_at == []
    assert other_user == []


def test_describe_change_serializes_models() -> None:
    group = Group(name="Ops", manager_user_id=uuid.uuid4())
    detail = json.loads(
        audit_service.describe_change("UPDATE", before={"name": "Old"}, after=audit_service.model_to_audit_dict(group))
    )
    assert detail["action"] == "UPDATE"
    assert detail["before"] == {"name": "Old"}
    assert detail["after"]["manager_user_id"] == str(group.manager_user_id)
