"""Tests for membership listing, permission updates, removal and uniqueness."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from flexiday.models.base import active
from flexiday.models.enums import Capability
from flexiday.models.group import Group, GroupMembership
from flexiday.services import group as group_service

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from tests.conftest import GroupSetup, SeededUser


async def _flags(session: AsyncSession, group_id: str, user_id: uuid.UUID) -> tuple[bool, bool, bool] | None:
    result = await session.execute(
        select(GroupMembership.view_access, GroupMembership.admin_access, GroupMembership.controlled_user).where(
            col(GroupMembership.group_id) == uuid.UUID(group_id),
            col(GroupMembership.user_id) == user_id,
            active(GroupMembership),
        )
    )
    row = result.one_or_none()
    return None if row is None else (row[0], row[1], row[2])


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


async def test_list_members(async_client: AsyncClient, group_setup: GroupSetup) -> None:
    response = await async_client.get(f"/group-user/{group_setup.group_id}", headers=group_setup.member.headers)
    assert response.status_code == 200
    users = {m["userId"]: m for m in response.json()}
    assert set(users) == {str(group_setup.manager.id), str(group_setup.member.id)}
    assert users[str(group_setup.member.id)]["controlledUser"] is True
    assert users[str(group_setup.member.id)]["adminAccess"] is False


async def test_list_members_requires_view_access(async_client: AsyncClient, group_setup: GroupSetup) -> None:
    response = await async_client.get(f"/group-user/{group_setup.group_id}", headers=group_setup.outsider.headers)
    assert response.status_code == 403


# ---------------------------------------------------------------------------
# Permission updates
# ---------------------------------------------------------------------------


async def test_update_member_permissions(
    async_client: AsyncClient,
    db_session: AsyncSession,
    group_setup: GroupSetup,
) -> None:
    response = await async_client.put(
        "/group-user",
        json={
            "groupId": group_setup.group_id,
            "data": [
                {
                    "userId": str(group_setup.member.id),
                    "viewAccess": True,
                    "adminAccess": True,
                    "controlledUser": False,
                }
            ],
        },
        headers=group_setup.manager.headers,
    )
    assert response.status_code == 200
    assert await _flags(db_session, group_setup.group_id, group_setup.member.id) == (True, True, False)


async def test_update_permissions_is_all_or_nothing(
    async_client: AsyncClient,
    db_session: AsyncSession,
    group_setup: GroupSetup,
) -> None:
    response = await async_client.put(
        "/group-user",
        json={
            "groupId": group_setup.group_id,
            "data": [
                {
                    "userId": str(group_setup.member.id),
                    "viewAccess": False,
                    "adminAccess": False,
                    "controlledUser": False,
                },
                {
                    "userId": str(group_setup.outsider.id),
                    "viewAccess": True,
                    "adminAccess": False,
                    "controlledUser": True,
                },
            ],
        },
        headers=group_setup.manager.headers,
    )
    assert response.status_code == 404
    assert await _flags(db_session, group_setup.group_id, group_setup.member.id) == (True, False, True)


async def test_manager_keeps_admin_access(
    async_client: AsyncClient,
    db_session: AsyncSession,
    group_setup: GroupSetup,
) -> None:
    response = await async_client.put(
        "/group-user",
        json={
            "groupId": group_setup.group_id,
            "data": [
                {
                    "userId": str(group_setup.manager.id),
                    "viewAccess": True,
                    "adminAccess": False,
                    "controlledUser": True,
                }
            ],
        },
        headers=group_setup.manager.headers,
    )
    assert response.status_code == 422
    assert await _flags(db_session, group_setup.group_id, group_setup.manager.id) == (True, True, False)


async def test_update_permissions_requires_admin(async_client: AsyncClient, group_setup: GroupSetup) -> None:
    response = await async_client.put(
        "/group-user",
        json={
            "groupId": group_setup.group_id,
            "data": [
                {
                    "userId": str(group_setup.member.id),
                    "viewAccess": True,
                    "adminAccess": True,
                    "controlledUser": True,
                }
            ],
        },
        headers=group_setup.member.headers,
    )
    assert response.status_code == 403


async def test_update_permissions_rejects_empty_batch(async_client: AsyncClient, group_setup: GroupSetup) -> None:
    response = await async_client.put(
        "/group-user",
        json={"groupId": group_setup.group_id, "data": []},
        headers=group_setup.manager.headers,
    )
    assert response.status_code == 422


# ---------------------------------------------------------------------------
# Removal
# ---------------------------------------------------------------------------


async def test_remove_member(
    async_client: AsyncClient,
    db_session: AsyncSession,
    group_setup: GroupSetup,
) -> None:
    response = await async_client.delete(
        f"/group-user/{group_setup.group_id}/{group_setup.member.id}", headers=group_setup.manager.headers
    )
    assert response.status_code == 200
    assert await _flags(db_session, group_setup.group_id, group_setup.member.id) is None

    again = await async_client.delete(
        f"/group-user/{group_setup.group_id}/{group_setup.member.id}", headers=group_setup.manager.headers
    )
    assert again.status_code == 404


async def test_removed_member_can_rejoin(
    async_client: AsyncClient,
    db_session: AsyncSession,
    group_setup: GroupSetup,
    join_group: Callable[[SeededUser, str, SeededUser], Awaitable[dict]],
) -> None:
    await async_client.delete(
        f"/group-user/{group_setup.group_id}/{group_setup.member.id}", headers=group_setup.manager.headers
    )
    membership = await join_group(group_setup.manager, group_setup.group_id, group_setup.member)
    assert membership["userId"] == str(group_setup.member.id)
    assert await _flags(db_session, group_setup.group_id, group_setup.member.id) == (True, False, True)


async def test_manager_cannot_be_removed(async_client: AsyncClient, group_setup: GroupSetup) -> None:
    response = await async_client.delete(
        f"/group-user/{group_setup.group_id}/{group_setup.manager.id}", headers=group_setup.manager.headers
    )
    assert response.status_code == 422
    assert response.json() == {
        "error": "Invalid data",
        "details": [{"message": "The group manager cannot be removed from the group"}],
    }


# ---------------------------------------------------------------------------
# Service level
# ---------------------------------------------------------------------------


async def test_add_member_twice_leaves_one_active_row(db_session: AsyncSession) -> None:
    user_id = uuid.uuid4()
    group = Group(name="Ops", manager_user_id=user_id)
    db_session.add(group)
    await db_session.commit()
    group_id = group.id

    first = await group_service.add_member(db_session, group_id, user_id, view_access=True)
    second = await group_service.add_member(db_session, group_id, user_id, admin_access=True)
    await db_session.commit()

    assert first is not None
    assert second is None
    count = await db_session.execute(
        select(func.count())
        .select_from(GroupMembership)
        .where(col(GroupMembership.group_id) == group_id, active(GroupMembership))
    )
    assert count.scalar_one() == 1


async def test_has_permission_per_capability(db_session: AsyncSession) -> None:
    user_id = uuid.uuid4()
    group = Group(name="Ops", manager_user_id=user_id)
    db_session.add(group)
    await db_session.commit()
    group_id = group.id

    await group_service.add_member(db_session, group_id, user_id, view_access=True, controlled_user=True)
    await db_session.commit()

    assert await group_service.has_permission(db_session, user_id, group_id, Capability.VIEW) is True
    assert await group_service.has_permission(db_session, user_id, group_id, Capability.CONTROLLED) is True
    assert await group_service.has_permission(db_session, user_id, group_id, Capability.ADMIN) is False
    assert await group_service.has_permission(db_session, uuid.uuid4(), group_id, Capability.VIEW) is False
