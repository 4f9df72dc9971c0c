from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlmodel import col

from flexiday.db import insert_ignoring_conflicts, unit_of_work
from flexiday.exceptions import ForbiddenError, NotFoundError
from flexiday.models.base import active
from flexiday.models.enums import Capability, ChangeType
from flexiday.models.group import Group, GroupMembership
from flexiday.schemas.group import ApproversResponse
from flexiday.services.audit import describe_change, model_to_audit_dict, record_change

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from flexiday.schemas.auth import AuthContext
    from flexiday.schemas.group import CreateGroupPayload
    from flexiday.services.identity import IdentityDirectory

logger = logging.getLogger(__name__)

_CAPABILITY_COLUMNS = {
    Capability.VIEW: "view_access",
    Capability.ADMIN: "admin_access",
    Capability.CONTROLLED: "controlled_user",
}


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_active_group(session: AsyncSession, group_id: uuid.UUID) -> Group | None:
    result = await session.execute(select(Group).where(col(Group.id) == group_id, active(Group)))
    return result.scalar_one_or_none()


async def get_group_or_404(session: AsyncSession, group_id: uuid.UUID) -> Group:
    group = await get_active_group(session, group_id)
    if group is None:
        raise NotFoundError("Group not found", context={"group_id": str(group_id)})
    return group


async def list_groups_for_user(session: AsyncSession, user_id: uuid.UUID) -> list[Group]:
    """Active groups the user is an active member of, oldest first."""
    result = await session.execute(
        select(Group)
        .join(GroupMembership, col(GroupMembership.group_id) == col(Group.id))
        .where(
            col(GroupMembership.user_id) == user_id,
            active(GroupMembership),
            active(Group),
        )
        .order_by(col(Group.created_at))
    )
    return list(result.scalars().all())


async def get_membership(session: AsyncSession, user_id: uuid.UUID, group_id: uuid.UUID) -> GroupMembership | None:
    """The user's active membership in an active group, if any."""
    result = await session.execute(
        select(GroupMembership)
        .join(Group, col(Group.id) == col(GroupMembership.group_id))
        .where(
            col(GroupMembership.group_id) == group_id,
            col(GroupMembership.user_id) == user_id,
            active(GroupMembership),
            active(Group),
        )
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------


async def has_permission(
    session: AsyncSession,
    user_id: uuid.UUID,
    group_id: uuid.UUID,
    capability: Capability,
) -> bool:
    """True only if the user holds an active membership with the capability set.

    Memberships of deleted groups grant nothing.
    """
    membership = await get_membership(session, user_id, group_id)
    if membership is None:
        return False
    return bool(getattr(membership, _CAPABILITY_COLUMNS[capability]))


async def require_permission(
    session: AsyncSession,
    user_id: uuid.UUID,
    group_id: uuid.UUID,
    capability: Capability,
) -> None:
    if not await has_permission(session, user_id, group_id, capability):
        raise ForbiddenError(
            "You do not have permission to perform this action",
            context={"user_id": str(user_id), "group_id": str(group_id), "capability": capability.value},
        )


async def add_member(
    session: AsyncSession,
    group_id: uuid.UUID,
    user_id: uuid.UUID,
    *,
    view_access: bool = False,
    admin_access: bool = False,
    controlled_user: bool = False,
) -> GroupMembership | None:
    """Insert an active membership; None if the user already has one.

    Runs inside the caller's unit of work.
    """
    inserted_id = await insert_ignoring_conflicts(
        session,
        GroupMembership(
            group_id=group_id,
            user_id=user_id,
            view_access=view_access,
            admin_access=admin_access,
            controlled_user=controlled_user,
        ),
    )
    if inserted_id is None:
        return None
    return await session.get(GroupMembership, inserted_id)


# ---------------------------------------------------------------------------
# Approvers
# ---------------------------------------------------------------------------


async def resolve_approvers(
    identity: IdentityDirectory,
    main_approval_user_id: uuid.UUID | None,
    temp_approval_user_id: uuid.UUID | None,
) -> ApproversResponse:
    """Look up approver emails. Unknown users keep their id with a null email."""
    main = await identity.get_user(main_approval_user_id) if main_approval_user_id else None
    temp = await identity.get_user(temp_approval_user_id) if temp_approval_user_id else None
    return ApproversResponse(
        main_approver_id=main_approval_user_id,
        main_approver_email=main.email if main else None,
        temp_approver_id=temp_approval_user_id,
        temp_approver_email=temp.email if temp else None,
    )


async def list_approvers(
    session: AsyncSession,
    identity: IdentityDirectory,
    group_id: uuid.UUID,
) -> ApproversResponse | None:
    """Approvers of an active group, or None when the group is unreachable."""
    group = await get_active_group(session, group_id)
    if group is None:
        return None
    return await resolve_approvers(identity, group.main_approval_user_id, group.temp_approval_user_id)


async def get_approvers(
    session: AsyncSession,
    identity: IdentityDirectory,
    auth: AuthContext,
    group_id: uuid.UUID,
) -> ApproversResponse:
    """Approvers of a group for a member with view access."""
    group = await get_group_or_404(session, group_id)
    await require_permission(session, auth.user_id, group_id, Capability.VIEW)
    return await resolve_approvers(identity, group.main_approval_user_id, group.temp_approval_user_id)


async def _require_known_user(identity: IdentityDirectory, user_id: uuid.UUID, role: str = "Approver") -> None:
    if await identity.get_user(user_id) is None:
        raise NotFoundError(f"{role} user not found", context={"user_id": str(user_id)})


# ---------------------------------------------------------------------------
# Group lifecycle
# ---------------------------------------------------------------------------


async def create_group(
    session: AsyncSession,
    identity: IdentityDirectory,
    auth: AuthContext,
    payload: CreateGroupPayload,
) -> Group:
    """Create a group managed by the caller, who gets view and admin access."""
    if payload.main_approval_user is not None:
        await _require_known_user(identity, payload.main_approval_user)

    defaults: dict[str, Any] = {}
    if payload.default_vacation is not None:
        defaults["default_vacation_days"] = payload.default_vacation
    if payload.default_home_office is not None:
        defaults["default_home_office_days"] = payload.default_home_office

    async with unit_of_work(session):
        group = Group(
            name=payload.group_name,
            manager_user_id=auth.user_id,
            main_approval_user_id=payload.main_approval_user,
            **defaults,
        )
        session.add(group)
        await session.flush()

        await add_member(session, group.id, auth.user_id, view_access=True, admin_access=True)
        record_change(
            session,
            user_id=auth.user_id,
            group_id=group.id,
            change_type=ChangeType.GROUP,
            changing_user_id=auth.user_id,
            detail=describe_change("CREATE", after=model_to_audit_dict(group)),
        )

    logger.info("Group %s created by %s", group.id, auth.user_id)
    return group


async def update_approvers(
    session: AsyncSession,
    identity: IdentityDirectory,
    auth: AuthContext,
    group_id: uuid.UUID,
    main_approval_user: uuid.UUID | None,
    temp_approval_user: uuid.UUID | None,
) -> Group:
    """Replace both approver slots of a group. Requires admin access."""
    for user_id in (main_approval_user, temp_approval_user):
        if user_id is not None:
            await _require_known_user(identity, user_id)

    async with unit_of_work(session):
        group = await get_group_or_404(session, group_id)
        await require_permission(session, auth.user_id, group_id, Capability.ADMIN)

        before = model_to_audit_dict(group)
        group.main_approval_user_id = main_approval_user
        group.temp_approval_user_id = temp_approval_user
        session.add(group)
        await session.flush()

        record_change(
            session,
            user_id=group.manager_user_id,
            group_id=group.id,
            change_type=ChangeType.GROUP,
            changing_user_id=auth.user_id,
            detail=describe_change("UPDATE_APPROVERS", before=before, after=model_to_audit_dict(group)),
        )

    return group


async def update_manager(
    session: AsyncSession,
    identity: IdentityDirectory,
    auth: AuthContext,
    group_id: uuid.UUID,
    new_manager_id: uuid.UUID,
) -> Group:
    """Hand the group over to another user. Requires admin access.

    The new manager ends up with an active view and admin membership; the
    previous manager keeps whatever flags they had.
    """
    await _require_known_user(identity, new_manager_id, role="Manager")

    async with unit_of_work(session):
        group = await get_group_or_404(session, group_id)
        await require_permission(session, auth.user_id, group_id, Capability.ADMIN)

        before = model_to_audit_dict(group)
        group.manager_user_id = new_manager_id
        session.add(group)

        membership = await get_membership(session, new_manager_id, group_id)
        if membership is None:
            await add_member(session, group_id, new_manager_id, view_access=True, admin_access=True)
        elif not (membership.view_access and membership.admin_access):
            membership.view_access = True
            membership.admin_access = True
            session.add(membership)
        await session.flush()

        record_change(
            session,
            user_id=new_manager_id,
            group_id=group.id,
            change_type=ChangeType.GROUP,
            changing_user_id=auth.user_id,
            detail=describe_change("UPDATE_MANAGER", before=before, after=model_to_audit_dict(group)),
        )

    logger.info("Group %s handed to manager %s by %s", group_id, new_manager_id, auth.user_id)
    return group


async def update_quota_defaults(
    session: AsyncSession,
    auth: AuthContext,
    group_id: uuid.UUID,
    default_vacation: int,
    default_home_office: int,
) -> Group:
    """Change the starting balances used for new quota rows. Existing rows are untouched."""
    async with unit_of_work(session):
        group = await get_group_or_404(session, group_id)
        await require_permission(session, auth.user_id, group_id, Capability.ADMIN)

        before = model_to_audit_dict(group)
        group.default_vacation_days = default_vacation
        group.default_home_office_days = default_home_office
        session.add(group)
        await session.flush()

        record_change(
            session,
            user_id=group.manager_user_id,
            group_id=group.id,
            change_type=ChangeType.GROUP,
            changing_user_id=auth.user_id,
            detail=describe_change("UPDATE_QUOTA_DEFAULTS", before=before, after=model_to_audit_dict(group)),
        )

    return group


async def soft_delete_group(session: AsyncSession, auth: AuthContext, group_id: uuid.UUID) -> None:
    """Mark a group deleted. Requires admin access.

    Memberships are left in place; lookups that join the group ignore them.
    """
    async with unit_of_work(session):
        group = await get_group_or_404(session, group_id)
        await require_permission(session, auth.user_id, group_id, Capability.ADMIN)

        group.deleted_at = datetime.now(UTC)
        session.add(group)
        await session.flush()

        record_change(
            session,
            user_id=group.manager_user_id,
            group_id=group.id,
            change_type=ChangeType.GROUP,
            changing_user_id=auth.user_id,
            detail=describe_change("DELETE", after=model_to_audit_dict(group)),
        )

    logger.info("Group %s deleted by %s", group_id, auth.user_id)
