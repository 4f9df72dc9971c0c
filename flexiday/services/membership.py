from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from flexiday.db import unit_of_work
from flexiday.exceptions import NotFoundError, ValidationError
from flexiday.models.base import active
from flexiday.models.enums import Capability, ChangeType
from flexiday.models.group import Group, GroupMembership
from flexiday.services.audit import describe_change, model_to_audit_dict, record_change
from flexiday.services.group import get_group_or_404, require_permission

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from flexiday.schemas.auth import AuthContext
    from flexiday.schemas.membership import MemberPermissions

logger = logging.getLogger(__name__)


async def list_members(session: AsyncSession, auth: AuthContext, group_id: uuid.UUID) -> list[GroupMembership]:
    """Active memberships of a group. Requires view access."""
    await get_group_or_404(session, group_id)
    await require_permission(session, auth.user_id, group_id, Capability.VIEW)

    result = await session.execute(
        select(GroupMembership)
        .where(col(GroupMembership.group_id) == group_id, active(GroupMembership))
        .order_by(col(GroupMembership.created_at))
    )
    return list(result.scalars().all())


async def _get_member_or_404(session: AsyncSession, group_id: uuid.UUID, user_id: uuid.UUID) -> GroupMembership:
    result = await session.execute(
        select(GroupMembership).where(
            col(GroupMembership.group_id) == group_id,
            col(GroupMembership.user_id) == user_id,
            active(GroupMembership),
        )
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        raise NotFoundError(
            "Group member not found",
            context={"group_id": str(group_id), "user_id": str(user_id)},
        )
    return membership


def _check_manager_keeps_control(group: Group, user_id: uuid.UUID, *, view_access: bool, admin_access: bool) -> None:
    if user_id == group.manager_user_id and not (view_access and admin_access):
        raise ValidationError(
            "The group manager must keep view and admin access",
            context={"group_id": str(group.id), "user_id": str(user_id)},
        )


async def update_member_permissions(
    session: AsyncSession,
    auth: AuthContext,
    group_id: uuid.UUID,
    entries: list[MemberPermissions],
) -> list[GroupMembership]:
    """Overwrite the flags of several members at once.

    Either every entry is applied or none is: a missing member rolls back the
    whole batch.
    """
    async with unit_of_work(session):
        group = await get_group_or_404(session, group_id)
        await require_permission(session, auth.user_id, group_id, Capability.ADMIN)

        updated: list[GroupMembership] = []
        for entry in entries:
            membership = await _get_member_or_404(session, group_id, entry.user_id)
            _check_manager_keeps_control(
                group, entry.user_id, view_access=entry.view_access, admin_access=entry.admin_access
            )

            before = model_to_audit_dict(membership)
            membership.view_access = entry.view_access
            membership.admin_access = entry.admin_access
            membership.controlled_user = entry.controlled_user
            session.add(membership)
            await session.flush()

            record_change(
                session,
                user_id=entry.user_id,
                group_id=group_id,
                change_type=ChangeType.GROUP_USER,
                changing_user_id=auth.user_id,
                detail=describe_change("UPDATE_PERMISSIONS", before=before, after=model_to_audit_dict(membership)),
            )
            updated.append(membership)

    logger.info("Updated %d memberships of group %s", len(updated), group_id)
    return updated


async def remove_member(
    session: AsyncSession,
    auth: AuthContext,
    group_id: uuid.UUID,
    user_id: uuid.UUID,
) -> None:
    """Soft-delete a membership. The manager cannot be removed."""
    async with unit_of_work(session):
        group = await get_group_or_404(session, group_id)
        await require_permission(session, auth.user_id, group_id, Capability.ADMIN)

        membership = await _get_member_or_404(session, group_id, user_id)
        if user_id == group.manager_user_id:
            raise ValidationError(
                "The group manager cannot be removed from the group",
                context={"group_id": str(group_id), "user_id": str(user_id)},
            )

        membership.deleted_at = datetime.now(UTC)
        session.add(membership)
        await session.flush()

        record_change(
            session,
            user_id=user_id,
            group_id=group_id,
            change_type=ChangeType.GROUP_USER,
            changing_user_id=auth.user_id,
            detail=describe_change("REMOVE", after=model_to_audit_dict(membership)),
        )
