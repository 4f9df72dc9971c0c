from __future__ import annotations

import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from flexiday.config import get_settings
from flexiday.db import unit_of_work
from flexiday.exceptions import NotFoundError
from flexiday.models.enums import Capability, ChangeType
from flexiday.models.invite import InviteLink
from flexiday.services.audit import describe_change, model_to_audit_dict, record_change
from flexiday.services.group import add_member, get_active_group, get_group_or_404, get_membership, require_permission

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from flexiday.models.group import GroupMembership
    from flexiday.schemas.auth import AuthContext

logger = logging.getLogger(__name__)

_CODE_BYTES = 24


def generate_invite_code() -> str:
    """Unguessable URL-safe code."""
    return secrets.token_urlsafe(_CODE_BYTES)


async def create_invite(
    session: AsyncSession,
    auth: AuthContext,
    group_id: uuid.UUID,
    ttl_hours: int | None = None,
) -> InviteLink:
    """Issue a single-use invite link for a group. Requires admin access."""
    ttl = ttl_hours if ttl_hours is not None else get_settings().invite_ttl_hours

    async with unit_of_work(session):
        await get_group_or_404(session, group_id)
        await require_permission(session, auth.user_id, group_id, Capability.ADMIN)

        invite = InviteLink(
            group_id=group_id,
            code=generate_invite_code(),
            expires_at=datetime.now(UTC) + timedelta(hours=ttl),
            created_by_user_id=auth.user_id,
        )
        session.add(invite)
        await session.flush()

        record_change(
            session,
            user_id=auth.user_id,
            group_id=group_id,
            change_type=ChangeType.GROUP,
            changing_user_id=auth.user_id,
            detail=describe_change("CREATE_INVITE", invite_id=str(invite.id), expires_at=invite.expires_at.isoformat()),
        )

    return invite


async def redeem(session: AsyncSession, auth: AuthContext, code: str) -> GroupMembership:
    """Join the invite's group with view access as a controlled user.

    The invite row is locked so two concurrent redemptions cannot both
    succeed. A caller who is already a member keeps the existing membership,
    but the code is still consumed.
    """
    now = datetime.now(UTC)
    async with unit_of_work(session):
        result = await session.execute(
            select(InviteLink)
            .where(
                col(InviteLink.code) == code,
                col(InviteLink.used_at).is_(None),
                col(InviteLink.expires_at) > now,
            )
            .with_for_update()
        )
        invite = result.scalar_one_or_none()
        if invite is None or await get_active_group(session, invite.group_id) is None:
            raise NotFoundError("Invalid or expired invite code", context={"user_id": str(auth.user_id)})

        membership = await add_member(
            session,
            invite.group_id,
            auth.user_id,
            view_access=True,
            controlled_user=True,
        )
        if membership is None:
            logger.info("User %s already belongs to group %s", auth.user_id, invite.group_id)
            membership = await get_membership(session, auth.user_id, invite.group_id)
            if membership is None:
                raise NotFoundError("Invalid or expired invite code", context={"user_id": str(auth.user_id)})

        invite.used_at = now
        session.add(invite)
        await session.flush()

        record_change(
            session,
            user_id=auth.user_id,
            group_id=invite.group_id,
            change_type=ChangeType.GROUP_USER,
            changing_user_id=auth.user_id,
            detail=describe_change("JOIN", invite_id=str(invite.id), after=model_to_audit_dict(membership)),
        )

    logger.info("User %s joined group %s by invite", auth.user_id, membership.group_id)
    return membership
