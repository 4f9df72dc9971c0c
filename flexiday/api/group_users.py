# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Path, status

from flexiday.api.deps import AuthDep
from flexiday.db import SessionDep
from flexiday.schemas.base import MessageResponse
from flexiday.schemas.membership import MembershipResponse, UpdateMembersPayload
from flexiday.services import invite as invite_service
from flexiday.services import membership as membership_service

group_user_router = APIRouter(prefix="/group-user", tags=["group-users"])


@group_user_router.get("/{group_id}", response_model=list[MembershipResponse])
async def list_members(group_id: uuid.UUID, session: SessionDep, auth: AuthDep) -> list[MembershipResponse]:
    """Active members of a group (view access)."""
    members = await membership_service.list_members(session, auth, group_id)
    return [MembershipResponse.model_validate(m) for m in members]


@group_user_router.post("/code/{validation_code}", response_model=MembershipResponse, status_code=status.HTTP_201_CREATED)
async def redeem_invite(
    session: SessionDep,
    auth: AuthDep,
    validation_code: str = Path(min_length=1, max_length=64),
) -> MembershipResponse:
    """Join a group with an invite code."""
    membership = await invite_service.redeem(session, auth, validation_code)
    return MembershipResponse.model_validate(membership)


@group_user_router.put("", response_model=MessageResponse)
async def update_members(payload: UpdateMembersPayload, session: SessionDep, auth: AuthDep) -> MessageResponse:
    """Overwrite the permission flags of several members (admin only)."""
    await membership_service.update_member_permissions(session, auth, payload.group_id, payload.data)
    return MessageResponse(message="Group members updated")


@group_user_router.delete("/{group_id}/{user_id}", response_model=MessageResponse)
async def remove_member(
    group_id: uuid.UUID,
    user_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> MessageResponse:
    await membership_service.remove_member(session, auth, group_id, user_id)
    return MessageResponse(message="Group member removed")
