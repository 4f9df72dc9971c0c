# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from flexiday.api.deps import AuthDep, IdentityDep
from flexiday.db import SessionDep
from flexiday.schemas.base import MessageResponse
from flexiday.schemas.group import (
    ApproversResponse,
    CreateGroupPayload,
    GroupResponse,
    UpdateApproversPayload,
    UpdateManagerPayload,
    UpdateQuotaDefaultsPayload,
)
from flexiday.schemas.invite import CreateInvitePayload, InviteResponse
from flexiday.services import group as group_service
from flexiday.services import invite as invite_service

group_router = APIRouter(prefix="/group", tags=["groups"])


@group_router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    payload: CreateGroupPayload,
    session: SessionDep,
    auth: AuthDep,
    identity: IdentityDep,
) -> GroupResponse:
    """Create a group managed by the caller."""
    group = await group_service.create_group(session, identity, auth, payload)
    return GroupResponse.model_validate(group)


@group_router.get("", response_model=list[GroupResponse])
async def list_groups(session: SessionDep, auth: AuthDep) -> list[GroupResponse]:
    """Groups the caller belongs to."""
    groups = await group_service.list_groups_for_user(session, auth.user_id)
    return [GroupResponse.model_validate(g) for g in groups]


@group_router.get("/{group_id}/approvers", response_model=ApproversResponse)
async def get_approvers(
    group_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    identity: IdentityDep,
) -> ApproversResponse:
    return await group_service.get_approvers(session, identity, auth, group_id)


@group_router.put("/{group_id}/approvers", response_model=GroupResponse)
async def update_approvers(
    group_id: uuid.UUID,
    payload: UpdateApproversPayload,
    session: SessionDep,
    auth: AuthDep,
    identity: IdentityDep,
) -> GroupResponse:
    """Replace the group's main and temporary approvers (admin only)."""
    group = await group_service.update_approvers(
        session, identity, auth, group_id, payload.main_approval_user, payload.temp_approval_user
    )
    return GroupResponse.model_validate(group)


@group_router.put("/{group_id}/manager", response_model=GroupResponse)
async def update_manager(
    group_id: uuid.UUID,
    payload: UpdateManagerPayload,
    session: SessionDep,
    auth: AuthDep,
    identity: IdentityDep,
) -> GroupResponse:
    """Hand the group to a new manager (admin only)."""
    group = await group_service.update_manager(session, identity, auth, group_id, payload.manager_user_id)
    return GroupResponse.model_validate(group)


@group_router.put("/{group_id}/quotas", response_model=GroupResponse)
async def update_quota_defaults(
    group_id: uuid.UUID,
    payload: UpdateQuotaDefaultsPayload,
    session: SessionDep,
    auth: AuthDep,
) -> GroupResponse:
    """Change the default yearly balances of the group (admin only)."""
    group = await group_service.update_quota_defaults(
        session, auth, group_id, payload.default_vacation, payload.default_home_office
    )
    return GroupResponse.model_validate(group)


@group_router.delete("/{group_id}", response_model=MessageResponse)
async def delete_group(group_id: uuid.UUID, session: SessionDep, auth: AuthDep) -> MessageResponse:
    await group_service.soft_delete_group(session, auth, group_id)
    return MessageResponse(message="Group deleted")


@group_router.post("/{group_id}/invite", response_model=InviteResponse, status_code=status.HTTP_201_CREATED)
async def create_invite(
    group_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    payload: CreateInvitePayload | None = None,
) -> InviteResponse:
    """Issue a single-use invite code for the group (admin only)."""
    ttl_hours = payload.ttl_hours if payload is not None else None
    invite = await invite_service.create_invite(session, auth, group_id, ttl_hours)
    return InviteResponse.model_validate(invite)
