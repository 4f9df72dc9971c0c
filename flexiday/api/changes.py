# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import UTC, datetime

from fastapi import APIRouter, Query

from flexiday.api.deps import AuthDep
from flexiday.db import SessionDep
from flexiday.exceptions import ValidationError
from flexiday.models.enums import Capability
from flexiday.schemas.change import ChangeResponse
from flexiday.services import audit as audit_service
from flexiday.services import group as group_service

change_router = APIRouter(prefix="/changes", tags=["changes"])


def _as_utc(value: datetime) -> datetime:
    """Naive query timestamps are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@change_router.get("/{group_id}", response_model=list[ChangeResponse])
async def list_changes(
    group_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    start: datetime = Query(),
    end: datetime = Query(),
    user_id: uuid.UUID | None = Query(default=None, alias="userId"),
) -> list[ChangeResponse]:
    """Change log of a group in ``[start, end)`` (admin only)."""
    start, end = _as_utc(start), _as_utc(end)
    if end <= start:
        raise ValidationError("end must be after start")
    await group_service.get_group_or_404(session, group_id)
    await group_service.require_permission(session, auth.user_id, group_id, Capability.ADMIN)

    changes = await audit_service.query_changes(session, group_id, start, end, user_id)
    return [ChangeResponse.model_validate(c) for c in changes]
