# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Query, status

from flexiday.api.deps import AuthDep
from flexiday.db import SessionDep
from flexiday.schemas.quota import QuotaResponse, SetBalancesPayload
from flexiday.services import quota as quota_service

quota_router = APIRouter(prefix="/quotas", tags=["quotas"])


def _year_key(year: int | None) -> str:
    return f"{year or date.today().year:04d}"


@quota_router.get("/{group_id}", response_model=list[QuotaResponse])
async def list_quotas(
    group_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    year: int | None = Query(default=None, ge=2023, le=2050),
    user_id: uuid.UUID | None = Query(default=None, alias="userId"),
) -> list[QuotaResponse]:
    """Remaining balances of a group's members for one year (view access)."""
    quotas = await quota_service.list_balances(session, auth, group_id, _year_key(year), user_id)
    return [QuotaResponse.model_validate(q) for q in quotas]


@quota_router.post("/{group_id}/initialize", response_model=list[QuotaResponse], status_code=status.HTTP_201_CREATED)
async def initialize_quotas(
    group_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    year: int | None = Query(default=None, ge=2023, le=2050),
) -> list[QuotaResponse]:
    """Seed missing balances from the group defaults (admin only). Returns the new rows."""
    quotas = await quota_service.initialize_year_for_group(session, auth, group_id, _year_key(year))
    return [QuotaResponse.model_validate(q) for q in quotas]


@quota_router.put("/entry/{quota_id}", response_model=QuotaResponse)
async def set_quota(
    quota_id: uuid.UUID,
    payload: SetBalancesPayload,
    session: SessionDep,
    auth: AuthDep,
) -> QuotaResponse:
    """Manually correct one balance row (admin only)."""
    quota = await quota_service.set_balances(
        session, auth, quota_id, payload.vacation_days, payload.home_office_days
    )
    return QuotaResponse.model_validate(quota)
