# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, BackgroundTasks, Query, Response, status

from flexiday.api.deps import AuthDep, IdentityDep, NotifierDep
from flexiday.db import SessionDep
from flexiday.exceptions import NotFoundError
from flexiday.schemas.base import MessageResponse
from flexiday.schemas.vacation import FileVacationPayload, VacationResponse
from flexiday.services import vacation as vacation_service
from flexiday.services.notifier import notify_approvers_safely

vacation_router = APIRouter(prefix="/vacation", tags=["vacations"])


def _resolve_month(year: int | None, month: int | None) -> tuple[date, date]:
    today = date.today()
    return vacation_service.month_range(year or today.year, month or today.month)


@vacation_router.get("", response_model=list[VacationResponse])
async def list_own_vacations(
    session: SessionDep,
    auth: AuthDep,
    year: int | None = Query(default=None, ge=2023, le=2050),
    month: int | None = Query(default=None, ge=1, le=12),
    group_id: uuid.UUID | None = Query(default=None, alias="groupId"),
) -> list[VacationResponse]:
    """The caller's requests in one calendar month."""
    start, end = _resolve_month(year, month)
    vacations = await vacation_service.list_for_user(session, auth.user_id, start, end, group_id)
    return [VacationResponse.model_validate(v) for v in vacations]


@vacation_router.get("/group/{group_id}", response_model=list[VacationResponse])
async def list_group_vacations(
    group_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    year: int | None = Query(default=None, ge=2023, le=2050),
    month: int | None = Query(default=None, ge=1, le=12),
) -> list[VacationResponse]:
    """All members' requests in one calendar month (view access)."""
    start, end = _resolve_month(year, month)
    vacations = await vacation_service.list_for_group(session, auth, group_id, start, end)
    return [VacationResponse.model_validate(v) for v in vacations]


@vacation_router.post("/create-vacation", response_model=VacationResponse, status_code=status.HTTP_201_CREATED)
async def create_vacation(
    payload: FileVacationPayload,
    session: SessionDep,
    auth: AuthDep,
    identity: IdentityDep,
    notifier: NotifierDep,
    background_tasks: BackgroundTasks,
    response: Response,
) -> VacationResponse:
    """File a request for the caller.

    A second filing for an already booked day returns the existing request
    with 200.
    """
    filed = await vacation_service.file_request(session, auth, payload)
    if filed is None:
        existing = await vacation_service.find_active_for_day(session, auth.user_id, payload.requested_day)
        if existing is None:
            raise NotFoundError("Vacation not found", context={"user_id": str(auth.user_id)})
        response.status_code = status.HTTP_200_OK
        return VacationResponse.model_validate(existing)

    result = VacationResponse.model_validate(filed.vacation)
    background_tasks.add_task(
        notify_approvers_safely,
        identity,
        notifier,
        filed.main_approval_user_id,
        filed.temp_approval_user_id,
        result,
    )
    return result


@vacation_router.post("/approve/{vacation_id}", response_model=MessageResponse)
async def approve_vacation(
    vacation_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    identity: IdentityDep,
) -> MessageResponse:
    await vacation_service.approve(session, identity, auth, vacation_id)
    return MessageResponse(message="Vacation approved")


@vacation_router.post("/reject/{vacation_id}", response_model=MessageResponse)
async def reject_vacation(
    vacation_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    identity: IdentityDep,
) -> MessageResponse:
    await vacation_service.reject(session, identity, auth, vacation_id)
    return MessageResponse(message="Vacation rejected")


@vacation_router.delete("/{vacation_id}", response_model=MessageResponse)
async def delete_vacation(
    vacation_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    identity: IdentityDep,
) -> MessageResponse:
    """Withdraw a request (owner or group approver)."""
    await vacation_service.soft_delete(session, identity, auth, vacation_id)
    return MessageResponse(message="Vacation deleted")
