from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from flexiday.db import insert_ignoring_conflicts, unit_of_work
from flexiday.exceptions import ForbiddenError, NotFoundError
from flexiday.models.base import active
from flexiday.models.enums import Capability, ChangeType
from flexiday.models.vacation import VacationRequest
from flexiday.services.audit import describe_change, model_to_audit_dict, record_change
from flexiday.services.group import get_group_or_404, list_approvers, require_permission
from flexiday.services.quota import apply_delta, quota_cost

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from flexiday.schemas.auth import AuthContext
    from flexiday.schemas.group import ApproversResponse
    from flexiday.schemas.vacation import FileVacationPayload
    from flexiday.services.identity import IdentityDirectory

logger = logging.getLogger(__name__)


@dataclass
class FiledVacation:
    """A newly stored request and the approvers to notify, read before commit."""

    vacation: VacationRequest
    main_approval_user_id: uuid.UUID | None
    temp_approval_user_id: uuid.UUID | None


def month_range(year: int, month: int) -> tuple[date, date]:
    """Half-open ``[first day, first day of next month)``."""
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_active_vacation(
    session: AsyncSession,
    vacation_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> VacationRequest | None:
    stmt = select(VacationRequest).where(col(VacationRequest.id) == vacation_id, active(VacationRequest))
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def _get_vacation_for_update_or_404(session: AsyncSession, vacation_id: uuid.UUID) -> VacationRequest:
    vacation = await get_active_vacation(session, vacation_id, for_update=True)
    if vacation is None:
        raise NotFoundError("Vacation not found", context={"vacation_id": str(vacation_id)})
    return vacation


async def find_active_for_day(session: AsyncSession, user_id: uuid.UUID, day: date) -> VacationRequest | None:
    result = await session.execute(
        select(VacationRequest).where(
            col(VacationRequest.user_id) == user_id,
            col(VacationRequest.requested_day) == day,
            active(VacationRequest),
        )
    )
    return result.scalar_one_or_none()


async def list_for_user(
    session: AsyncSession,
    user_id: uuid.UUID,
    start: date,
    end: date,
    group_id: uuid.UUID | None = None,
) -> list[VacationRequest]:
    """Active requests of one user with ``start <= requested_day < end``."""
    filters = [
        col(VacationRequest.user_id) == user_id,
        col(VacationRequest.requested_day) >= start,
        col(VacationRequest.requested_day) < end,
        active(VacationRequest),
    ]
    if group_id is not None:
        filters.append(col(VacationRequest.group_id) == group_id)

    result = await session.execute(select(VacationRequest).where(*filters).order_by(col(VacationRequest.requested_day)))
    return list(result.scalars().all())


async def list_for_group(
    session: AsyncSession,
    auth: AuthContext,
    group_id: uuid.UUID,
    start: date,
    end: date,
) -> list[VacationRequest]:
    """Active requests of all members of a group. Requires view access."""
    await require_permission(session, auth.user_id, group_id, Capability.VIEW)

    result = await session.execute(
        select(VacationRequest)
        .where(
            col(VacationRequest.group_id) == group_id,
            col(VacationRequest.requested_day) >= start,
            col(VacationRequest.requested_day) < end,
            active(VacationRequest),
        )
        .order_by(col(VacationRequest.requested_day), col(VacationRequest.created_at))
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


async def file_request(
    session: AsyncSession,
    auth: AuthContext,
    payload: FileVacationPayload,
) -> FiledVacation | None:
    """File a request for the caller. Returns None if the day is already booked."""
    async with unit_of_work(session):
        await require_permission(session, auth.user_id, payload.group_id, Capability.CONTROLLED)
        group = await get_group_or_404(session, payload.group_id)

        inserted_id = await insert_ignoring_conflicts(
            session,
            VacationRequest(
                user_id=auth.user_id,
                group_id=payload.group_id,
                requested_day=payload.requested_day,
                start_time=payload.start_time,
                end_time=payload.end_time,
                vacation_type=payload.vacation_type.value,
            ),
        )
        if inserted_id is None:
            logger.info("User %s already has a request on %s", auth.user_id, payload.requested_day)
            return None

        vacation = await session.get(VacationRequest, inserted_id)
        if vacation is None:
            raise NotFoundError("Vacation not found", context={"vacation_id": str(inserted_id)})

        record_change(
            session,
            user_id=auth.user_id,
            group_id=payload.group_id,
            change_type=ChangeType.VACATION,
            changing_user_id=auth.user_id,
            detail=describe_change("CREATE", after=model_to_audit_dict(vacation)),
        )

    return FiledVacation(vacation, group.main_approval_user_id, group.temp_approval_user_id)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


async def _get_approvers_or_404(
    session: AsyncSession,
    identity: IdentityDirectory,
    vacation: VacationRequest,
) -> ApproversResponse:
    approvers = await list_approvers(session, identity, vacation.group_id)
    if approvers is None:
        raise NotFoundError(
            "Not able to verify approvers",
            context={"vacation_id": str(vacation.id), "group_id": str(vacation.group_id)},
        )
    return approvers


async def _move_quota(session: AsyncSession, auth: AuthContext, vacation: VacationRequest, *, credit: bool) -> None:
    """Debit (or credit back) the request's cost from the owner's balances."""
    vacation_cost, home_office_cost = quota_cost(vacation)
    if vacation_cost == 0 and home_office_cost == 0:
        return

    sign = -1 if credit else 1
    quota = await apply_delta(
        session,
        vacation.user_id,
        vacation.group_id,
        f"{vacation.requested_day.year:04d}",
        sign * vacation_cost,
        sign * home_office_cost,
    )
    record_change(
        session,
        user_id=vacation.user_id,
        group_id=vacation.group_id,
        change_type=ChangeType.USER_YEAR_QUOTAS,
        changing_user_id=auth.user_id,
        detail=describe_change(
            "CREDIT" if credit else "DEBIT",
            vacation_id=str(vacation.id),
            vacation_days=vacation_cost,
            home_office_days=home_office_cost,
            after=model_to_audit_dict(quota),
        ),
    )


async def approve(
    session: AsyncSession,
    identity: IdentityDirectory,
    auth: AuthContext,
    vacation_id: uuid.UUID,
) -> VacationRequest:
    """Approve a request. Only the group's main or temporary approver may do this.

    Re-approving refreshes the approver and timestamp without charging again.
    """
    async with unit_of_work(session):
        vacation = await _get_vacation_for_update_or_404(session, vacation_id)
        approvers = await _get_approvers_or_404(session, identity, vacation)
        if not approvers.is_approver(auth.user_id):
            raise ForbiddenError(
                "You are not allowed to approve this vacation",
                context={"vacation_id": str(vacation_id), "user_id": str(auth.user_id)},
            )

        before = model_to_audit_dict(vacation)
        if vacation.approved_at is None:
            await _move_quota(session, auth, vacation, credit=False)

        vacation.approved_at = datetime.now(UTC)
        vacation.approved_by = auth.user_id
        vacation.rejected_at = None
        vacation.rejected_by = None
        session.add(vacation)
        await session.flush()

        record_change(
            session,
            user_id=vacation.user_id,
            group_id=vacation.group_id,
            change_type=ChangeType.VACATION,
            changing_user_id=auth.user_id,
            detail=describe_change("APPROVE", before=before, after=model_to_audit_dict(vacation)),
        )

    logger.info("Vacation %s approved by %s", vacation_id, auth.user_id)
    return vacation


async def reject(
    session: AsyncSession,
    identity: IdentityDirectory,
    auth: AuthContext,
    vacation_id: uuid.UUID,
) -> VacationRequest:
    """Reject a request, crediting back its cost if it had been approved."""
    async with unit_of_work(session):
        vacation = await _get_vacation_for_update_or_404(session, vacation_id)
        approvers = await _get_approvers_or_404(session, identity, vacation)
        if not approvers.is_approver(auth.user_id):
            raise ForbiddenError(
                "You are not allowed to reject this vacation",
                context={"vacation_id": str(vacation_id), "user_id": str(auth.user_id)},
            )

        before = model_to_audit_dict(vacation)
        if vacation.approved_at is not None:
            await _move_quota(session, auth, vacation, credit=True)

        vacation.rejected_at = datetime.now(UTC)
        vacation.rejected_by = auth.user_id
        vacation.approved_at = None
        vacation.approved_by = None
        session.add(vacation)
        await session.flush()

        record_change(
            session,
            user_id=vacation.user_id,
            group_id=vacation.group_id,
            change_type=ChangeType.VACATION,
            changing_user_id=auth.user_id,
            detail=describe_change("REJECT", before=before, after=model_to_audit_dict(vacation)),
        )

    logger.info("Vacation %s rejected by %s", vacation_id, auth.user_id)
    return vacation


async def soft_delete(
    session: AsyncSession,
    identity: IdentityDirectory,
    auth: AuthContext,
    vacation_id: uuid.UUID,
) -> None:
    """Withdraw a request. Allowed for its owner and for the group's approvers.

    The day becomes bookable again and an approved request's cost is credited back.
    """
    async with unit_of_work(session):
        vacation = await _get_vacation_for_update_or_404(session, vacation_id)
        if vacation.user_id != auth.user_id:
            approvers = await list_approvers(session, identity, vacation.group_id)
            if approvers is None or not approvers.is_approver(auth.user_id):
                raise ForbiddenError(
                    "You are not allowed to delete this vacation",
                    context={"vacation_id": str(vacation_id), "user_id": str(auth.user_id)},
                )

        if vacation.approved_at is not None:
            await _move_quota(session, auth, vacation, credit=True)

        vacation.deleted_at = datetime.now(UTC)
        session.add(vacation)
        await session.flush()

        record_change(
            session,
            user_id=vacation.user_id,
            group_id=vacation.group_id,
            change_type=ChangeType.VACATION,
            changing_user_id=auth.user_id,
            detail=describe_change("DELETE", after=model_to_audit_dict(vacation)),
        )

    logger.info("Vacation %s deleted by %s", vacation_id, auth.user_id)

