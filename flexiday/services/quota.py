from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from flexiday.config import get_settings
from flexiday.db import insert_ignoring_conflicts, unit_of_work
from flexiday.exceptions import NotFoundError
from flexiday.models.base import active
from flexiday.models.enums import Capability, ChangeType, VacationType
from flexiday.models.group import Group, GroupMembership
from flexiday.models.quota import UserYearQuota
from flexiday.schemas.quota import QuotaSeed
from flexiday.services.audit import describe_change, model_to_audit_dict, record_change
from flexiday.services.group import get_group_or_404, require_permission

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from flexiday.models.vacation import VacationRequest
    from flexiday.schemas.auth import AuthContext

logger = logging.getLogger(__name__)

HALF_DAY = 0.5
FULL_DAY = 1.0


# ---------------------------------------------------------------------------
# Cost
# ---------------------------------------------------------------------------


def _hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def day_fraction(vacation: VacationRequest, workday_hours: float | None = None) -> float:
    """1.0 for a full day, 0.5 when the time span covers at most half a workday."""
    if vacation.start_time is None or vacation.end_time is None:
        return FULL_DAY
    if workday_hours is None:
        workday_hours = get_settings().workday_hours
    day = vacation.requested_day
    span = _hours_between(datetime.combine(day, vacation.start_time), datetime.combine(day, vacation.end_time))
    return HALF_DAY if span <= workday_hours / 2 else FULL_DAY


def quota_cost(vacation: VacationRequest, workday_hours: float | None = None) -> tuple[float, float]:
    """``(vacation_delta, home_office_delta)`` charged when the request is approved."""
    vacation_type = VacationType(vacation.vacation_type)
    if vacation_type == VacationType.VACATION:
        return day_fraction(vacation, workday_hours), 0.0
    if vacation_type == VacationType.HOME_OFFICE:
        return 0.0, day_fraction(vacation, workday_hours)
    return 0.0, 0.0


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_balances(
    session: AsyncSession,
    year: str,
    group_id: uuid.UUID,
    user_id: uuid.UUID | None = None,
) -> list[UserYearQuota]:
    filters = [col(UserYearQuota.related_year) == year, col(UserYearQuota.group_id) == group_id]
    if user_id is not None:
        filters.append(col(UserYearQuota.user_id) == user_id)

    result = await session.execute(select(UserYearQuota).where(*filters).order_by(col(UserYearQuota.created_at)))
    return list(result.scalars().all())


async def list_balances(
    session: AsyncSession,
    auth: AuthContext,
    group_id: uuid.UUID,
    year: str,
    user_id: uuid.UUID | None = None,
) -> list[UserYearQuota]:
    """Balances of a group for one year. Requires view access."""
    await require_permission(session, auth.user_id, group_id, Capability.VIEW)
    return await get_balances(session, year, group_id, user_id)


# ---------------------------------------------------------------------------
# Writes (caller's unit of work)
# ---------------------------------------------------------------------------


async def initialize_balances(session: AsyncSession, seeds: list[QuotaSeed]) -> list[UserYearQuota]:
    """Insert starting balances, leaving existing (user, group, year) rows untouched.

    Returns only the rows actually inserted.
    """
    inserted: list[UserYearQuota] = []
    for seed in seeds:
        inserted_id = await insert_ignoring_conflicts(
            session,
            UserYearQuota(
                user_id=seed.user_id,
                group_id=seed.group_id,
                related_year=seed.related_year,
                vacation_days=seed.vacation_days,
                home_office_days=seed.home_office_days,
            ),
        )
        if inserted_id is None:
            continue
        quota = await session.get(UserYearQuota, inserted_id)
        if quota is not None:
            inserted.append(quota)
    return inserted


async def _lock_quota(
    session: AsyncSession,
    user_id: uuid.UUID,
    group_id: uuid.UUID,
    related_year: str,
) -> UserYearQuota | None:
    result = await session.execute(
        select(UserYearQuota)
        .where(
            col(UserYearQuota.user_id) == user_id,
            col(UserYearQuota.group_id) == group_id,
            col(UserYearQuota.related_year) == related_year,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _get_or_create_quota_for_update(
    session: AsyncSession,
    user_id: uuid.UUID,
    group_id: uuid.UUID,
    related_year: str,
) -> UserYearQuota:
    """Lock the balance row, creating it from the group's defaults first if missing."""
    quota = await _lock_quota(session, user_id, group_id, related_year)
    if quota is not None:
        return quota

    group = await session.get(Group, group_id)
    if group is None:
        raise NotFoundError("Group not found", context={"group_id": str(group_id)})

    await initialize_balances(
        session,
        [
            QuotaSeed(
                user_id=user_id,
                group_id=group_id,
                related_year=related_year,
                vacation_days=group.default_vacation_days,
                home_office_days=group.default_home_office_days,
            )
        ],
    )
    quota = await _lock_quota(session, user_id, group_id, related_year)
    if quota is None:
        raise NotFoundError(
            "Quota not found",
            context={"user_id": str(user_id), "group_id": str(group_id), "year": related_year},
        )
    return quota


async def apply_delta(
    session: AsyncSession,
    user_id: uuid.UUID,
    group_id: uuid.UUID,
    related_year: str,
    vacation_delta: float,
    home_office_delta: float,
) -> UserYearQuota:
    """Subtract the deltas from a user's balances. Negative deltas credit.

    Balances may go below zero. Never commits.
    """
    quota = await _get_or_create_quota_for_update(session, user_id, group_id, related_year)
    quota.vacation_days -= vacation_delta
    quota.home_office_days -= home_office_delta
    session.add(quota)
    await session.flush()
    return quota


# ---------------------------------------------------------------------------
# Administrative operations
# ---------------------------------------------------------------------------


async def set_balances(
    session: AsyncSession,
    auth: AuthContext,
    quota_id: uuid.UUID,
    vacation_days: float,
    home_office_days: float,
) -> UserYearQuota:
    """Overwrite a balance row for a manual correction. Requires admin access."""
    async with unit_of_work(session):
        result = await session.execute(
            select(UserYearQuota).where(col(UserYearQuota.id) == quota_id).with_for_update()
        )
        quota = result.scalar_one_or_none()
        if quota is None:
            raise NotFoundError("Quota not found", context={"quota_id": str(quota_id)})
        await get_group_or_404(session, quota.group_id)
        await require_permission(session, auth.user_id, quota.group_id, Capability.ADMIN)

        before = model_to_audit_dict(quota)
        quota.vacation_days = vacation_days
        quota.home_office_days = home_office_days
        session.add(quota)
        await session.flush()

        record_change(
            session,
            user_id=quota.user_id,
            group_id=quota.group_id,
            change_type=ChangeType.USER_YEAR_QUOTAS,
            changing_user_id=auth.user_id,
            detail=describe_change("SET", before=before, after=model_to_audit_dict(quota)),
        )

    return quota


async def _controlled_member_ids(session: AsyncSession, group_id: uuid.UUID) -> list[uuid.UUID]:
    result = await session.execute(
        select(GroupMembership.user_id)
        .where(
            col(GroupMembership.group_id) == group_id,
            col(GroupMembership.controlled_user).is_(True),
            active(GroupMembership),
        )
        .order_by(col(GroupMembership.created_at))
    )
    return list(result.scalars().all())


def _seeds_for_group(group: Group, user_ids: list[uuid.UUID], year: str) -> list[QuotaSeed]:
    return [
        QuotaSeed(
            user_id=user_id,
            group_id=group.id,
            related_year=year,
            vacation_days=group.default_vacation_days,
            home_office_days=group.default_home_office_days,
        )
        for user_id in user_ids
    ]


async def initialize_year_for_group(
    session: AsyncSession,
    auth: AuthContext,
    group_id: uuid.UUID,
    year: str,
) -> list[UserYearQuota]:
    """Seed a year's balances for every controlled member. Requires admin access."""
    async with unit_of_work(session):
        group = await get_group_or_404(session, group_id)
        await require_permission(session, auth.user_id, group_id, Capability.ADMIN)

        user_ids = await _controlled_member_ids(session, group_id)
        inserted = await initialize_balances(session, _seeds_for_group(group, user_ids, year))
        for quota in inserted:
            record_change(
                session,
                user_id=quota.user_id,
                group_id=group_id,
                change_type=ChangeType.USER_YEAR_QUOTAS,
                changing_user_id=auth.user_id,
                detail=describe_change("INITIALIZE", after=model_to_audit_dict(quota)),
            )

    logger.info("Initialized %d balances for group %s, year %s", len(inserted), group_id, year)
    return inserted


@dataclass
class YearInitializationResult:
    groups: int
    created: int


async def run_year_initialization(session: AsyncSession, today: date) -> YearInitializationResult:
    """Seed the current year's balances for every active group. Idempotent."""
    year = f"{today.year:04d}"
    async with unit_of_work(session):
        result = await session.execute(select(Group).where(active(Group)).order_by(col(Group.created_at)))
        groups = list(result.scalars().all())

        created = 0
        for group in groups:
            user_ids = await _controlled_member_ids(session, group.id)
            created += len(await initialize_balances(session, _seeds_for_group(group, user_ids, year)))

    return YearInitializationResult(groups=len(groups), created=created)

