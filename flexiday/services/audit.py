from __future__ import annotations

import json
import uuid
from datetime import date, datetime, time
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlmodel import col

from flexiday.models.change import ChangeRecord

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlmodel import SQLModel

    from flexiday.models.enums import ChangeType


def model_to_audit_dict(model: SQLModel) -> dict[str, Any]:
    """Serialize a SQLModel instance to a JSON-safe dict for the change log."""
    data: dict[str, Any] = {}
    for key, value in model.model_dump().items():
        if isinstance(value, uuid.UUID):
            data[key] = str(value)
        elif isinstance(value, (datetime, date, time)):
            data[key] = value.isoformat()
        else:
            data[key] = value
    return data


def describe_change(
    action: str,
    *,
    before: dict[str, Any] | None = None,
    after: dict[str, Any] | None = None,
    **extra: Any,
) -> str:
    """Render the change detail text stored with a change record."""
    payload: dict[str, Any] = {"action": action}
    if before is not None:
        payload["before"] = before
    if after is not None:
        payload["after"] = after
    payload.update(extra)
    return json.dumps(payload, default=str, sort_keys=True)


def record_change(
    session: AsyncSession,
    *,
    user_id: uuid.UUID,
    group_id: uuid.UUID,
    change_type: ChangeType,
    changing_user_id: uuid.UUID,
    detail: str,
) -> ChangeRecord:
    """Append a change record within the caller's transaction.

    The row is flushed with the business change it documents; if the write
    fails the whole transaction rolls back.
    """
    entry = ChangeRecord(
        user_id=user_id,
        group_id=group_id,
        change_type=change_type.value,
        change_detail=detail,
        changing_user_id=changing_user_id,
    )
    session.add(entry)
    return entry


async def query_changes(
    session: AsyncSession,
    group_id: uuid.UUID,
    start: datetime,
    end: datetime,
    user_id: uuid.UUID | None = None,
) -> list[ChangeRecord]:
    """Change records of a group created in ``[start, end)``, oldest first."""
    filters = [
        col(ChangeRecord.group_id) == group_id,
        col(ChangeRecord.created_at) >= start,
        col(ChangeRecord.created_at) < end,
    ]
    if user_id is not None:
        filters.append(col(ChangeRecord.user_id) == user_id)

    result = await session.execute(select(ChangeRecord).where(*filters).order_by(col(ChangeRecord.created_at)))
    return list(result.scalars().all())
