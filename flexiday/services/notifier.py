from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from flexiday.services.group import resolve_approvers

if TYPE_CHECKING:
    import uuid

    from flexiday.schemas.group import ApproversResponse
    from flexiday.schemas.vacation import VacationResponse
    from flexiday.services.identity import IdentityDirectory

logger = logging.getLogger(__name__)


@runtime_checkable
class ApproverNotifier(Protocol):
    """Interface for telling approvers that a request awaits their decision."""

    async def notify_approvers(self, approvers: ApproversResponse, vacation: VacationResponse) -> None: ...


class LoggingNotifier:
    """Development notifier: records the notification instead of sending it."""

    async def notify_approvers(self, approvers: ApproversResponse, vacation: VacationResponse) -> None:
        recipients = [email for email in (approvers.main_approver_email, approvers.temp_approver_email) if email]
        logger.info(
            "Notification not sent for vacation %s on %s; recipients=%s",
            vacation.id,
            vacation.requested_day,
            recipients,
        )


async def notify_approvers_safely(
    identity: IdentityDirectory,
    notifier: ApproverNotifier,
    main_approval_user_id: uuid.UUID | None,
    temp_approval_user_id: uuid.UUID | None,
    vacation: VacationResponse,
) -> None:
    """Background task run after the request has been committed.

    Failures are logged and never reach the client.
    """
    try:
        approvers = await resolve_approvers(identity, main_approval_user_id, temp_approval_user_id)
        if approvers.main_approver_id is None and approvers.temp_approver_id is None:
            logger.info("Group %s has no approvers; skipping notification", vacation.group_id)
            return
        await notifier.notify_approvers(approvers, vacation)
    except Exception:
        logger.exception("Approver notification failed for vacation %s", vacation.id)
