from sqlmodel import SQLModel

from flexiday.models.base import SoftDeleteMixin, TimestampMixin, UUIDBase, active
from flexiday.models.change import ChangeRecord
from flexiday.models.enums import Capability, ChangeType, VacationStatus, VacationType
from flexiday.models.group import Group, GroupMembership
from flexiday.models.invite import InviteLink
from flexiday.models.quota import UserYearQuota
from flexiday.models.vacation import VacationRequest

__all__ = [
    "Capability",
    "ChangeRecord",
    "ChangeType",
    "Group",
    "GroupMembership",
    "InviteLink",
    "SQLModel",
    "SoftDeleteMixin",
    "TimestampMixin",
    "UUIDBase",
    "UserYearQuota",
    "VacationRequest",
    "VacationStatus",
    "VacationType",
    "active",
]
