from __future__ import annotations

import enum


class VacationType(enum.StrEnum):
    """Kind of day requested. Stored as the member value."""

    VACATION = "VACATION"
    HOME_OFFICE = "HOME_OFFICE"
    SICK = "SICK"
    BANK_HOLIDAY = "BANK_HOLIDAY"
    NON_PAID_LEAVE = "NON_PAID_LEAVE"
    PAID_TIME_OFF = "PAID_TIME_OFF"
    SICK_LEAVE = "SICK_LEAVE"
    STUDY_LEAVE = "STUDY_LEAVE"
    OTHER = "OTHER"


class VacationStatus(enum.StrEnum):
    """Derived state of a vacation request."""

    REQUESTED = "REQUESTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    DELETED = "DELETED"


class ChangeType(enum.StrEnum):
    """Entity family recorded in the change log."""

    GROUP = "GROUP"
    GROUP_USER = "GROUP_USER"
    VACATION = "VACATION"
    USER_YEAR_QUOTAS = "USER_YEAR_QUOTAS"


class Capability(enum.StrEnum):
    """Membership flag checked before a group-scoped action."""

    VIEW = "VIEW"
    ADMIN = "ADMIN"
    CONTROLLED = "CONTROLLED"


def check_values(column: str, enum_cls: type[enum.StrEnum]) -> str:
    """SQL CHECK expression restricting a string column to the enum's values."""
    allowed = ", ".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({allowed})"
