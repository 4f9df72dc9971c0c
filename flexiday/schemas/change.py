# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import datetime

from flexiday.models.enums import ChangeType
from flexiday.schemas.base import CamelModel


class ChangeResponse(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    group_id: uuid.UUID
    change_type: ChangeType
    change_detail: str
    changing_user_id: uuid.UUID
    created_at: datetime
