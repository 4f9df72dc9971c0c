# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel


class AuthContext(BaseModel):
    """Authenticated caller as resolved by the identity provider."""

    user_id: uuid.UUID
    session_id: str
    user_email: str
    email_verified: bool = False
