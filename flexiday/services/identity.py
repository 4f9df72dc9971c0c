# ruff: noqa: TC003
from __future__ import annotations

import secrets
import uuid
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from flexiday.schemas.auth import AuthContext


class UserInfo(BaseModel):
    """User metadata from the identity provider."""

    id: uuid.UUID
    name: str
    email: str
    email_verified: bool = False


@runtime_checkable
class IdentityDirectory(Protocol):
    """Interface for the external identity provider."""

    async def resolve_session(self, token: str) -> AuthContext | None:
        """Resolve an opaque session token. Returns None if unknown or expired."""
        ...

    async def get_user(self, user_id: uuid.UUID) -> UserInfo | None:
        """Fetch user metadata. Returns None if not found."""
        ...


class InMemoryIdentityDirectory:
    """In-memory stub implementation for development and tests."""

    def __init__(self) -> None:
        self._users: dict[uuid.UUID, UserInfo] = {}
        self._sessions: dict[str, tuple[str, uuid.UUID]] = {}

    def seed_user(self, user: UserInfo) -> None:
        """Seed a user for testing."""
        self._users[user.id] = user

    def seed_session(self, user_id: uuid.UUID, token: str | None = None) -> str:
        """Open a session for a seeded user and return its bearer token."""
        token = token or secrets.token_urlsafe(24)
        self._sessions[token] = (str(uuid.uuid4()), user_id)
        return token

    def revoke_session(self, token: str) -> None:
        self._sessions.pop(token, None)

    async def resolve_session(self, token: str) -> AuthContext | None:
        entry = self._sessions.get(token)
        if entry is None:
            return None
        session_id, user_id = entry
        user = self._users.get(user_id)
        if user is None:
            return None
        return AuthContext(
            user_id=user.id,
            session_id=session_id,
            user_email=user.email,
            email_verified=user.email_verified,
        )

    async def get_user(self, user_id: uuid.UUID) -> UserInfo | None:
        return self._users.get(user_id)
