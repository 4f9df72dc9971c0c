# ruff: noqa: B008
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, Request

from flexiday.config import get_settings
from flexiday.exceptions import ForbiddenError, UnauthorizedError
from flexiday.schemas.auth import AuthContext
from flexiday.services.identity import IdentityDirectory
from flexiday.services.notifier import ApproverNotifier

_BEARER_PREFIX = "bearer "


def get_identity_directory(request: Request) -> IdentityDirectory:
    """The identity directory configured on the application."""
    return request.app.state.identity_directory


def get_notifier(request: Request) -> ApproverNotifier:
    return request.app.state.notifier


IdentityDep = Annotated[IdentityDirectory, Depends(get_identity_directory)]
NotifierDep = Annotated[ApproverNotifier, Depends(get_notifier)]


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization or not authorization.lower().startswith(_BEARER_PREFIX):
        return None
    token = authorization[len(_BEARER_PREFIX) :].strip()
    return token or None


async def get_auth_context(
    identity: IdentityDep,
    authorization: str | None = Header(default=None),
) -> AuthContext:
    """Resolve the bearer session token into the caller's identity."""
    token = _bearer_token(authorization)
    if token is None:
        raise UnauthorizedError("Missing bearer token")

    auth = await identity.resolve_session(token)
    if auth is None:
        raise UnauthorizedError("Invalid or expired session")

    if get_settings().require_verified_email and not auth.email_verified:
        raise ForbiddenError("Email address is not verified", context={"user_id": str(auth.user_id)})
    return auth


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]
