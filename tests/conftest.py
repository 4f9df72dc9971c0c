from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from flexiday.api.deps import get_identity_directory, get_notifier
from flexiday.db import get_session
from flexiday.main import app
from flexiday.models import SQLModel
from flexiday.services.identity import InMemoryIdentityDirectory, UserInfo

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine

    from flexiday.schemas.group import ApproversResponse
    from flexiday.schemas.vacation import VacationResponse


@dataclass
class SeededUser:
    id: uuid.UUID
    email: str
    headers: dict[str, str]


class RecordingNotifier:
    """Notifier double that remembers calls and can be told to fail."""

    def __init__(self) -> None:
        self.calls: list[tuple[ApproversResponse, VacationResponse]] = []
        self.fail = False

    async def notify_approvers(self, approvers: ApproversResponse, vacation: VacationResponse) -> None:
        if self.fail:
            raise ConnectionError("mail relay unreachable")
        self.calls.append((approvers, vacation))


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """A fresh SQLite database per test."""
    _engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'flexiday.db'}")
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def identity() -> InMemoryIdentityDirectory:
    return InMemoryIdentityDirectory()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_user(identity: InMemoryIdentityDirectory) -> Callable[..., SeededUser]:
    """Seed a user with an open session and return its auth headers."""

    def _make(name: str = "user", *, verified: bool = True) -> SeededUser:
        user = UserInfo(
            id=uuid.uuid4(),
            name=name,
            email=f"{name}.{uuid.uuid4().hex[:6]}@example.com",
            email_verified=verified,
        )
        identity.seed_user(user)
        token = identity.seed_session(user.id)
        return SeededUser(id=user.id, email=user.email, headers={"Authorization": f"Bearer {token}"})

    return _make


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
async def async_client(
    db_session: AsyncSession,
    identity: InMemoryIdentityDirectory,
    notifier: RecordingNotifier,
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the session and external collaborators overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    app.dependency_overrides[get_identity_directory] = lambda: identity
    app.dependency_overrides[get_notifier] = lambda: notifier
    if app.state.rate_limiter is not None:
        app.state.rate_limiter.reset()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Group scenario
# ---------------------------------------------------------------------------


@dataclass
class GroupSetup:
    group_id: str
    manager: SeededUser
    approver: SeededUser
    temp_approver: SeededUser
    member: SeededUser
    outsider: SeededUser


@pytest.fixture
def join_group(async_client: AsyncClient) -> Callable[[SeededUser, str, SeededUser], Awaitable[dict]]:
    """Invite ``user`` into the group with ``admin``'s credentials and redeem the code."""

    async def _join(admin: SeededUser, group_id: str, user: SeededUser) -> dict:
        invite = await async_client.post(f"/group/{group_id}/invite", headers=admin.headers)
        assert invite.status_code == 201, invite.text
        redeemed = await async_client.post(f"/group-user/code/{invite.json()['code']}", headers=user.headers)
        assert redeemed.status_code == 201, redeemed.text
        return redeemed.json()

    return _join


@pytest.fixture
async def group_setup(
    async_client: AsyncClient,
    make_user: Callable[..., SeededUser],
    join_group: Callable[[SeededUser, str, SeededUser], Awaitable[dict]],
) -> GroupSetup:
    """A group with a manager, two approvers and one controlled member."""
    manager = make_user("manager")
    approver = make_user("approver")
    temp_approver = make_user("temp")
    member = make_user("member")
    outsider = make_user("outsider")

    created = await async_client.post(
        "/group",
        json={"groupName": "Platform", "defaultVacation": 25, "defaultHomeOffice": 10},
        headers=manager.headers,
    )
    assert created.status_code == 201, created.text
    group_id = created.json()["id"]

    approvers = await async_client.put(
        f"/group/{group_id}/approvers",
        json={"mainApprovalUser": str(approver.id), "tempApprovalUser": str(temp_approver.id)},
        headers=manager.headers,
    )
    assert approvers.status_code == 200, approvers.text

    await join_group(manager, group_id, member)

    return GroupSetup(
        group_id=group_id,
        manager=manager,
        approver=approver,
        temp_approver=temp_approver,
        member=member,
        outsider=outsider,
    )
