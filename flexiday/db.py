from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import Depends
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel, col

from flexiday.config import get_settings

if TYPE_CHECKING:
    import uuid
    from collections.abc import AsyncIterator

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _engine_options(database_url: str, timeout: float) -> dict[str, Any]:
    """Driver-specific timeout options for the async engine."""
    if database_url.startswith("postgresql+asyncpg"):
        return {
            "pool_timeout": timeout,
            "connect_args": {
                "timeout": timeout,
                "command_timeout": timeout,
                "server_settings": {"statement_timeout": str(int(timeout * 1000))},
            },
        }
    if database_url.startswith("sqlite+aiosqlite"):
        return {"connect_args": {"timeout": timeout}}
    return {}


def get_engine() -> AsyncEngine:
    """Return the singleton async engine, creating it on first call."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.debug,
            pool_pre_ping=True,
            **_engine_options(settings.database_url, settings.db_timeout_seconds),
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the singleton async session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            expire_on_commit=False,
        )
    return _session_factory


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields an async database session."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def dispose_engine() -> None:
    """Dispose the engine and reset singletons. Call on app shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


@asynccontextmanager
async def unit_of_work(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run a block of writes as one transaction.

    Commits when the block finishes and rolls back every flushed change when
    it raises, so no operation leaves the store half-applied.
    """
    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise


async def insert_ignoring_conflicts(session: AsyncSession, row: SQLModel) -> uuid.UUID | None:
    """INSERT ... ON CONFLICT DO NOTHING for a single model instance.

    Returns the id of the inserted row, or None when a uniqueness constraint
    already held an equivalent active row.
    """
    model = type(row)
    dialect = session.bind.dialect.name if session.bind is not None else ""
    if dialect == "postgresql":
        stmt = postgresql.insert(model)
    elif dialect == "sqlite":
        stmt = sqlite.insert(model)
    else:
        msg = f"Conflict-ignoring insert is not supported for dialect {dialect!r}"
        raise RuntimeError(msg)

    result = await session.execute(
        stmt.values(**row.model_dump()).on_conflict_do_nothing().returning(col(model.id))  # type: ignore[attr-defined]
    )
    return result.scalar_one_or_none()
