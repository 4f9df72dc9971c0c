from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text

from flexiday.config import get_settings
from flexiday.db import SessionDep

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"]
    version: str
    environment: str


async def _store_reachable(session: AsyncSession) -> bool:
    try:
        await session.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Health check: store unreachable")
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health(session: SessionDep) -> HealthResponse:
    """Liveness check. Needs no session token; reports a degraded store instead of failing."""
    settings = get_settings()
    return HealthResponse(
        status="ok" if await _store_reachable(session) else "degraded",
        version=settings.app_version,
        environment=settings.environment,
    )
