from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from flexiday.api.health import router as health_router
from flexiday.api.router import api_router
from flexiday.config import get_settings
from flexiday.db import dispose_engine
from flexiday.exceptions import setup_exception_handlers
from flexiday.logging_config import configure_logging
from flexiday.middleware import setup_middleware
from flexiday.services.identity import IdentityDirectory, InMemoryIdentityDirectory
from flexiday.services.notifier import ApproverNotifier, LoggingNotifier

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager for startup and shutdown."""
    settings = get_settings()
    logger.info("Starting %s v%s [%s]", settings.app_name, settings.app_version, settings.environment)
    yield
    await dispose_engine()
    logger.info("Shutting down %s", settings.app_name)


def create_app(
    identity_directory: IdentityDirectory | None = None,
    notifier: ApproverNotifier | None = None,
) -> FastAPI:
    """Application factory.

    Without explicit collaborators the in-memory identity directory and the
    logging notifier are used.
    """
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )
    application.state.identity_directory = identity_directory or InMemoryIdentityDirectory()
    application.state.notifier = notifier or LoggingNotifier()

    setup_middleware(application, settings)
    setup_exception_handlers(application)

    application.include_router(health_router)
    application.include_router(api_router)

    return application


app = create_app()
