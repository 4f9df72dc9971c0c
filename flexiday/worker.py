"""Worker process for scheduled quota jobs.

Runs an asyncio loop that seeds the current year's balances once daily.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date

from flexiday.config import get_settings
from flexiday.db import dispose_engine, get_session_factory
from flexiday.logging_config import configure_logging

logger = logging.getLogger(__name__)

YEAR_INIT_INTERVAL_SECONDS = 86400  # 24 hours


async def run_once(today: date) -> None:
    """Seed missing balances for ``today``'s year. Failures are logged, not raised."""
    from flexiday.services.quota import run_year_initialization

    session_factory = get_session_factory()
    try:
        async with session_factory() as session:
            result = await run_year_initialization(session, today)
        logger.info(
            "Year initialization complete for %s: groups=%d created=%d",
            today.year,
            result.groups,
            result.created,
        )
    except Exception:
        logger.exception("Year initialization failed for %s", today)


async def run_quota_loop() -> None:
    """Main worker loop."""
    logger.info("Quota worker started")
    try:
        while True:
            await run_once(date.today())
            await asyncio.sleep(YEAR_INIT_INTERVAL_SECONDS)
    finally:
        await dispose_engine()


def main() -> None:
    """Entry point for the worker process."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    asyncio.run(run_quota_loop())


if __name__ == "__main__":
    main()
