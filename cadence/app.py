from __future__ import annotations

import asyncio
import logging

from . import models  # noqa: F401  registers tables on Base
from .db import init_db
from .jobs.scheduler import Scheduler, create_scheduler
from .settings import Settings, get_settings

log = logging.getLogger(__name__)


def build_scheduler(settings: Settings) -> Scheduler:
    scheduler = create_scheduler(settings.timezone)
    scheduler.schedule_pending_recurrences(minutes=settings.pending_interval_minutes)
    return scheduler


async def main() -> None:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    init_db()
    scheduler = build_scheduler(settings)
    scheduler.start()
    log.info(
        "Processing pending recurrences every %d minute(s) in %s",
        settings.pending_interval_minutes,
        settings.timezone,
    )
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
