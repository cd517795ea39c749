from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, ContextManager, List

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from ..db import session_scope
from ..models import Task
from ..recurrence import resolve_timezone
from ..services.pending_service import process_pending_recurrences

log = logging.getLogger(__name__)


class Scheduler:
    def __init__(self, timezone: str, session_factory: Callable[[], ContextManager[Session]] = session_scope) -> None:
        self.timezone = timezone
        self.session_factory = session_factory
        self.zone = resolve_timezone(timezone)
        self.scheduler = AsyncIOScheduler(timezone=self.zone)

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def schedule_pending_recurrences(self, minutes: int = 15) -> None:
        self.scheduler.add_job(
            self.run_pending_recurrences,
            IntervalTrigger(minutes=minutes),
            id="pending_recurrences",
            replace_existing=True,
            next_run_time=datetime.now(self.zone),
        )

    def local_now(self) -> datetime:
        # Owner rows hold naive wall-clock times in the configured zone.
        return datetime.now(self.zone).replace(tzinfo=None)

    def run_pending_recurrences(self) -> List[Task]:
        with self.session_factory() as session:
            created = process_pending_recurrences(session, self.local_now())
        if created:
            log.info("Created %d task(s) from pending recurrences", len(created))
        return created


def create_scheduler(timezone: str) -> Scheduler:
    return Scheduler(timezone=timezone)
