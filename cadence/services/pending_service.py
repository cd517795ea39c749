from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Sequence

from sqlalchemy import asc, select
from sqlalchemy.orm import Session

from ..models import PendingRecurrence, Task
from ..rules import RecurrenceError
from .task_service import has_remaining_occurrences, next_recurrence

log = logging.getLogger(__name__)


def schedule_pending_recurrence(session: Session, task: Task, now: datetime | None = None) -> PendingRecurrence:
    """Queue the next instance of ``task`` instead of creating it right away."""
    rule = task.recurrence_rule
    if rule is None:
        raise RecurrenceError("task has no recurrence rule")
    if not has_remaining_occurrences(task):
        raise RecurrenceError("maximum occurrences reached")
    next_date = next_recurrence(task, now)
    if next_date is None:
        raise RecurrenceError("no next occurrence available")
    if not task.completed and not rule.recreate_if_incomplete:
        raise RecurrenceError("task is not completed and recreate_if_incomplete is off")

    pending = PendingRecurrence(
        scheduled_at=next_date,
        source_task_id=task.id,
        task_title=task.title,
        task_description=task.description or "",
        task_priority=task.priority,
        recurrence_rule=rule,
        occurrence_index=(task.occurrence_index or 1) + 1,
        alert_hour=task.alert_hour,
        alert_minute=task.alert_minute,
    )
    session.add(pending)
    session.flush()
    log.info("Scheduled pending recurrence for %r at %s", task.title, next_date)
    return pending


def all_pending_recurrences(session: Session) -> Sequence[PendingRecurrence]:
    stmt = select(PendingRecurrence).order_by(asc(PendingRecurrence.scheduled_at))
    return session.scalars(stmt).all()


def ready_pending_recurrences(session: Session, now: datetime) -> Sequence[PendingRecurrence]:
    stmt = (
        select(PendingRecurrence)
        .where(PendingRecurrence.scheduled_at <= now)
        .order_by(asc(PendingRecurrence.scheduled_at))
    )
    return session.scalars(stmt).all()


def _task_from_pending(pending: PendingRecurrence) -> Task:
    # Recurring instances never inherit an absolute reminder.
    return Task(
        title=pending.task_title,
        description=pending.task_description,
        priority=pending.task_priority,
        due_at=pending.scheduled_at,
        recurrence_rule=pending.recurrence_rule,
        occurrence_index=pending.occurrence_index,
        reminder_at=None,
        alert_hour=pending.alert_hour,
        alert_minute=pending.alert_minute,
    )


def process_pending_recurrences(session: Session, now: datetime) -> List[Task]:
    """Materialize every pending recurrence whose scheduled time has passed."""
    ready = ready_pending_recurrences(session, now)
    if not ready:
        log.debug("No pending recurrences ready at %s", now)
        return []

    created: List[Task] = []
    for pending in ready:
        task = _task_from_pending(pending)
        session.add(task)
        created.append(task)
        session.delete(pending)
    session.flush()
    log.info("Materialized %d recurring task(s)", len(created))
    return created


def cancel_pending_recurrence(session: Session, source_task_id: int) -> int:
    stmt = select(PendingRecurrence).where(PendingRecurrence.source_task_id == source_task_id)
    pending = session.scalars(stmt).all()
    for item in pending:
        session.delete(item)
    if pending:
        session.flush()
        log.info("Cancelled %d pending recurrence(s) for task %s", len(pending), source_task_id)
    return len(pending)


def cancel_all_pending_recurrences(session: Session) -> int:
    pending = all_pending_recurrences(session)
    for item in pending:
        session.delete(item)
    if pending:
        session.flush()
        log.info("Cancelled all %d pending recurrence(s)", len(pending))
    return len(pending)
