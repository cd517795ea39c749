from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..models import Task
from ..recurrence import next_occurrence
from ..rules import RepeatMode

log = logging.getLogger(__name__)


def recurrence_base(task: Task, now: datetime) -> datetime:
    """Date the next occurrence is derived from, chosen by the rule's repeat mode."""
    rule = task.recurrence_rule
    if rule is not None and rule.repeat_mode == RepeatMode.FROM_COMPLETION_DATE:
        return task.completed_at or now
    return task.due_at or task.created_at or now


def next_recurrence(task: Task, now: datetime | None = None) -> Optional[datetime]:
    if task.recurrence_rule is None:
        return None
    return next_occurrence(task.recurrence_rule, recurrence_base(task, now or datetime.now()))


def has_remaining_occurrences(task: Task) -> bool:
    rule = task.recurrence_rule
    if rule is None:
        return False
    if rule.max_occurrences is None:
        return True
    return (task.occurrence_index or 1) < rule.max_occurrences


def create_recurring_instance(task: Task, now: datetime | None = None) -> Optional[Task]:
    next_date = next_recurrence(task, now)
    if next_date is None:
        return None
    return Task(
        title=task.title,
        description=task.description or "",
        priority=task.priority,
        due_at=next_date,
        recurrence_rule=task.recurrence_rule,
        occurrence_index=(task.occurrence_index or 1) + 1,
        reminder_at=None,
        alert_hour=task.alert_hour,
        alert_minute=task.alert_minute,
    )


def complete_task(session: Session, task: Task, completed_at: datetime) -> Optional[datetime]:
    """Mark ``task`` done; returns the next instance's due date if the task keeps recurring."""
    task.completed = True
    task.completed_at = completed_at
    session.add(task)
    if not has_remaining_occurrences(task):
        return None
    next_date = next_recurrence(task, completed_at)
    if next_date is None:
        log.info("Recurrence for task %s has ended", task.id)
    return next_date
