from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from ..models import Habit, Task
from .habit_service import is_due_on, next_due_date
from .task_service import next_recurrence


def at_time(moment: datetime, hour: int, minute: int) -> datetime:
    return moment.replace(hour=hour, minute=minute, second=0, microsecond=0)


def effective_reminder_date(task: Task, now: datetime) -> Optional[datetime]:
    """When the task's alert should fire.

    A snooze wins; recurring tasks with an alert time fire at that time
    today, or on the next occurrence once today's time has passed; other
    tasks use their absolute reminder.
    """
    if task.snoozed_until is not None:
        return task.snoozed_until

    if task.recurrence_rule is not None and task.alert_hour is not None and task.alert_minute is not None:
        alert = at_time(now, task.alert_hour, task.alert_minute)
        if alert >= now:
            return alert
        next_due = next_recurrence(task, now)
        if next_due is not None:
            return at_time(next_due, task.alert_hour, task.alert_minute)
        return alert + timedelta(days=1)

    return task.reminder_at


def has_pending_reminder(task: Task, now: datetime) -> bool:
    fire_at = effective_reminder_date(task, now)
    return fire_at is not None and fire_at > now and not task.notification_fired


def next_habit_alert(habit: Habit, now: datetime) -> Optional[datetime]:
    if habit.alert_hour is None or habit.alert_minute is None:
        return None
    alert = at_time(now, habit.alert_hour, habit.alert_minute)
    if alert >= now and is_due_on(habit, now):
        return alert
    next_due = next_due_date(habit, now)
    if next_due is None:
        return None
    return at_time(next_due, habit.alert_hour, habit.alert_minute)
