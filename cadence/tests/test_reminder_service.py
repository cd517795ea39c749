from datetime import datetime

from cadence.models import Habit, Task
from cadence.rules import FRIDAY, MONDAY, WEDNESDAY, RecurrenceRule
from cadence.services.reminder_service import effective_reminder_date, has_pending_reminder, next_habit_alert

DAILY = RecurrenceRule.daily(time_zone_identifier="UTC")


def recurring_task(**kwargs):
    return Task(
        title="Take vitamins",
        due_at=datetime(2024, 1, 1),
        recurrence_rule=DAILY,
        alert_hour=9,
        alert_minute=0,
        notification_fired=False,
        **kwargs,
    )


def test_snooze_wins():
    task = recurring_task(snoozed_until=datetime(2024, 1, 1, 11, 15))
    assert effective_reminder_date(task, datetime(2024, 1, 1, 8, 0)) == datetime(2024, 1, 1, 11, 15)


def test_recurring_alert_fires_today_until_it_passes():
    task = recurring_task()
    assert effective_reminder_date(task, datetime(2024, 1, 1, 8, 0)) == datetime(2024, 1, 1, 9, 0)
    assert effective_reminder_date(task, datetime(2024, 1, 1, 10, 0)) == datetime(2024, 1, 2, 9, 0)


def test_plain_reminder_is_used_without_alert_time():
    task = Task(title="Call bank", reminder_at=datetime(2024, 1, 4, 14, 0), notification_fired=False)
    now = datetime(2024, 1, 1, 8, 0)
    assert effective_reminder_date(task, now) == datetime(2024, 1, 4, 14, 0)
    assert has_pending_reminder(task, now)

    task.notification_fired = True
    assert not has_pending_reminder(task, now)
    assert not has_pending_reminder(Task(title="No reminder", notification_fired=False), now)


def test_habit_alert_lands_on_due_days():
    habit = Habit(
        title="Run",
        created_at=datetime(2024, 1, 1, 7, 0),
        recurrence_rule=RecurrenceRule.weekly(days_of_week={MONDAY, WEDNESDAY, FRIDAY}, time_zone_identifier="UTC"),
        alert_hour=7,
        alert_minute=30,
    )
    assert next_habit_alert(habit, datetime(2024, 1, 1, 6, 0)) == datetime(2024, 1, 1, 7, 30)
    assert next_habit_alert(habit, datetime(2024, 1, 1, 8, 0)) == datetime(2024, 1, 3, 7, 30)
    assert next_habit_alert(habit, datetime(2024, 1, 2, 6, 0)) == datetime(2024, 1, 3, 7, 30)

    habit.alert_hour = None
    assert next_habit_alert(habit, datetime(2024, 1, 1, 6, 0)) is None
