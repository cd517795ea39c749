from datetime import datetime

from cadence.models import Priority, Task
from cadence.rules import MONDAY, RecurrenceRule, RepeatMode
from cadence.services.task_service import (
    complete_task,
    create_recurring_instance,
    has_remaining_occurrences,
    next_recurrence,
    recurrence_base,
)

DAILY = RecurrenceRule.daily(time_zone_identifier="UTC")


def make_task(**kwargs):
    values = {
        "title": "Water plants",
        "description": "",
        "priority": Priority.MEDIUM,
        "created_at": datetime(2023, 12, 20, 8, 0),
        "completed": False,
        "occurrence_index": 1,
    }
    values.update(kwargs)
    return Task(**values)


def test_rule_survives_a_database_round_trip(session):
    rule = RecurrenceRule.weekly(days_of_week={MONDAY}, time_zone_identifier="Europe/Zurich", max_occurrences=4)
    task = make_task(due_at=datetime(2024, 1, 1, 9, 0), recurrence_rule=rule)
    session.add(task)
    session.commit()
    session.expire(task)

    loaded = session.get(Task, task.id)
    assert loaded.recurrence_rule == rule
    assert loaded.recurrence_rule.id == rule.id


def test_original_date_mode_uses_due_date():
    task = make_task(due_at=datetime(2024, 1, 1, 9, 0), recurrence_rule=DAILY, completed_at=datetime(2024, 1, 5, 18, 0))
    assert recurrence_base(task, datetime(2024, 1, 6)) == datetime(2024, 1, 1, 9, 0)
    assert next_recurrence(task) == datetime(2024, 1, 2, 9, 0)


def test_original_date_mode_falls_back_to_creation():
    task = make_task(recurrence_rule=DAILY)
    assert next_recurrence(task) == datetime(2023, 12, 21, 8, 0)


def test_completion_mode_uses_completion_or_now():
    rule = RecurrenceRule.daily(time_zone_identifier="UTC", repeat_mode=RepeatMode.FROM_COMPLETION_DATE)
    task = make_task(due_at=datetime(2024, 1, 1, 9, 0), recurrence_rule=rule)
    assert next_recurrence(task, now=datetime(2024, 1, 3, 12, 0)) == datetime(2024, 1, 4, 12, 0)

    task.completed_at = datetime(2024, 1, 5, 18, 0)
    assert next_recurrence(task, now=datetime(2024, 1, 3, 12, 0)) == datetime(2024, 1, 6, 18, 0)


def test_task_without_rule_never_recurs():
    task = make_task(due_at=datetime(2024, 1, 1, 9, 0))
    assert next_recurrence(task) is None
    assert not has_remaining_occurrences(task)
    assert create_recurring_instance(task) is None


def test_recurring_instance_copies_task_fields():
    task = make_task(
        due_at=datetime(2024, 1, 1, 9, 0),
        recurrence_rule=DAILY,
        reminder_at=datetime(2024, 1, 1, 8, 0),
        alert_hour=8,
        alert_minute=30,
        occurrence_index=3,
    )
    instance = create_recurring_instance(task)
    assert instance.title == "Water plants"
    assert instance.priority == Priority.MEDIUM
    assert instance.due_at == datetime(2024, 1, 2, 9, 0)
    assert instance.occurrence_index == 4
    assert instance.reminder_at is None
    assert (instance.alert_hour, instance.alert_minute) == (8, 30)
    assert instance.recurrence_rule is DAILY


def test_complete_task_returns_next_due_date(session):
    task = make_task(due_at=datetime(2024, 1, 1, 9, 0), recurrence_rule=DAILY)
    session.add(task)
    next_date = complete_task(session, task, datetime(2024, 1, 1, 10, 0))
    assert task.completed
    assert task.completed_at == datetime(2024, 1, 1, 10, 0)
    assert next_date == datetime(2024, 1, 2, 9, 0)


def test_complete_task_stops_at_max_occurrences(session):
    rule = RecurrenceRule.daily(time_zone_identifier="UTC", max_occurrences=3)
    task = make_task(due_at=datetime(2024, 1, 3, 9, 0), recurrence_rule=rule, occurrence_index=3)
    session.add(task)
    assert complete_task(session, task, datetime(2024, 1, 3, 10, 0)) is None
    assert task.completed


def test_complete_task_after_end_date(session):
    rule = RecurrenceRule.daily(time_zone_identifier="UTC", end_date=datetime(2024, 1, 1, 23, 0))
    task = make_task(due_at=datetime(2024, 1, 1, 9, 0), recurrence_rule=rule)
    session.add(task)
    assert complete_task(session, task, datetime(2024, 1, 1, 10, 0)) is None
