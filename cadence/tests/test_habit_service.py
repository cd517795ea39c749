from datetime import date, datetime

import pytest

from cadence.models import Habit, SkipReason
from cadence.rules import FRIDAY, MONDAY, WEDNESDAY, RecurrenceRule
from cadence.services.habit_service import (
    complete_habit,
    habit_completion_rate,
    habits_due_on,
    is_completed_on,
    is_due_on,
    next_due_date,
    skip_habit,
)

MWF = RecurrenceRule.weekly(days_of_week={MONDAY, WEDNESDAY, FRIDAY}, time_zone_identifier="UTC")


def add_habit(session, rule=MWF, title="Run", created_at=datetime(2024, 1, 1, 7, 0)):
    habit = Habit(
        title=title,
        created_at=created_at,
        recurrence_rule=rule,
        current_streak=0,
        longest_streak=0,
    )
    session.add(habit)
    session.flush()
    return habit


def test_streak_follows_scheduled_days(session):
    habit = add_habit(session)

    first = complete_habit(session, habit, datetime(2024, 1, 1, 7, 30), notes="5k")
    assert first.streak_after == 1
    assert complete_habit(session, habit, datetime(2024, 1, 1, 19, 0)) is None
    assert complete_habit(session, habit, datetime(2024, 1, 3, 7, 30)).streak_after == 2
    # Friday 5 January missed
    assert complete_habit(session, habit, datetime(2024, 1, 8, 7, 30)).streak_after == 1

    session.flush()
    assert habit.current_streak == 1
    assert habit.longest_streak == 2
    assert len(habit.completions) == 3
    assert is_completed_on(habit, date(2024, 1, 8))


def test_excusing_skip_keeps_the_streak(session):
    habit = add_habit(session)
    complete_habit(session, habit, datetime(2024, 1, 1, 7, 30))
    complete_habit(session, habit, datetime(2024, 1, 3, 7, 30))
    skip_habit(session, habit, datetime(2024, 1, 5, 8, 0), SkipReason.VACATION, notes="Beach")

    assert complete_habit(session, habit, datetime(2024, 1, 8, 7, 30)).streak_after == 3


def test_other_skips_do_not_excuse(session):
    habit = add_habit(session)
    complete_habit(session, habit, datetime(2024, 1, 1, 7, 30))
    complete_habit(session, habit, datetime(2024, 1, 3, 7, 30))
    skip_habit(session, habit, datetime(2024, 1, 5, 8, 0), SkipReason.NO_TIME)

    assert complete_habit(session, habit, datetime(2024, 1, 8, 7, 30)).streak_after == 1
    assert not SkipReason.NOT_MOTIVATED.preserves_streak
    assert SkipReason.SICK.preserves_streak


def test_due_days(session):
    habit = add_habit(session)
    assert is_due_on(habit, date(2024, 1, 3))
    assert not is_due_on(habit, date(2024, 1, 2))
    assert not is_due_on(habit, date(2023, 12, 29))

    assert next_due_date(habit, datetime(2024, 1, 3, 12, 0)) == datetime(2024, 1, 5, 12, 0)

    free = add_habit(session, rule=None, title="Journal", created_at=datetime(2024, 1, 1, 8, 0))
    assert is_due_on(free, date(2024, 1, 2))
    assert next_due_date(free, datetime(2024, 1, 3, 12, 0)) == datetime(2024, 1, 4, 12, 0)

    assert [item.title for item in habits_due_on(session, date(2024, 1, 2))] == ["Journal"]
    assert [item.title for item in habits_due_on(session, date(2024, 1, 3))] == ["Run", "Journal"]


def test_completion_rate(session):
    habit = add_habit(session)
    for moment in (datetime(2024, 1, 1, 7, 30), datetime(2024, 1, 3, 7, 30), datetime(2024, 1, 8, 7, 30)):
        complete_habit(session, habit, moment)

    # due 3, 5, 8, 10, 12 and 15 January; done on the 3rd and 8th
    rate = habit_completion_rate(habit, 14, datetime(2024, 1, 15, 7, 0))
    assert rate == pytest.approx(2 / 6)
