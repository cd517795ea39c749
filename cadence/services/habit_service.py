from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import Habit, HabitCompletion, HabitSkip, SkipReason
from ..recurrence import Moment, local_day, matches, next_occurrence
from ..streaks import completion_rate, update_streak, zone_for


def excused_moments(habit: Habit) -> List[datetime]:
    return [skip.skipped_at for skip in habit.skips if skip.reason.preserves_streak]


def is_completed_on(habit: Habit, day: Moment) -> bool:
    if habit.last_completed_at is None:
        return False
    zone = zone_for(habit.recurrence_rule, habit.last_completed_at)
    return local_day(habit.last_completed_at, zone) == local_day(day, zone)


def complete_habit(session: Session, habit: Habit, completed_at: datetime, notes: str = "") -> Optional[HabitCompletion]:
    """Record a completion and advance the streak; None if already completed that day."""
    if is_completed_on(habit, completed_at):
        return None
    history = [entry.completed_at for entry in habit.completions] + excused_moments(habit)
    current, _ = update_streak(habit, completed_at, history)
    completion = HabitCompletion(habit=habit, completed_at=completed_at, notes=notes, streak_after=current)
    session.add_all([completion, habit])
    return completion


def skip_habit(
    session: Session, habit: Habit, skipped_at: datetime, reason: SkipReason, notes: str = ""
) -> HabitSkip:
    """Record a skip; vacation, sick and emergency skips excuse the day from streak checks."""
    skip = HabitSkip(habit=habit, skipped_at=skipped_at, reason=reason, notes=notes)
    session.add(skip)
    return skip


def is_due_on(habit: Habit, day: Moment) -> bool:
    if habit.recurrence_rule is None:
        return True
    return matches(habit.recurrence_rule, day, habit.created_at)


def next_due_date(habit: Habit, after: datetime) -> Optional[Moment]:
    if habit.recurrence_rule is None:
        return after + timedelta(days=1)
    return next_occurrence(habit.recurrence_rule, after, anchor=habit.created_at)


def habits_due_on(session: Session, day: date) -> Sequence[Habit]:
    habits = session.scalars(select(Habit).order_by(Habit.created_at)).all()
    return [habit for habit in habits if is_due_on(habit, day)]


def habit_completion_rate(habit: Habit, days: int, reference: datetime) -> float:
    start = reference - timedelta(days=days)
    history = [entry.completed_at for entry in habit.completions]
    return completion_rate(habit.recurrence_rule, history, start, reference)
