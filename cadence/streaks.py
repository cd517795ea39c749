from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Iterable, Optional, Set

from .recurrence import (
    BASE_UNITS,
    SUB_DAILY_STEPS,
    Moment,
    is_past_end,
    iter_occurrences,
    local_day,
    localize,
    resolve_timezone,
)
from .rules import RecurrenceRule

log = logging.getLogger(__name__)

# Upper bound on occurrences generated per scan of a day-or-coarser rule.
MISSED_DAY_SCAN_LIMIT = 10_000


def zone_for(rule: Optional[RecurrenceRule], sample: Moment) -> tzinfo:
    if rule is not None:
        return resolve_timezone(rule.time_zone_identifier)
    if isinstance(sample, datetime) and sample.tzinfo is not None:
        return sample.tzinfo
    return resolve_timezone("UTC")


def completion_days(completions: Iterable[Moment], zone: tzinfo) -> Set[date]:
    return {local_day(value, zone) for value in completions}


def _sub_daily_days(rule: RecurrenceRule, start: Moment, first: date, last: date, zone: tzinfo) -> Set[date]:
    # Occurrences sit on a fixed UTC grid from ``start``; probe each local
    # day for the first grid point at or after its midnight.
    step = SUB_DAILY_STEPS[BASE_UNITS[rule.frequency]] * rule.interval
    origin = localize(start, zone).astimezone(timezone.utc)
    days: Set[date] = set()
    day = first + timedelta(days=1)
    while day <= last:
        day_start = localize(day, zone).astimezone(timezone.utc)
        steps = -((origin - day_start) // step)
        occurrence = (origin + steps * step).astimezone(zone)
        if is_past_end(occurrence, rule.end_date, zone):
            break
        if occurrence.date() > day:
            # interval longer than a day; jump to the day it lands on
            day = occurrence.date()
            continue
        days.add(day)
        day += timedelta(days=1)
    return days


def scheduled_days(rule: Optional[RecurrenceRule], start: Moment, end: Moment, zone: tzinfo) -> Set[date]:
    """Local days after ``start``'s day, up to and including ``end``'s day, on which ``rule`` is due."""
    first = local_day(start, zone)
    last = local_day(end, zone)
    if rule is None:
        return {first + timedelta(days=offset) for offset in range(1, (last - first).days + 1)}
    if BASE_UNITS[rule.frequency] in SUB_DAILY_STEPS:
        return _sub_daily_days(rule, start, first, last, zone)

    days: Set[date] = set()
    for index, occurrence in enumerate(iter_occurrences(rule, start)):
        day = local_day(occurrence, zone)
        if day > last:
            break
        if index >= MISSED_DAY_SCAN_LIMIT:
            log.warning(
                "Stopped scanning %s rule at %s, days up to %s were not checked",
                rule.frequency.value,
                day,
                last,
            )
            break
        if day > first:
            days.add(day)
    return days


def count_missed_scheduled_days(
    last: Moment,
    new: Moment,
    rule: Optional[RecurrenceRule],
    completions: Iterable[Moment] = (),
) -> int:
    """Scheduled days strictly between ``last`` and ``new`` without a completion.

    Days the rule never schedules are not counted. Without a rule every
    elapsed day is scheduled.
    """
    zone = zone_for(rule, last)
    done = completion_days(completions, zone)
    gap = scheduled_days(rule, last, new, zone) - {local_day(new, zone)}
    return sum(1 for day in gap if day not in done)


def update_streak(habit, completed_at: Moment, completions: Iterable[Moment] = ()) -> tuple[int, int]:
    """Advance ``habit``'s streak for a completion at ``completed_at``.

    ``habit`` needs ``recurrence_rule``, ``current_streak``,
    ``longest_streak`` and ``last_completed_at`` attributes. A second
    completion on the same day leaves the streak untouched.
    """
    rule = habit.recurrence_rule
    current = habit.current_streak or 0
    longest = habit.longest_streak or 0
    previous = habit.last_completed_at

    if previous is None:
        current = 1
    else:
        zone = zone_for(rule, previous)
        if local_day(previous, zone) == local_day(completed_at, zone):
            return current, longest
        missed = count_missed_scheduled_days(previous, completed_at, rule, completions)
        current = current + 1 if missed == 0 else 1

    habit.current_streak = current
    habit.longest_streak = max(longest, current)
    habit.last_completed_at = completed_at
    return current, habit.longest_streak


def due_days_in_period(rule: Optional[RecurrenceRule], start: Moment, end: Moment) -> int:
    return len(scheduled_days(rule, start, end, zone_for(rule, start)))


def completion_rate(
    rule: Optional[RecurrenceRule],
    completions: Iterable[Moment],
    start: Moment,
    end: Moment,
) -> float:
    zone = zone_for(rule, start)
    due = scheduled_days(rule, start, end, zone)
    if not due:
        return 0.0
    done = completion_days(completions, zone) & due
    return len(done) / len(due)
