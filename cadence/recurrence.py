"""Occurrence calculation for recurrence rules.

Every frequency advances through one ``relativedelta`` step on its base
unit; weekly and month/year rules then apply a modifier (weekday
selection, day-of-month clamping). ``matches`` is built from the same
primitives so both paths agree on modifier semantics.
"""
from __future__ import annotations

import logging
from calendar import monthrange
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from itertools import islice
from typing import Iterator, List, Optional, Union

from dateutil import tz
from dateutil.relativedelta import relativedelta

from .rules import EndDate, Frequency, RecurrenceRule, lookup_zone, weekday_number

log = logging.getLogger(__name__)

DEFAULT_OCCURRENCE_LIMIT = 50

BASE_UNITS = {
    Frequency.MINUTELY: "minutes",
    Frequency.HOURLY: "hours",
    Frequency.DAILY: "days",
    Frequency.WEEKLY: "weeks",
    Frequency.MONTHLY: "months",
    Frequency.YEARLY: "years",
    Frequency.CUSTOM: "days",
}
# Sub-daily units move in absolute time, the rest in wall-clock time.
SUB_DAILY_STEPS = {
    "minutes": timedelta(minutes=1),
    "hours": timedelta(hours=1),
}

Moment = Union[datetime, date]


def resolve_timezone(identifier: str | None) -> tzinfo:
    zone = lookup_zone(identifier)
    if zone is None:
        log.warning("Unknown time zone %r, falling back to the system time zone", identifier)
        return tz.tzlocal()
    return zone


def normalize(value: datetime, zone: tzinfo) -> datetime:
    """Round-trip through UTC so wall times inside a DST gap get a real offset."""
    return value.astimezone(timezone.utc).astimezone(zone)


def localize(value: Moment, zone: tzinfo) -> datetime:
    if not isinstance(value, datetime):
        value = datetime.combine(value, time())
    if value.tzinfo is None:
        return normalize(value.replace(tzinfo=zone), zone)
    return value.astimezone(zone)


def local_day(value: Moment, zone: tzinfo) -> date:
    if not isinstance(value, datetime):
        return value
    return localize(value, zone).date()


def _restore(result: datetime, like: Moment, sub_daily: bool = False) -> Moment:
    # Hand results back in the same shape the caller used for the reference.
    # A bare date only survives for day-or-coarser units; sub-daily results
    # keep their time of day as naive wall-clock values.
    if not isinstance(like, datetime):
        if sub_daily:
            return result.replace(tzinfo=None)
        return result.date()
    if like.tzinfo is None:
        return result.replace(tzinfo=None)
    return result


def clamp_day(year: int, month: int, day: int) -> int:
    """Clamp ``day`` into the given month; month length is looked up every call."""
    return max(1, min(day, monthrange(year, month)[1]))


def week_start(value: date) -> date:
    return value - timedelta(days=weekday_number(value) - 1)


def is_past_end(moment: datetime, end_date: EndDate | None, zone: tzinfo) -> bool:
    if end_date is None:
        return False
    if isinstance(end_date, datetime):
        return moment > localize(end_date, zone)
    return moment.date() > end_date


@dataclass(frozen=True)
class CalculationContext:
    frequency: Frequency
    interval: int
    days_of_week: Optional[frozenset]
    day_of_month: Optional[int]
    end_date: Optional[EndDate]
    preferred_time: Optional[time]
    zone: tzinfo
    reference: datetime
    anchor: datetime

    @property
    def unit(self) -> str:
        return BASE_UNITS[self.frequency]

    @property
    def is_sub_daily(self) -> bool:
        return self.unit in SUB_DAILY_STEPS

    @property
    def requires_modifiers(self) -> bool:
        if self.frequency == Frequency.WEEKLY:
            return bool(self.days_of_week)
        return self.frequency in (Frequency.MONTHLY, Frequency.YEARLY)

    @property
    def target_day(self) -> int:
        return self.day_of_month if self.day_of_month is not None else self.anchor.day


def build_context(rule: RecurrenceRule, reference: Moment, anchor: Moment | None = None) -> CalculationContext:
    zone = resolve_timezone(rule.time_zone_identifier)
    local_reference = localize(reference, zone)
    local_anchor = localize(anchor, zone) if anchor is not None else local_reference
    return CalculationContext(
        frequency=rule.frequency,
        interval=rule.interval,
        days_of_week=rule.days_of_week,
        day_of_month=rule.day_of_month,
        end_date=rule.end_date,
        preferred_time=rule.preferred_time,
        zone=zone,
        reference=local_reference,
        anchor=local_anchor,
    )


def advance(moment: datetime, unit: str, amount: int, zone: tzinfo) -> datetime:
    step = relativedelta(**{unit: amount})
    if unit in SUB_DAILY_STEPS:
        return (moment.astimezone(timezone.utc) + step).astimezone(zone)
    return normalize(moment + step, zone)


def _select_weekday(advanced: datetime, ctx: CalculationContext) -> datetime:
    current = weekday_number(ctx.reference)
    days = sorted(ctx.days_of_week)
    later = [day for day in days if day > current]
    if later:
        offset = later[0] - current
    else:
        offset = 7 * ctx.interval + days[0] - current
    if offset <= 0:
        # only reachable with out-of-range weekdays
        return advanced
    return normalize(ctx.reference + timedelta(days=offset), ctx.zone)


def _clamp_month_day(advanced: datetime, ctx: CalculationContext) -> datetime:
    day = clamp_day(advanced.year, advanced.month, ctx.target_day)
    return normalize(advanced.replace(day=day), ctx.zone)


def apply_modifiers(advanced: datetime, ctx: CalculationContext) -> datetime:
    if ctx.frequency == Frequency.WEEKLY:
        return _select_weekday(advanced, ctx)
    if ctx.frequency in (Frequency.MONTHLY, Frequency.YEARLY):
        return _clamp_month_day(advanced, ctx)
    return advanced


def _apply_preferred_time(moment: datetime, ctx: CalculationContext) -> datetime:
    if ctx.preferred_time is None or ctx.is_sub_daily:
        return moment
    pinned = moment.replace(
        hour=ctx.preferred_time.hour, minute=ctx.preferred_time.minute, second=0, microsecond=0
    )
    return normalize(pinned, ctx.zone)


def _step(ctx: CalculationContext) -> Optional[datetime]:
    candidate = advance(ctx.reference, ctx.unit, ctx.interval, ctx.zone)
    if ctx.requires_modifiers:
        candidate = apply_modifiers(candidate, ctx)
    candidate = _apply_preferred_time(candidate, ctx)
    if is_past_end(candidate, ctx.end_date, ctx.zone):
        return None
    return candidate


def next_occurrence(rule: RecurrenceRule, after: Moment, anchor: Moment | None = None) -> Optional[Moment]:
    """Next occurrence strictly after ``after``, or None once the rule has ended.

    ``anchor`` supplies the day of month used when the rule has none; it
    defaults to ``after``.
    """
    ctx = build_context(rule, after, anchor)
    result = _step(ctx)
    if result is None:
        return None
    return _restore(result, after, ctx.is_sub_daily)


def iter_occurrences(rule: RecurrenceRule, start: Moment) -> Iterator[Moment]:
    """Lazily chain ``next_occurrence`` from ``start`` until the rule ends."""
    ctx = build_context(rule, start)
    while True:
        following = _step(ctx)
        if following is None:
            return
        yield _restore(following, start, ctx.is_sub_daily)
        ctx = replace(ctx, reference=following)


def occurrences(rule: RecurrenceRule, start: Moment, limit: int = DEFAULT_OCCURRENCE_LIMIT) -> List[Moment]:
    if limit <= 0:
        return []
    return list(islice(iter_occurrences(rule, start), limit))


def base_unit_delta(ctx: CalculationContext, moment: datetime) -> Optional[int]:
    """Whole base units between the anchor and ``moment``.

    Returns None when a sub-daily ``moment`` is off the anchor's unit grid.
    """
    anchor = ctx.anchor
    if ctx.is_sub_daily:
        elapsed = moment.astimezone(timezone.utc) - anchor.astimezone(timezone.utc)
        step = SUB_DAILY_STEPS[ctx.unit]
        if elapsed % step:
            return None
        return elapsed // step
    if ctx.unit == "days":
        return (moment.date() - anchor.date()).days
    if ctx.unit == "weeks":
        return (week_start(moment.date()) - week_start(anchor.date())).days // 7
    if ctx.unit == "months":
        return (moment.year - anchor.year) * 12 + moment.month - anchor.month
    return moment.year - anchor.year


def matches(rule: RecurrenceRule, moment: Moment, relative_to: Moment) -> bool:
    """Whether ``moment`` is an occurrence of ``rule`` anchored at ``relative_to``."""
    ctx = build_context(rule, relative_to)
    local = localize(moment, ctx.zone)
    if not ctx.is_sub_daily and local.date() < ctx.anchor.date():
        return False
    delta = base_unit_delta(ctx, local)
    if delta is None or delta < 0 or delta % ctx.interval:
        return False
    if is_past_end(local, ctx.end_date, ctx.zone):
        return False

    if ctx.frequency == Frequency.WEEKLY:
        allowed = ctx.days_of_week or {weekday_number(ctx.anchor)}
        return weekday_number(local) in allowed
    if ctx.frequency == Frequency.YEARLY and local.month != ctx.anchor.month:
        return False
    if ctx.frequency in (Frequency.MONTHLY, Frequency.YEARLY):
        return local.day == clamp_day(local.year, local.month, ctx.target_day)
    return True
