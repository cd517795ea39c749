from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from humanize import naturaldelta, ordinal

from ..models import SkipReason
from ..recurrence import Moment
from ..rules import Frequency, RecurrenceRule, RepeatMode

WEEKDAY_ABBR = {1: "Sun", 2: "Mon", 3: "Tue", 4: "Wed", 5: "Thu", 6: "Fri", 7: "Sat"}
FREQUENCY_LABELS = {
    Frequency.MINUTELY: "Every minute",
    Frequency.HOURLY: "Hourly",
    Frequency.DAILY: "Daily",
    Frequency.WEEKLY: "Weekly",
    Frequency.MONTHLY: "Monthly",
    Frequency.YEARLY: "Yearly",
    Frequency.CUSTOM: "Custom",
}
INTERVAL_SUFFIX = {
    Frequency.MINUTELY: "min",
    Frequency.HOURLY: "h",
    Frequency.DAILY: "d",
    Frequency.WEEKLY: "w",
    Frequency.MONTHLY: "m",
    Frequency.YEARLY: "y",
}
UNIT_NAMES = {
    Frequency.MINUTELY: "minutes",
    Frequency.HOURLY: "hours",
    Frequency.DAILY: "days",
    Frequency.WEEKLY: "weeks",
    Frequency.MONTHLY: "months",
    Frequency.YEARLY: "years",
}
SKIP_REASON_LABELS = {
    SkipReason.VACATION: "Vacation",
    SkipReason.SICK: "Sick",
    SkipReason.EMERGENCY: "Emergency",
    SkipReason.NO_TIME: "No Time",
    SkipReason.FORGOT_TO: "Forgot To",
    SkipReason.NOT_MOTIVATED: "Not Motivated",
    SkipReason.OTHER: "Other",
}


def frequency_display_name(rule: RecurrenceRule) -> str:
    """Compact label, e.g. ``Daily`` or ``Every 3d``."""
    if rule.interval > 1 and rule.frequency in INTERVAL_SUFFIX:
        return f"Every {rule.interval}{INTERVAL_SUFFIX[rule.frequency]}"
    return FREQUENCY_LABELS[rule.frequency]


def preferred_time_label(rule: RecurrenceRule) -> Optional[str]:
    preferred = rule.preferred_time
    if preferred is None:
        return None
    hour = preferred.hour % 12 or 12
    suffix = "AM" if preferred.hour < 12 else "PM"
    return f"{hour}:{preferred.minute:02d} {suffix}"


def _every(rule: RecurrenceRule) -> str:
    if rule.interval == 1:
        return FREQUENCY_LABELS[rule.frequency]
    return f"Every {rule.interval} {UNIT_NAMES[rule.frequency]}"


def describe_rule(rule: RecurrenceRule) -> str:
    if rule.frequency == Frequency.CUSTOM:
        text = "Custom pattern"
    elif rule.frequency == Frequency.WEEKLY and rule.days_of_week:
        names = ", ".join(WEEKDAY_ABBR.get(day, "?") for day in sorted(rule.days_of_week))
        prefix = "Weekly on" if rule.interval == 1 else f"Every {rule.interval} weeks on"
        text = f"{prefix} {names}"
    elif rule.frequency == Frequency.MONTHLY and rule.day_of_month is not None:
        prefix = "Monthly on the" if rule.interval == 1 else f"Every {rule.interval} months on the"
        text = f"{prefix} {ordinal(rule.day_of_month)}"
    else:
        text = _every(rule)

    time_label = preferred_time_label(rule)
    if time_label:
        text += f" at {time_label}"
    if rule.repeat_mode == RepeatMode.FROM_COMPLETION_DATE:
        text += " after completion"
    return text


def format_next_occurrence(next_date: Optional[Moment], reference: datetime) -> str:
    if next_date is None:
        return "Does not repeat"
    next_day = next_date.date() if isinstance(next_date, datetime) else next_date
    today = reference.date()
    if next_day == today:
        return "Today"
    if next_day == today + timedelta(days=1):
        return "Tomorrow"
    if isinstance(next_date, datetime):
        return f"In {naturaldelta(next_date - reference)}"
    return f"In {naturaldelta(next_day - today)}"


def format_due_day(value: date, reference: date) -> str:
    if value == reference:
        return "Today"
    if value == reference + timedelta(days=1):
        return "Tomorrow"
    if value.year == reference.year:
        return f"{value:%b} {value.day}"
    return f"{value:%b} {value.day}, {value.year}"
