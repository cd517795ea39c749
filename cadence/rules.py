from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Iterable, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .settings import get_settings

# Weekday numbers use the Sunday=1 convention.
SUNDAY = 1
MONDAY = 2
TUESDAY = 3
WEDNESDAY = 4
THURSDAY = 5
FRIDAY = 6
SATURDAY = 7

WEEKDAYS = frozenset({MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY})
WEEKENDS = frozenset({SATURDAY, SUNDAY})

EndDate = Union[datetime, date]


class RecurrenceError(ValueError):
    pass


class Frequency(str, enum.Enum):
    MINUTELY = "minutely"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


class RepeatMode(str, enum.Enum):
    FROM_ORIGINAL_DATE = "from_original"
    FROM_COMPLETION_DATE = "from_completion"


def weekday_number(value: date) -> int:
    """Weekday of ``value`` as 1..7 with Sunday=1."""
    return value.isoweekday() % 7 + 1


def parse_time(value: str | None) -> Optional[Tuple[int, int]]:
    if not value:
        return None
    parts = value.split(":")
    if len(parts) != 2:
        return None
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return hour, minute


def lookup_zone(identifier: str | None) -> Optional[ZoneInfo]:
    """IANA zone for ``identifier``, or None when it does not name a zone."""
    try:
        return ZoneInfo(identifier)
    # Folder names such as "America" surface as IsADirectoryError.
    except (ZoneInfoNotFoundError, ValueError, TypeError, OSError):
        return None


def _default_timezone() -> str:
    return get_settings().timezone


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class RecurrenceRule:
    """Declarative recurrence configuration.

    A rule is a plain value: it never caches computed occurrences and is
    replaced wholesale on edit (``dataclasses.replace``). Structurally
    invalid rules can be constructed; ``is_valid`` flags them.
    """

    frequency: Frequency
    interval: int = 1
    days_of_week: Optional[frozenset] = None
    day_of_month: Optional[int] = None
    end_date: Optional[EndDate] = None
    max_occurrences: Optional[int] = None
    repeat_mode: RepeatMode = RepeatMode.FROM_ORIGINAL_DATE
    time_zone_identifier: str = field(default_factory=_default_timezone)
    recreate_if_incomplete: bool = True
    preferred_time_hour: Optional[int] = None
    preferred_time_minute: Optional[int] = None
    id: str = field(default_factory=_new_id, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "frequency", Frequency(self.frequency))
        object.__setattr__(self, "repeat_mode", RepeatMode(self.repeat_mode))
        object.__setattr__(self, "interval", max(1, self.interval or 1))
        if self.days_of_week is not None:
            object.__setattr__(self, "days_of_week", frozenset(self.days_of_week))

    # -- factories -------------------------------------------------------

    @classmethod
    def _build(cls, frequency: Frequency, time_of_day: str | None = None, **kwargs) -> "RecurrenceRule":
        parsed = parse_time(time_of_day)
        if parsed is not None:
            kwargs["preferred_time_hour"], kwargs["preferred_time_minute"] = parsed
        return cls(frequency=frequency, **kwargs)

    @classmethod
    def minutely(cls, interval: int = 1, end_date: EndDate | None = None, **kwargs) -> "RecurrenceRule":
        return cls._build(Frequency.MINUTELY, interval=interval, end_date=end_date, **kwargs)

    @classmethod
    def hourly(cls, interval: int = 1, end_date: EndDate | None = None, **kwargs) -> "RecurrenceRule":
        return cls._build(Frequency.HOURLY, interval=interval, end_date=end_date, **kwargs)

    @classmethod
    def daily(
        cls, interval: int = 1, end_date: EndDate | None = None, time: str | None = None, **kwargs
    ) -> "RecurrenceRule":
        return cls._build(Frequency.DAILY, time, interval=interval, end_date=end_date, **kwargs)

    @classmethod
    def weekly(
        cls,
        days_of_week: Iterable[int] | None = None,
        interval: int = 1,
        end_date: EndDate | None = None,
        time: str | None = None,
        **kwargs,
    ) -> "RecurrenceRule":
        days = frozenset(days_of_week) if days_of_week is not None else None
        return cls._build(
            Frequency.WEEKLY, time, days_of_week=days, interval=interval, end_date=end_date, **kwargs
        )

    @classmethod
    def monthly(
        cls,
        day_of_month: int | None = None,
        interval: int = 1,
        end_date: EndDate | None = None,
        time: str | None = None,
        **kwargs,
    ) -> "RecurrenceRule":
        return cls._build(
            Frequency.MONTHLY, time, day_of_month=day_of_month, interval=interval, end_date=end_date, **kwargs
        )

    @classmethod
    def yearly(
        cls,
        interval: int = 1,
        end_date: EndDate | None = None,
        time: str | None = None,
        day_of_month: int | None = None,
        **kwargs,
    ) -> "RecurrenceRule":
        return cls._build(
            Frequency.YEARLY, time, day_of_month=day_of_month, interval=interval, end_date=end_date, **kwargs
        )

    # -- derived ---------------------------------------------------------

    @property
    def preferred_time(self) -> Optional[time]:
        if self.preferred_time_hour is None or self.preferred_time_minute is None:
            return None
        if not (0 <= self.preferred_time_hour <= 23 and 0 <= self.preferred_time_minute <= 59):
            return None
        return time(self.preferred_time_hour, self.preferred_time_minute)

    @property
    def has_preferred_time(self) -> bool:
        return self.preferred_time is not None

    @property
    def has_weekday_modifier(self) -> bool:
        return self.frequency == Frequency.WEEKLY and bool(self.days_of_week)

    @property
    def is_valid(self) -> bool:
        if self.interval < 1:
            return False
        if self.frequency == Frequency.WEEKLY and self.days_of_week is not None:
            return bool(self.days_of_week) and all(1 <= day <= 7 for day in self.days_of_week)
        if self.frequency == Frequency.MONTHLY and self.day_of_month is not None:
            return 1 <= self.day_of_month <= 31
        return True

    def validate(self) -> List[str]:
        """Return every configuration problem, including ones ``is_valid`` tolerates."""
        problems: List[str] = []
        if self.interval < 1:
            problems.append("interval must be at least 1")
        if self.days_of_week is not None:
            if not self.days_of_week:
                problems.append("days_of_week must not be empty")
            elif not all(1 <= day <= 7 for day in self.days_of_week):
                problems.append("days_of_week values must be between 1 (Sunday) and 7 (Saturday)")
        if self.day_of_month is not None and not 1 <= self.day_of_month <= 31:
            problems.append("day_of_month must be between 1 and 31")
        if self.max_occurrences is not None and self.max_occurrences < 1:
            problems.append("max_occurrences must be at least 1")
        hour, minute = self.preferred_time_hour, self.preferred_time_minute
        if (hour is None) != (minute is None):
            problems.append("preferred time needs both hour and minute")
        elif hour is not None and self.preferred_time is None:
            problems.append("preferred time is out of range")
        if lookup_zone(self.time_zone_identifier) is None:
            problems.append(f"unknown time zone {self.time_zone_identifier!r}")
        return problems


def common_patterns() -> List[RecurrenceRule]:
    return [
        RecurrenceRule.daily(),
        RecurrenceRule.weekly(days_of_week=WEEKDAYS),
        RecurrenceRule.weekly(days_of_week=WEEKENDS),
        RecurrenceRule.monthly(day_of_month=1),
        RecurrenceRule.yearly(),
    ]
