from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, List, Mapping, Optional

from dateutil.parser import isoparse

from .rules import EndDate, Frequency, RecurrenceError, RecurrenceRule, RepeatMode
from .settings import get_settings


@dataclass
class RecurrenceRecord:
    frequency: str
    interval: int
    days_of_week: Optional[List[int]]
    day_of_month: Optional[int]
    end_date: Optional[str]
    repeat_mode: str
    time_zone_identifier: str
    id: Optional[str] = None
    max_occurrences: Optional[int] = None
    recreate_if_incomplete: bool = True
    preferred_time_hour: Optional[int] = None
    preferred_time_minute: Optional[int] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RecurrenceRecord":
        if "frequency" not in data:
            raise RecurrenceError("recurrence record is missing 'frequency'")
        known = {item.name for item in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        values.setdefault("interval", 1)
        values.setdefault("days_of_week", None)
        values.setdefault("day_of_month", None)
        values.setdefault("end_date", None)
        values.setdefault("repeat_mode", RepeatMode.FROM_ORIGINAL_DATE.value)
        values.setdefault("time_zone_identifier", get_settings().timezone)
        return cls(**values)


def _encode_end_date(value: EndDate | None) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def _decode_end_date(value: str | None) -> Optional[EndDate]:
    if not value:
        return None
    try:
        parsed = isoparse(value)
    except ValueError as exc:
        raise RecurrenceError(f"invalid end date {value!r}") from exc
    # Date-only strings round-trip back to a bare date.
    if len(value) == 10:
        return parsed.date()
    return parsed


def rule_to_record(rule: RecurrenceRule) -> RecurrenceRecord:
    return RecurrenceRecord(
        frequency=rule.frequency.value,
        interval=rule.interval,
        days_of_week=sorted(rule.days_of_week) if rule.days_of_week is not None else None,
        day_of_month=rule.day_of_month,
        end_date=_encode_end_date(rule.end_date),
        repeat_mode=rule.repeat_mode.value,
        time_zone_identifier=rule.time_zone_identifier,
        id=rule.id,
        max_occurrences=rule.max_occurrences,
        recreate_if_incomplete=rule.recreate_if_incomplete,
        preferred_time_hour=rule.preferred_time_hour,
        preferred_time_minute=rule.preferred_time_minute,
    )


def rule_from_record(record: RecurrenceRecord | Mapping[str, Any]) -> RecurrenceRule:
    if not isinstance(record, RecurrenceRecord):
        record = RecurrenceRecord.from_dict(record)
    try:
        frequency = Frequency(record.frequency)
        repeat_mode = RepeatMode(record.repeat_mode)
    except ValueError as exc:
        raise RecurrenceError(str(exc)) from exc
    extra = {"id": record.id} if record.id else {}
    return RecurrenceRule(
        frequency=frequency,
        interval=record.interval,
        days_of_week=frozenset(record.days_of_week) if record.days_of_week is not None else None,
        day_of_month=record.day_of_month,
        end_date=_decode_end_date(record.end_date),
        max_occurrences=record.max_occurrences,
        repeat_mode=repeat_mode,
        time_zone_identifier=record.time_zone_identifier,
        recreate_if_incomplete=record.recreate_if_incomplete,
        preferred_time_hour=record.preferred_time_hour,
        preferred_time_minute=record.preferred_time_minute,
        **extra,
    )
