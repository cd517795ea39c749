"""Owner entities that carry a recurrence rule.

Datetimes on these rows are naive wall-clock times in the zone named by
the row's rule (or the configured default zone when there is no rule),
which is also how the recurrence engine reads naive values.
"""
from __future__ import annotations

import enum
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from .db import Base
from .rules import RecurrenceRule
from .schemas import rule_from_record, rule_to_record


def local_now() -> datetime:
    return datetime.now()


class RecurrenceRuleType(TypeDecorator):
    """Stores a ``RecurrenceRule`` as its JSON serialization record."""

    impl = JSON
    cache_ok = True

    def process_bind_param(self, value: Optional[RecurrenceRule], dialect):
        if value is None:
            return None
        return rule_to_record(value).as_dict()

    def process_result_value(self, value, dialect) -> Optional[RecurrenceRule]:
        if value is None:
            return None
        return rule_from_record(value)


class Priority(str, enum.Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SkipReason(str, enum.Enum):
    VACATION = "vacation"
    SICK = "sick"
    EMERGENCY = "emergency"
    NO_TIME = "no_time"
    FORGOT_TO = "forgot_to"
    NOT_MOTIVATED = "not_motivated"
    OTHER = "other"

    @property
    def preserves_streak(self) -> bool:
        return self in (SkipReason.VACATION, SkipReason.SICK, SkipReason.EMERGENCY)


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_due_completed", "due_at", "completed"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    priority: Mapped[Priority] = mapped_column(Enum(Priority), default=Priority.NONE)
    due_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=local_now)
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    recurrence_rule: Mapped[Optional[RecurrenceRule]] = mapped_column(RecurrenceRuleType, nullable=True)
    occurrence_index: Mapped[int] = mapped_column(Integer, default=1)
    reminder_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    alert_hour: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    alert_minute: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    snoozed_until: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    notification_fired: Mapped[bool] = mapped_column(Boolean, default=False)


class Habit(Base):
    __tablename__ = "habits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=local_now)
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    last_completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    recurrence_rule: Mapped[Optional[RecurrenceRule]] = mapped_column(RecurrenceRuleType, nullable=True)
    alert_hour: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    alert_minute: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    completions: Mapped[List["HabitCompletion"]] = relationship(
        "HabitCompletion", back_populates="habit", cascade="all, delete-orphan"
    )
    skips: Mapped[List["HabitSkip"]] = relationship("HabitSkip", back_populates="habit", cascade="all, delete-orphan")


class HabitCompletion(Base):
    __tablename__ = "habit_completions"
    __table_args__ = (
        Index("ix_habit_completion_time", "habit_id", "completed_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    habit_id: Mapped[int] = mapped_column(ForeignKey("habits.id"), index=True)
    completed_at: Mapped[datetime] = mapped_column(DateTime, default=local_now)
    notes: Mapped[str] = mapped_column(Text, default="")
    streak_after: Mapped[int] = mapped_column(Integer, default=0)

    habit: Mapped["Habit"] = relationship("Habit", back_populates="completions")


class HabitSkip(Base):
    __tablename__ = "habit_skips"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    habit_id: Mapped[int] = mapped_column(ForeignKey("habits.id"), index=True)
    skipped_at: Mapped[datetime] = mapped_column(DateTime, default=local_now)
    reason: Mapped[SkipReason] = mapped_column(Enum(SkipReason), default=SkipReason.OTHER)
    notes: Mapped[str] = mapped_column(Text, default="")

    habit: Mapped["Habit"] = relationship("Habit", back_populates="skips")


class PendingRecurrence(Base):
    """A recurring task instance waiting to be materialized at ``scheduled_at``.

    Task fields are copied so the instance can be created even if the
    source task has been deleted in the meantime.
    """

    __tablename__ = "pending_recurrences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime, index=True)
    source_task_id: Mapped[int] = mapped_column(Integer, index=True)
    task_title: Mapped[str] = mapped_column(String(255))
    task_description: Mapped[str] = mapped_column(Text, default="")
    task_priority: Mapped[Priority] = mapped_column(Enum(Priority), default=Priority.NONE)
    recurrence_rule: Mapped[Optional[RecurrenceRule]] = mapped_column(RecurrenceRuleType, nullable=True)
    occurrence_index: Mapped[int] = mapped_column(Integer, default=1)
    alert_hour: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    alert_minute: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=local_now)
