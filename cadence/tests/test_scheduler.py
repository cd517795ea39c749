import logging
from contextlib import contextmanager
from datetime import datetime

import pytest

from cadence.app import build_scheduler
from cadence.jobs.scheduler import Scheduler
from cadence.models import PendingRecurrence
from cadence.rules import RecurrenceRule
from cadence.settings import Settings, get_settings


def session_factory_for(session):
    @contextmanager
    def factory():
        yield session

    return factory


def test_run_creates_tasks_from_ready_pending(session):
    scheduler = Scheduler("UTC", session_factory=session_factory_for(session))
    session.add(
        PendingRecurrence(
            scheduled_at=datetime(2020, 1, 1, 9, 0),
            source_task_id=1,
            task_title="Pay rent",
            recurrence_rule=RecurrenceRule.monthly(day_of_month=1, time_zone_identifier="UTC"),
            occurrence_index=2,
        )
    )
    session.flush()

    created = scheduler.run_pending_recurrences()

    assert [task.title for task in created] == ["Pay rent"]
    assert created[0].due_at == datetime(2020, 1, 1, 9, 0)
    assert scheduler.run_pending_recurrences() == []


def test_run_reraises_failures(caplog):
    @contextmanager
    def broken():
        raise RuntimeError("database unavailable")
        yield

    scheduler = Scheduler("UTC", session_factory=broken)
    with caplog.at_level(logging.DEBUG, logger="cadence.jobs.scheduler"):
        with pytest.raises(RuntimeError):
            scheduler.run_pending_recurrences()
    # left to the job runner to report
    assert caplog.records == []


def test_build_scheduler_registers_pending_job():
    scheduler = build_scheduler(Settings(timezone="Europe/Zurich", pending_interval_minutes=5))
    jobs = scheduler.scheduler.get_jobs()
    assert [job.id for job in jobs] == ["pending_recurrences"]
    assert jobs[0].trigger.interval.total_seconds() == 300


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("CADENCE_PENDING_INTERVAL_MINUTES", "0")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    settings = get_settings()
    assert settings.pending_interval_minutes == 1
    assert settings.log_level == "DEBUG"

    monkeypatch.setenv("CADENCE_PENDING_INTERVAL_MINUTES", "soon")
    with pytest.raises(RuntimeError):
        get_settings()
