"""Background scheduler wiring."""

from __future__ import annotations

from datetime import date

import pytest

from ledgerkeep.errors import PersistenceError
from ledgerkeep.scheduler import RECURRENCE_JOB_ID, SYNC_JOB_ID, BackgroundScheduler, create_scheduler
from ledgerkeep.services.recurring import RecurringInput
from ledgerkeep.services.sync import SyncDispatcher


@pytest.fixture
def scheduler(ledger):
    sched = BackgroundScheduler(ledger, interval_minutes=5)
    yield sched
    sched.stop()


def test_start_registers_recurrence_job(scheduler):
    scheduler.start()

    assert scheduler.running
    assert scheduler.scheduler.get_job(RECURRENCE_JOB_ID) is not None
    assert scheduler.scheduler.get_job(SYNC_JOB_ID) is None


def test_start_twice_is_harmless(scheduler):
    scheduler.start()
    first = scheduler.scheduler
    scheduler.start()

    assert scheduler.scheduler is first


def test_sync_job_added_with_dispatcher(ledger, session_factory):
    ledger.dispatcher = SyncDispatcher(session_factory, None)
    sched = BackgroundScheduler(ledger)
    try:
        sched.start()
        assert sched.scheduler.get_job(SYNC_JOB_ID) is not None
        assert sched.interval_minutes == ledger.config.SCHEDULER_INTERVAL_MINUTES
    finally:
        sched.stop()
    assert not sched.running


def test_recurrence_job_processes_due_entries(scheduler, ledger, seed_accounts):
    ledger.create_recurring(
        RecurringInput(
            account_id=seed_accounts["checking"].id,
            txn_type="expense",
            amount="10",
            category="Subscriptions",
            description="Streaming",
            frequency="monthly",
            start_date=date(2024, 2, 1),
        )
    )

    scheduler._run_recurrence()

    assert len(ledger.transactions) == 3


def test_recurrence_job_swallows_ledger_errors(scheduler, ledger, monkeypatch):
    def boom(*args, **kwargs):
        raise PersistenceError("disk full")

    monkeypatch.setattr(ledger, "process_recurring", boom)

    scheduler._run_recurrence()


def test_create_scheduler(ledger):
    sched = create_scheduler(ledger)
    assert not sched.running

    started = create_scheduler(ledger, auto_start=True)
    try:
        assert started.running
    finally:
        started.stop()
