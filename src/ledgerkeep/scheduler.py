"""Background task scheduler for periodic ledger work."""

from __future__ import annotations

from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler as APScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .errors import LedgerError
from .logging_config import get_logger

if TYPE_CHECKING:
    from .session import LedgerSession

logger = get_logger("scheduler")

RECURRENCE_JOB_ID = "recurrence_pass"
SYNC_JOB_ID = "sync_drain"


class BackgroundScheduler:
    """Runs the recurrence pass and the sync outbox drain on an interval."""

    def __init__(self, ledger: LedgerSession, *, interval_minutes: int | None = None):
        """Initialize the scheduler with a ledger session.

        Args:
            ledger: Open ledger session whose jobs should run
            interval_minutes: Job interval; defaults to the configured value
        """
        self.ledger = ledger
        self.interval_minutes = interval_minutes or ledger.config.SCHEDULER_INTERVAL_MINUTES
        self.scheduler: APScheduler | None = None

    @property
    def running(self) -> bool:
        return self.scheduler is not None

    def start(self) -> None:
        """Start the background scheduler."""
        if self.scheduler is not None:
            logger.warning("Scheduler already running")
            return

        self.scheduler = APScheduler()
        self.scheduler.add_job(
            func=self._run_recurrence,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=RECURRENCE_JOB_ID,
            name="Recurring Transactions",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if self.ledger.dispatcher is not None:
            self.scheduler.add_job(
                func=self._run_sync,
                trigger=IntervalTrigger(minutes=self.interval_minutes),
                id=SYNC_JOB_ID,
                name="Sync Outbox Drain",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        self.scheduler.start()
        logger.info(
            "Background scheduler started", extra={"interval_minutes": self.interval_minutes}
        )

    def stop(self) -> None:
        """Stop the background scheduler gracefully."""
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=True)
            self.scheduler = None
            logger.info("Background scheduler stopped")

    def _run_recurrence(self) -> None:
        try:
            result = self.ledger.process_recurring()
        except LedgerError:
            logger.exception("Scheduled recurrence pass failed")
            return
        if result is not None and result.created:
            logger.info(
                "Scheduled recurrence pass created transactions",
                extra={"created_count": len(result.created)},
            )

    def _run_sync(self) -> None:
        self.ledger.drain_sync()


def create_scheduler(ledger: LedgerSession, *, auto_start: bool = False) -> BackgroundScheduler:
    """Create and optionally start a background scheduler.

    Args:
        ledger: Open ledger session
        auto_start: Whether to start the scheduler immediately

    Returns:
        BackgroundScheduler instance
    """
    scheduler = BackgroundScheduler(ledger)
    if auto_start:
        scheduler.start()
    return scheduler
