"""Outbound sync of new transactions through a transactional outbox.

New transactions enqueue a ``SyncEvent`` in the same database transaction that
writes them. ``SyncDispatcher.drain`` later pushes pending events to a
``SyncTarget``; an event is marked delivered only after the target accepts it,
so delivery is at-least-once. Target failures are recorded on the event and
logged, never raised to the caller. Delivered events are pruned once they are
older than the dispatcher's retention window, and sessions opened with sync
disabled skip the outbox altogether.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Protocol

import httpx
from sqlalchemy import delete
from sqlmodel import Session, col, select

from ..errors import SyncError
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models.sync import SYNC_DELIVERED, SYNC_FAILED, SYNC_PENDING, SyncEvent
from ..models.transaction import Transaction

logger = get_logger("sync")


def transaction_payload(txn: Transaction) -> dict[str, Any]:
    """Row shape pushed to the sync target."""

    return {
        "id": txn.id,
        "type": txn.txn_type,
        "description": txn.description,
        "amount": str(txn.amount),
        "category": txn.category,
        "date": txn.occurred_on.isoformat(),
        "time": txn.occurred_time.strftime("%H:%M"),
        "account_id": txn.account_id,
        "created_at": txn.created_at.isoformat() if txn.created_at else None,
    }


def enqueue(session: Session, txn: Transaction) -> Optional[SyncEvent]:
    """Add an outbox row for ``txn`` to the caller's transaction.

    ``txn`` must already be flushed so that it has an id. Nothing is written
    when the session was opened with sync disabled.
    """

    if not session.info.get("sync_enabled", True):
        return None
    if txn.id is None:
        raise ValueError("Transaction must be flushed before it can be enqueued for sync")
    event = SyncEvent(
        user_id=txn.user_id,
        transaction_id=txn.id,
        payload=json.dumps(transaction_payload(txn)),
    )
    session.add(event)
    return event


class SyncTarget(Protocol):
    """Receiver of serialized transactions."""

    def send(self, payload: dict[str, Any]) -> None:  # pragma: no cover - interface
        """Deliver one payload or raise ``SyncError``."""
        ...


class WebhookSyncTarget:
    """POST each transaction as ``{"transaction": {...}}`` JSON to a URL."""

    def __init__(self, url: str, *, timeout: float = 10.0, client: httpx.Client | None = None):
        self.url = url
        self._client = client or httpx.Client(timeout=timeout)

    def send(self, payload: dict[str, Any]) -> None:
        try:
            response = self._client.post(self.url, json={"transaction": payload})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise SyncError(f"Webhook delivery failed: {exc}") from exc

    def close(self) -> None:
        self._client.close()


@dataclass
class DrainResult:
    """Outcome counts of one outbox drain."""

    delivered: int = 0
    retried: int = 0
    failed: int = 0
    pruned: int = 0
    errors: list[str] = field(default_factory=list)


class SyncDispatcher:
    """Push pending outbox events to a target."""

    def __init__(
        self,
        session_factory: SessionFactory,
        target: Optional[SyncTarget],
        *,
        max_attempts: int = 5,
        delivered_retention: timedelta = timedelta(days=7),
    ):
        self.session_factory = session_factory
        self.target = target
        self.max_attempts = max(1, max_attempts)
        self.delivered_retention = delivered_retention

    def pending(self, *, user_id: int, limit: int = 100) -> list[SyncEvent]:
        with self.session_factory() as session:
            rows = list(
                session.exec(
                    select(SyncEvent)
                    .where(SyncEvent.user_id == user_id, SyncEvent.status == SYNC_PENDING)
                    .order_by(SyncEvent.id)  # type: ignore
                    .limit(limit)
                ).all()
            )
            session.expunge_all()
            return rows

    def drain(self, *, user_id: int, limit: int = 100) -> DrainResult:
        """Attempt delivery of up to ``limit`` pending events, oldest first."""

        result = DrainResult()
        if self.target is None:
            return result

        for event in self.pending(user_id=user_id, limit=limit):
            try:
                self.target.send(json.loads(event.payload))
            except SyncError as exc:
                self._record_failure(event, str(exc), result)
                continue
            self._mark_delivered(event)
            result.delivered += 1

        result.pruned = self.prune_delivered(user_id=user_id)

        if result.delivered or result.retried or result.failed or result.pruned:
            logger.info(
                "Sync drain finished",
                extra={
                    "delivered": result.delivered,
                    "retried": result.retried,
                    "failed": result.failed,
                    "pruned": result.pruned,
                },
            )
        return result

    def prune_delivered(self, *, user_id: int) -> int:
        """Delete delivered events older than the retention window."""

        cutoff = datetime.now(timezone.utc) - self.delivered_retention
        with self.session_factory() as session:
            outcome = session.execute(
                delete(SyncEvent).where(
                    col(SyncEvent.user_id) == user_id,
                    col(SyncEvent.status) == SYNC_DELIVERED,
                    col(SyncEvent.delivered_at) <= cutoff,
                )
            )
            return outcome.rowcount or 0

    def _mark_delivered(self, event: SyncEvent) -> None:
        with self.session_factory() as session:
            row = session.get(SyncEvent, event.id)
            if row is None:
                return
            row.status = SYNC_DELIVERED
            row.attempts += 1
            row.delivered_at = datetime.now(timezone.utc)
            row.last_error = None
            session.add(row)

    def _record_failure(self, event: SyncEvent, message: str, result: DrainResult) -> None:
        with self.session_factory() as session:
            row = session.get(SyncEvent, event.id)
            if row is None:
                return
            row.attempts += 1
            row.last_error = message[:255]
            if row.attempts >= self.max_attempts:
                row.status = SYNC_FAILED
                result.failed += 1
            else:
                result.retried += 1
            session.add(row)
        result.errors.append(message)
        logger.warning(
            "Sync delivery failed",
            extra={"event_id": event.id, "transaction_id": event.transaction_id, "error": message},
        )
