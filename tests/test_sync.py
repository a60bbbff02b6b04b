"""Outbox sync: enqueue with the write, deliver at least once, record failures."""

from __future__ import annotations

import json
from datetime import timedelta
from decimal import Decimal

import httpx
import pytest
from sqlmodel import select

from ledgerkeep.errors import SyncError
from ledgerkeep.infra.database import create_session_factory
from ledgerkeep.models import SyncEvent
from ledgerkeep.services import ledger_service
from ledgerkeep.services.ledger_service import TransactionInput
from ledgerkeep.services.sync import SyncDispatcher, WebhookSyncTarget


def _events(session_factory) -> list[SyncEvent]:
    with session_factory() as session:
        rows = list(session.exec(select(SyncEvent).order_by(SyncEvent.id)).all())
        session.expunge_all()
        return rows


def _webhook(handler) -> WebhookSyncTarget:
    return WebhookSyncTarget(
        "https://sync.example.test/hook", client=httpx.Client(transport=httpx.MockTransport(handler))
    )


def test_drain_delivers_pending_events(seed_accounts, transaction_factory, session_factory, user):
    txn = transaction_factory(seed_accounts["checking"].id, amount="19.99", description="Books")
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True})

    result = SyncDispatcher(session_factory, _webhook(handler)).drain(user_id=user.id)

    assert result.delivered == 1
    assert received == [
        {
            "transaction": {
                "id": txn.id,
                "type": "expense",
                "description": "Books",
                "amount": "19.99",
                "category": "Food & Dining",
                "date": "2024-03-10",
                "time": txn.occurred_time.strftime("%H:%M"),
                "account_id": seed_accounts["checking"].id,
                "created_at": received[0]["transaction"]["created_at"],
            }
        }
    ]
    (event,) = _events(session_factory)
    assert event.status == "delivered"
    assert event.attempts == 1
    assert event.delivered_at is not None


def test_delivered_events_are_not_resent(seed_accounts, transaction_factory, session_factory, user):
    transaction_factory(seed_accounts["checking"].id)
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(204)

    dispatcher = SyncDispatcher(session_factory, _webhook(handler))
    dispatcher.drain(user_id=user.id)
    second = dispatcher.drain(user_id=user.id)

    assert second.delivered == 0
    assert len(calls) == 1


def test_failed_delivery_is_retried_then_marked_failed(seed_accounts, transaction_factory, session_factory, user):
    transaction_factory(seed_accounts["checking"].id)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    dispatcher = SyncDispatcher(session_factory, _webhook(handler), max_attempts=2)

    first = dispatcher.drain(user_id=user.id)
    assert (first.delivered, first.retried, first.failed) == (0, 1, 0)
    assert _events(session_factory)[0].status == "pending"

    second = dispatcher.drain(user_id=user.id)
    assert (second.retried, second.failed) == (0, 1)
    (event,) = _events(session_factory)
    assert event.status == "failed"
    assert event.attempts == 2
    assert "503" in event.last_error

    assert dispatcher.drain(user_id=user.id).failed == 0


def test_network_error_becomes_sync_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(SyncError):
        _webhook(handler).send({"id": 1})


def test_event_survives_transaction_delete(seed_accounts, transaction_factory, session_factory, user):
    txn = transaction_factory(seed_accounts["checking"].id)
    ledger_service.delete_transaction(session_factory, txn.id, user_id=user.id)

    assert [e.transaction_id for e in _events(session_factory)] == [txn.id]


def test_no_target_is_a_no_op(seed_accounts, transaction_factory, session_factory, user):
    transaction_factory(seed_accounts["checking"].id)

    result = SyncDispatcher(session_factory, None).drain(user_id=user.id)

    assert result.delivered == 0
    assert _events(session_factory)[0].status == "pending"


def test_delivered_events_are_pruned_after_retention(seed_accounts, transaction_factory, session_factory, user):
    transaction_factory(seed_accounts["checking"].id)
    keep = SyncDispatcher(session_factory, _webhook(lambda request: httpx.Response(200)))

    assert keep.drain(user_id=user.id).pruned == 0
    assert _events(session_factory)[0].status == "delivered"

    transaction_factory(seed_accounts["checking"].id, description="Second")
    prune = SyncDispatcher(
        session_factory, _webhook(lambda request: httpx.Response(200)), delivered_retention=timedelta(0)
    )
    result = prune.drain(user_id=user.id)

    assert (result.delivered, result.pruned) == (1, 2)
    assert _events(session_factory) == []


def test_disabled_sync_skips_the_outbox(db_engine, seed_accounts, user, balance_of):
    factory = create_session_factory(db_engine, sync_enabled=False)

    ledger_service.add_transaction(
        factory,
        TransactionInput(
            account_id=seed_accounts["checking"].id,
            txn_type="expense",
            amount="5",
            category="Food & Dining",
            description="Tea",
        ),
        user_id=user.id,
    )

    assert balance_of(seed_accounts["checking"].id) == Decimal("995.00")
    assert _events(factory) == []
