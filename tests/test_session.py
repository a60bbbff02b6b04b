"""LedgerSession lifecycle and cache refresh behavior."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlmodel import select

from ledgerkeep.errors import InsufficientFundsError, SyncError
from ledgerkeep.models import SyncEvent
from ledgerkeep.services.ledger_service import TransactionInput
from ledgerkeep.services.recurring import RecurringInput
from ledgerkeep.services.sync import SyncDispatcher
from ledgerkeep.session import build_session, open_ledger


def _salary(account_id: int) -> RecurringInput:
    return RecurringInput(
        account_id=account_id,
        txn_type="income",
        amount="500",
        category="Salary",
        description="Salary",
        frequency="monthly",
        start_date=date(2024, 1, 15),
    )


class RecordingTarget:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.payloads: list[dict] = []

    def send(self, payload):
        if self.fail:
            raise SyncError("target offline")
        self.payloads.append(payload)


def test_start_runs_recurrence_once(ledger, seed_accounts):
    ledger.create_recurring(_salary(seed_accounts["savings"].id))

    first = ledger.start()
    second = ledger.start()

    assert first is not None
    assert len(first.created) == 3
    assert second is None
    assert len(ledger.transactions) == 3
    assert ledger.account(seed_accounts["savings"].id).balance == Decimal("1750.00")


def test_concurrent_pass_is_skipped(ledger, seed_accounts):
    ledger.create_recurring(_salary(seed_accounts["savings"].id))

    ledger._recurrence_lock.acquire()
    try:
        assert ledger.process_recurring() is None
    finally:
        ledger._recurrence_lock.release()

    assert ledger.transactions == []
    assert ledger.process_recurring() is not None
    assert len(ledger.transactions) == 3


def test_mutations_refresh_cached_lists(ledger, seed_accounts):
    ledger.refresh()
    checking = seed_accounts["checking"]

    txn = ledger.add_transaction(
        TransactionInput(
            account_id=checking.id,
            txn_type="expense",
            amount="25",
            category="Food & Dining",
            description="Pizza",
            occurred_on=date(2024, 3, 30),
        )
    )
    assert [t.id for t in ledger.transactions] == [txn.id]
    assert ledger.account(checking.id).balance == Decimal("975.00")

    ledger.delete_transaction(txn.id)
    assert ledger.transactions == []
    assert ledger.account(checking.id).balance == Decimal("1000.00")


def test_transfer_through_session(ledger, seed_accounts):
    checking, savings = seed_accounts["checking"], seed_accounts["savings"]

    result = ledger.transfer(checking.id, savings.id, "100")

    assert ledger.account(checking.id).balance == result.from_balance == Decimal("900.00")
    assert ledger.account(savings.id).balance == result.to_balance == Decimal("350.00")
    assert ledger.total_balance() == Decimal("1250.00")

    with pytest.raises(InsufficientFundsError):
        ledger.transfer(savings.id, checking.id, "5000")
    assert len(ledger.transactions) == 2


def test_account_helpers(ledger, seed_accounts):
    ledger.refresh()

    assert ledger.account_by_name("  savings account ").id == seed_accounts["savings"].id
    assert ledger.account_by_name("missing") is None

    created = ledger.create_account("Wallet", "cash", "20")
    assert created.currency == "INR"
    assert ledger.account_by_name("Wallet").balance == Decimal("20.00")

    ledger.update_account(created.id, name="Pocket")
    assert ledger.account(created.id).name == "Pocket"

    ledger.delete_account(created.id)
    assert ledger.account(created.id) is None


def test_recurring_wrappers_refresh(ledger, seed_accounts):
    outgoing, incoming = ledger.create_recurring_transfer(
        from_account_id=seed_accounts["checking"].id,
        to_account_id=seed_accounts["savings"].id,
        amount="10",
        frequency="weekly",
        start_date=date(2024, 3, 1),
    )
    assert len(ledger.recurring) == 2

    ledger.toggle_recurring(outgoing.id, False)
    assert all(not item.is_active for item in ledger.recurring)

    ledger.update_recurring(incoming.id, amount="12")
    assert {item.amount for item in ledger.recurring} == {Decimal("12.00")}

    ledger.delete_recurring(outgoing.id)
    assert ledger.recurring == []


def test_drain_sync_without_dispatcher(ledger):
    assert ledger.drain_sync() is None


def test_new_transactions_are_pushed(config, session_factory, user, seed_accounts):
    target = RecordingTarget()
    ledger = build_session(
        config,
        session_factory,
        user,
        dispatcher=SyncDispatcher(session_factory, target),
        today=lambda: date(2024, 4, 1),
    )

    ledger.transfer(seed_accounts["checking"].id, seed_accounts["savings"].id, "10")

    assert [p["category"] for p in target.payloads] == ["Transfer Out", "Transfer In"]


def test_sync_failure_does_not_fail_the_write(config, session_factory, user, seed_accounts):
    ledger = build_session(
        config,
        session_factory,
        user,
        dispatcher=SyncDispatcher(session_factory, RecordingTarget(fail=True)),
    )

    txn = ledger.add_transaction(
        TransactionInput(
            account_id=seed_accounts["checking"].id,
            txn_type="income",
            amount="1",
            category="Salary",
            description="Bonus",
        )
    )

    assert txn.id is not None
    assert ledger.account(seed_accounts["checking"].id).balance == Decimal("1001.00")


def test_open_ledger_bootstraps_defaults(config):
    ledger = open_ledger(config, username="alice")
    try:
        assert ledger.user.username == "alice"
        assert ledger.started is True
        assert [a.name for a in ledger.accounts] == ["Main Checking", "Savings Account", "Credit Card"]
        names = {c.name for c in ledger.category_repo.list_all(user_id=ledger.user_id)}
        assert {"Food & Dining", "Salary"} <= names
    finally:
        ledger.close()

    again = open_ledger(config, username="alice", start=False)
    assert again.user.id == ledger.user.id
    assert len(again.accounts) == 3
    assert again.started is False


def test_ledger_without_sync_url_keeps_outbox_empty(config):
    ledger = open_ledger(config, start=False)
    try:
        checking = ledger.account_by_name("Main Checking")
        ledger.add_transaction(
            TransactionInput(
                account_id=checking.id,
                txn_type="income",
                amount="100",
                category="Salary",
                description="Pay",
            )
        )

        with ledger.session_factory() as session:
            assert session.exec(select(SyncEvent)).all() == []
        assert ledger.dispatcher is None
    finally:
        ledger.close()
