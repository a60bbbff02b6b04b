"""Pytest configuration and shared fixtures for LedgerKeep tests.

This module provides database fixtures, test data factories, and helper utilities
for testing ledger logic, repositories, and services without touching the real data directory.
"""

from __future__ import annotations

import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from sqlmodel import SQLModel, create_engine

# Import all models to ensure they're registered with SQLModel metadata
from ledgerkeep import models  # noqa: F401
from ledgerkeep.config import BaseConfig
from ledgerkeep.infra.database import create_session_factory
from ledgerkeep.infra.repositories import (
    SQLModelAccountRepository,
    SQLModelBudgetRepository,
    SQLModelCategoryRepository,
    SQLModelRecurringRepository,
    SQLModelSettingsRepository,
    SQLModelTransactionRepository,
)
from ledgerkeep.models import Account, Transaction, User
from ledgerkeep.services import ledger_service
from ledgerkeep.services.ledger_service import TransactionInput
from ledgerkeep.services.users import ensure_local_user
from ledgerkeep.session import LedgerSession, build_session

# =============================================================================
# Environment
# =============================================================================


@pytest.fixture
def ledger_env(tmp_path, monkeypatch):
    """Point configuration at a throwaway data directory and database."""

    data_dir = tmp_path / "instance"
    monkeypatch.setenv("LEDGERKEEP_DATA_DIR", str(data_dir))
    monkeypatch.setenv("LEDGERKEEP_DATABASE_URL", f"sqlite:///{tmp_path / 'ledger.db'}")
    monkeypatch.setenv("LEDGERKEEP_BASE_CURRENCY", "INR")
    monkeypatch.delenv("LEDGERKEEP_SYNC_URL", raising=False)
    monkeypatch.delenv("LEDGERKEEP_RATES_URL", raising=False)
    return data_dir


@pytest.fixture
def config(ledger_env) -> BaseConfig:
    return BaseConfig()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine connected to test database
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(
        f"sqlite:///{db_path}", echo=False, connect_args={"check_same_thread": False}
    )
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory matching production: commit on clean exit, rollback on error.

    A default user is bootstrapped and exposed as ``factory.user``.
    """

    factory = create_session_factory(db_engine)
    factory.user = ensure_local_user(factory, "tester")  # type: ignore[attr-defined]
    return factory


@pytest.fixture
def user(session_factory) -> User:
    return session_factory.user


@pytest.fixture
def repos(session_factory):
    """All repositories bound to the test database."""

    class _Repos:
        accounts = SQLModelAccountRepository(session_factory)
        transactions = SQLModelTransactionRepository(session_factory)
        recurring = SQLModelRecurringRepository(session_factory)
        categories = SQLModelCategoryRepository(session_factory)
        budgets = SQLModelBudgetRepository(session_factory)
        settings = SQLModelSettingsRepository(session_factory)

    return _Repos


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def account_factory(session_factory, user):
    """Factory for creating test accounts.

    Returns:
        Callable: Function that creates and persists Account instances
    """

    def _create_account(
        name: str = "Test Account",
        balance: object = "0",
        account_type: str = "checking",
    ) -> Account:
        return ledger_service.create_account(
            session_factory,
            user_id=user.id,
            name=name,
            account_type=account_type,
            initial_balance=balance,
        )

    return _create_account


@pytest.fixture
def transaction_factory(session_factory, user):
    """Factory for recording transactions through the ledger operation."""

    def _create_transaction(
        account_id: int,
        amount: object = "100.00",
        txn_type: str = "expense",
        category: str = "Food & Dining",
        description: str = "Test transaction",
        occurred_on: date | None = None,
    ) -> Transaction:
        return ledger_service.add_transaction(
            session_factory,
            TransactionInput(
                account_id=account_id,
                txn_type=txn_type,
                amount=amount,
                category=category,
                description=description,
                occurred_on=occurred_on or date(2024, 3, 10),
            ),
            user_id=user.id,
        )

    return _create_transaction


@pytest.fixture
def balance_of(session_factory, user):
    """Read an account's stored balance straight from the database."""

    repo = SQLModelAccountRepository(session_factory)

    def _balance(account_id: int) -> Decimal:
        account = repo.get_by_id(account_id, user_id=user.id)
        assert account is not None, f"account {account_id} missing"
        return account.balance

    return _balance


@pytest.fixture
def ledger(config, session_factory, user) -> LedgerSession:
    """A ledger session pinned to 2024-04-01."""

    return build_session(config, session_factory, user, today=lambda: date(2024, 4, 1))


@pytest.fixture
def seed_accounts(account_factory):
    """Create a standard pair of accounts for testing.

    Returns:
        dict: Dictionary mapping short names to Account instances
    """
    return {
        "checking": account_factory(name="Checking Account", balance="1000.00"),
        "savings": account_factory(name="Savings Account", balance="250.00", account_type="savings"),
    }
