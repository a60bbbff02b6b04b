"""In-memory view of one user's ledger plus the operations that change it."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from .config import BaseConfig
from .domain.repositories import (
    AccountRepository,
    BudgetRepository,
    CategoryRepository,
    RecurringRepository,
    TransactionRepository,
)
from .errors import LedgerError
from .infra.database import SessionFactory, bootstrap_database
from .infra.repositories import (
    SQLModelAccountRepository,
    SQLModelBudgetRepository,
    SQLModelCategoryRepository,
    SQLModelRecurringRepository,
    SQLModelSettingsRepository,
    SQLModelTransactionRepository,
)
from .logging_config import get_logger
from .models.account import Account
from .models.recurring import RecurringTransaction
from .models.transaction import Transaction
from .models.user import User
from .services import categories as category_service
from .services import ledger_service, transfers, users
from .services import recurring as recurring_service
from .services.budgeting import BudgetStatus, check_budget_alerts, compute_budget_statuses
from .services.ledger_service import TransactionInput
from .services.recurring import ProcessResult, RecurringInput
from .services.sync import DrainResult, SyncDispatcher, WebhookSyncTarget

logger = get_logger("session")


@dataclass
class LedgerSession:
    """Cached accounts, transactions and recurring definitions for one user.

    Every mutating method writes through a service and then re-reads the
    cached lists, so the lists always mirror the store after a call returns.
    """

    config: BaseConfig
    session_factory: SessionFactory
    user: User

    account_repo: AccountRepository
    transaction_repo: TransactionRepository
    recurring_repo: RecurringRepository
    category_repo: CategoryRepository
    budget_repo: BudgetRepository
    settings_repo: SQLModelSettingsRepository

    dispatcher: Optional[SyncDispatcher] = None
    today: Callable[[], date] = date.today

    accounts: list[Account] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    recurring: list[RecurringTransaction] = field(default_factory=list)

    started: bool = False
    _recurrence_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    @property
    def user_id(self) -> int:
        if self.user.id is None:
            raise RuntimeError("Ledger user has not been persisted")
        return self.user.id

    # Lifecycle

    def refresh(self) -> None:
        uid = self.user_id
        self.accounts = self.account_repo.list_all(user_id=uid)
        self.transactions = self.transaction_repo.search(user_id=uid)
        self.recurring = self.recurring_repo.list_all(user_id=uid)

    def start(self) -> Optional[ProcessResult]:
        """Load the lists and run the recurrence pass once per session."""

        if self.started:
            return None
        self.started = True
        self.refresh()
        return self.process_recurring()

    def process_recurring(self, today: Optional[date] = None) -> Optional[ProcessResult]:
        """Materialize due occurrences. Returns None if a pass is already running."""

        if not self._recurrence_lock.acquire(blocking=False):
            logger.info("Recurrence pass already running; skipped")
            return None
        try:
            result = recurring_service.process_due(
                self.session_factory, user_id=self.user_id, today=today or self.today()
            )
        finally:
            self._recurrence_lock.release()
        if result.changed:
            self.refresh()
            self.drain_sync()
        return result

    def drain_sync(self) -> Optional[DrainResult]:
        """Push pending sync events. Never raises."""

        if self.dispatcher is None:
            return None
        try:
            return self.dispatcher.drain(user_id=self.user_id)
        except (LedgerError, SQLAlchemyError):
            logger.exception("Sync drain failed")
            return None

    def close(self) -> None:
        if self.dispatcher is not None and isinstance(self.dispatcher.target, WebhookSyncTarget):
            self.dispatcher.target.close()

    # Transactions

    def add_transaction(self, data: TransactionInput) -> Transaction:
        txn = ledger_service.add_transaction(self.session_factory, data, user_id=self.user_id)
        self.refresh()
        self.drain_sync()
        return txn

    def delete_transaction(self, transaction_id: int) -> Transaction:
        txn = ledger_service.delete_transaction(
            self.session_factory, transaction_id, user_id=self.user_id
        )
        self.refresh()
        return txn

    def transfer(
        self,
        from_account_id: int,
        to_account_id: int,
        amount: object,
        description: Optional[str] = None,
    ) -> transfers.TransferResult:
        result = transfers.transfer(
            self.session_factory,
            from_account_id,
            to_account_id,
            amount,
            description,
            user_id=self.user_id,
        )
        self.refresh()
        self.drain_sync()
        return result

    # Accounts

    def create_account(self, name: str, account_type: str = "checking", initial_balance: object = 0,
                       color: str = "") -> Account:
        account = ledger_service.create_account(
            self.session_factory,
            user_id=self.user_id,
            name=name,
            account_type=account_type,
            initial_balance=initial_balance,
            color=color,
            currency=self.config.BASE_CURRENCY,
        )
        self.refresh()
        return account

    def update_account(self, account_id: int, **changes) -> Account:
        account = ledger_service.update_account(
            self.session_factory, account_id, user_id=self.user_id, **changes
        )
        self.refresh()
        return account

    def delete_account(self, account_id: int) -> None:
        ledger_service.delete_account(self.session_factory, account_id, user_id=self.user_id)
        self.refresh()

    def remove_duplicate_accounts(self) -> list[int]:
        removed = ledger_service.remove_duplicate_accounts(self.session_factory, user_id=self.user_id)
        if removed:
            self.refresh()
        return removed

    def account(self, account_id: int) -> Optional[Account]:
        return next((a for a in self.accounts if a.id == account_id), None)

    def account_by_name(self, name: str) -> Optional[Account]:
        wanted = name.strip().lower()
        return next((a for a in self.accounts if a.name.lower() == wanted), None)

    def total_balance(self) -> Decimal:
        return sum((a.balance for a in self.accounts), Decimal("0"))

    # Recurring definitions

    def create_recurring(self, data: RecurringInput) -> RecurringTransaction:
        definition = recurring_service.create_recurring(self.session_factory, data, user_id=self.user_id)
        self.refresh()
        return definition

    def create_recurring_transfer(self, **kwargs) -> tuple[RecurringTransaction, RecurringTransaction]:
        pair = recurring_service.create_recurring_transfer(
            self.session_factory, user_id=self.user_id, **kwargs
        )
        self.refresh()
        return pair

    def update_recurring(self, recurring_id: int, **changes) -> RecurringTransaction:
        definition = recurring_service.update_recurring(
            self.session_factory, recurring_id, user_id=self.user_id, **changes
        )
        self.refresh()
        return definition

    def toggle_recurring(self, recurring_id: int, is_active: bool) -> list[RecurringTransaction]:
        updated = recurring_service.toggle_recurring(
            self.session_factory, recurring_id, is_active, user_id=self.user_id
        )
        self.refresh()
        return updated

    def delete_recurring(self, recurring_id: int) -> list[int]:
        removed = recurring_service.delete_recurring(self.session_factory, recurring_id, user_id=self.user_id)
        self.refresh()
        return removed

    # Summaries

    def monthly_summary(self, year: int, month: int) -> dict[str, Decimal]:
        return self.transaction_repo.get_monthly_summary(year, month, user_id=self.user_id)

    def budget_statuses(self, *, raise_alerts: bool = True) -> list[BudgetStatus]:
        statuses = compute_budget_statuses(
            budgets=self.budget_repo,
            transactions=self.transaction_repo,
            user_id=self.user_id,
            today=self.today(),
        )
        if raise_alerts:
            check_budget_alerts(self.budget_repo, statuses, user_id=self.user_id)
        return statuses


def build_session(
    config: BaseConfig,
    session_factory: SessionFactory,
    user: User,
    *,
    dispatcher: Optional[SyncDispatcher] = None,
    today: Callable[[], date] = date.today,
) -> LedgerSession:
    return LedgerSession(
        config=config,
        session_factory=session_factory,
        user=user,
        account_repo=SQLModelAccountRepository(session_factory),
        transaction_repo=SQLModelTransactionRepository(session_factory),
        recurring_repo=SQLModelRecurringRepository(session_factory),
        category_repo=SQLModelCategoryRepository(session_factory),
        budget_repo=SQLModelBudgetRepository(session_factory),
        settings_repo=SQLModelSettingsRepository(session_factory),
        dispatcher=dispatcher,
        today=today,
    )


def open_ledger(
    config: Optional[BaseConfig] = None,
    *,
    username: str = users.LOCAL_USERNAME,
    start: bool = True,
) -> LedgerSession:
    """Bootstrap the store, ensure the local user and defaults, and start a session."""

    cfg = config or BaseConfig()
    _engine, session_factory = bootstrap_database(cfg)
    user = users.ensure_local_user(session_factory, username)

    category_service.ensure_default_categories(
        SQLModelCategoryRepository(session_factory), user_id=user.id
    )
    ledger_service.ensure_default_accounts(
        session_factory, user_id=user.id, currency=cfg.BASE_CURRENCY
    )

    dispatcher = None
    if cfg.SYNC_URL:
        dispatcher = SyncDispatcher(
            session_factory,
            WebhookSyncTarget(cfg.SYNC_URL, timeout=cfg.HTTP_TIMEOUT),
            max_attempts=cfg.SYNC_MAX_ATTEMPTS,
        )

    ledger = build_session(cfg, session_factory, user, dispatcher=dispatcher)
    if start:
        ledger.start()
    else:
        ledger.refresh()
    logger.info(
        "Ledger opened",
        extra={"user_id": user.id, "accounts": len(ledger.accounts), "sync": bool(dispatcher)},
    )
    return ledger
