"""Ledger operations: transactions, accounts, filtering and summaries.

Every mutation that touches a balance runs inside one database transaction
together with the row it belongs to, so a failure leaves neither half behind.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Callable, Iterable, Optional

from sqlmodel import select

from ..constants.categories import DEFAULT_ACCOUNTS
from ..errors import AccountInUseError, NotFoundError, ValidationError
from ..infra.database import SessionFactory, translate_store_errors
from ..infra.repositories.account import count_references
from ..infra.repositories.transaction import SQLModelTransactionRepository
from ..logging_config import get_logger
from ..models.account import ACCOUNT_TYPES, Account
from ..models.transaction import Transaction
from . import sync
from .balances import apply_delta, signed_delta, to_amount, to_positive_amount

logger = get_logger("ledger")

Clock = Callable[[], datetime]

ENTRY_TYPES = ("income", "expense")


@dataclass
class TransactionInput:
    """Fields a user supplies for a new income or expense entry."""

    account_id: Optional[int]
    txn_type: str
    amount: object
    category: str
    description: str
    occurred_on: Optional[date] = None
    occurred_time: Optional[time] = None


@dataclass
class LedgerFilters:
    """Filters applied to ledger listings."""

    user_id: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    account_id: Optional[int] = None
    category: Optional[str] = None
    text: Optional[str] = None
    txn_type: str = "all"  # income | expense | transfer | all


@dataclass
class Pagination:
    """Simple pagination parameters."""

    page: int = 1
    per_page: int = 25


def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    return str(value).strip()


def validate_transaction_input(data: TransactionInput) -> Decimal:
    """Check required fields and return the parsed positive amount."""

    if data.account_id is None:
        raise ValidationError("account is required")
    txn_type = _require_text(data.txn_type, "type").lower()
    if txn_type not in ENTRY_TYPES:
        raise ValidationError(
            f"type must be one of {', '.join(ENTRY_TYPES)}; use a transfer to move funds"
        )
    amount = to_positive_amount(data.amount)
    _require_text(data.category, "category")
    _require_text(data.description, "description")
    return amount


def add_transaction(
    session_factory: SessionFactory,
    data: TransactionInput,
    *,
    user_id: int,
    clock: Clock = datetime.now,
) -> Transaction:
    """Record an income or expense entry and move the account balance."""

    amount = validate_transaction_input(data)
    now = clock()
    txn = Transaction(
        user_id=user_id,
        account_id=data.account_id,
        txn_type=data.txn_type.strip().lower(),
        amount=amount,
        category=data.category.strip(),
        description=data.description.strip(),
        occurred_on=data.occurred_on or now.date(),
        occurred_time=data.occurred_time or now.time().replace(second=0, microsecond=0),
    )

    with translate_store_errors("add transaction"):
        with session_factory() as session:
            _require_account(session, data.account_id, user_id=user_id)
            session.add(txn)
            session.flush()
            balance = apply_delta(
                session, txn.account_id, signed_delta(txn.txn_type, amount), user_id=user_id
            )
            sync.enqueue(session, txn)
            session.commit()
            session.refresh(txn)
            session.expunge(txn)

    logger.info(
        "Transaction added",
        extra={
            "transaction_id": txn.id,
            "account_id": txn.account_id,
            "type": txn.txn_type,
            "amount": str(txn.amount),
            "balance": str(balance),
        },
    )
    return txn


def delete_transaction(
    session_factory: SessionFactory, transaction_id: int, *, user_id: int
) -> Transaction:
    """Remove a transaction and reverse its balance effect exactly."""

    with translate_store_errors("delete transaction"):
        with session_factory() as session:
            txn = session.exec(
                select(Transaction).where(
                    Transaction.id == transaction_id, Transaction.user_id == user_id
                )
            ).first()
            if txn is None:
                raise NotFoundError(f"Transaction {transaction_id} not found")
            inverse = -signed_delta(txn.txn_type, txn.amount, txn.category)
            session.delete(txn)
            session.flush()
            balance = apply_delta(session, txn.account_id, inverse, user_id=user_id)
            session.commit()

    logger.info(
        "Transaction deleted",
        extra={
            "transaction_id": transaction_id,
            "account_id": txn.account_id,
            "balance": str(balance),
        },
    )
    return txn


def _require_account(session, account_id: Optional[int], *, user_id: int) -> Account:
    account = session.exec(
        select(Account).where(Account.id == account_id, Account.user_id == user_id)
    ).first()
    if account is None:
        raise NotFoundError(f"Account {account_id} not found")
    return account


def _normalize_account_type(value: Optional[str]) -> str:
    account_type = (value or "checking").strip().lower()
    if account_type not in ACCOUNT_TYPES:
        raise ValidationError(
            f"account type must be one of {', '.join(ACCOUNT_TYPES)}, got {value!r}"
        )
    return account_type


def create_account(
    session_factory: SessionFactory,
    *,
    user_id: int,
    name: str,
    account_type: str = "checking",
    initial_balance: object = 0,
    color: str = "",
    currency: str = "INR",
) -> Account:
    """Open an account with an optional starting balance."""

    account = Account(
        user_id=user_id,
        name=_require_text(name, "name"),
        account_type=_normalize_account_type(account_type),
        balance=to_amount(initial_balance, field="initial balance"),
        color=color or "",
        currency=(currency or "INR").strip().upper()[:3],
    )
    with translate_store_errors("create account"):
        with session_factory() as session:
            session.add(account)
            session.commit()
            session.refresh(account)
            session.expunge(account)
    logger.info("Account created", extra={"account_id": account.id, "account_name": account.name})
    return account


def update_account(
    session_factory: SessionFactory,
    account_id: int,
    *,
    user_id: int,
    name: Optional[str] = None,
    account_type: Optional[str] = None,
    color: Optional[str] = None,
) -> Account:
    """Edit display fields. The balance is only ever moved by transactions."""

    with translate_store_errors("update account"):
        with session_factory() as session:
            account = _require_account(session, account_id, user_id=user_id)
            if name is not None:
                account.name = _require_text(name, "name")
            if account_type is not None:
                account.account_type = _normalize_account_type(account_type)
            if color is not None:
                account.color = color
            session.add(account)
            session.commit()
            session.refresh(account)
            session.expunge(account)
    return account


def delete_account(session_factory: SessionFactory, account_id: int, *, user_id: int) -> None:
    """Delete an account that nothing references."""

    with translate_store_errors("delete account"):
        with session_factory() as session:
            account = _require_account(session, account_id, user_id=user_id)
            references = count_references(session, account_id, user_id=user_id)
            if references:
                raise AccountInUseError(
                    f"Account {account.name!r} has {references} linked transaction(s) "
                    "or recurring entries and cannot be deleted"
                )
            session.delete(account)
            session.commit()
    logger.info("Account deleted", extra={"account_id": account_id})


def remove_duplicate_accounts(session_factory: SessionFactory, *, user_id: int) -> list[int]:
    """Collapse accounts sharing a name.

    Within each name group the account that has transactions is kept, else the
    one with the highest balance. Other members are deleted unless they are
    referenced themselves. Returns the deleted ids.
    """

    removed: list[int] = []
    with translate_store_errors("remove duplicate accounts"):
        with session_factory() as session:
            accounts = session.exec(
                select(Account)
                .where(Account.user_id == user_id)
                .order_by(Account.created_at, Account.id)  # type: ignore
            ).all()
            groups: dict[str, list[Account]] = defaultdict(list)
            for account in accounts:
                groups[account.name].append(account)

            for name, members in groups.items():
                if len(members) < 2:
                    continue
                refs = {a.id: count_references(session, a.id, user_id=user_id) for a in members}
                keeper = max(members, key=lambda a: (refs[a.id] > 0, a.balance, -(a.id or 0)))
                for account in members:
                    if account.id == keeper.id or refs[account.id]:
                        continue
                    session.delete(account)
                    removed.append(account.id)
                logger.info(
                    "Duplicate accounts collapsed",
                    extra={"account_name": name, "kept": keeper.id, "group_size": len(members)},
                )
            session.commit()
    return removed


def ensure_default_accounts(
    session_factory: SessionFactory, *, user_id: int, currency: str = "INR"
) -> list[Account]:
    """Create the starter accounts when the user has none."""

    with translate_store_errors("create default accounts"):
        with session_factory() as session:
            existing = session.exec(
                select(Account.id).where(Account.user_id == user_id)
            ).first()
            if existing is not None:
                return []
            created = [
                Account(user_id=user_id, currency=currency, balance=Decimal("0.00"), **template)
                for template in DEFAULT_ACCOUNTS
            ]
            session.add_all(created)
            session.commit()
            for account in created:
                session.refresh(account)
            session.expunge_all()
    logger.info("Default accounts created", extra={"user_id": user_id, "count": len(created)})
    return created


def filtered_transactions(
    repo: SQLModelTransactionRepository, filters: LedgerFilters
) -> list[Transaction]:
    """Fetch transactions with the supplied filters, newest first."""

    return repo.search(
        user_id=filters.user_id,
        start_date=filters.start_date,
        end_date=filters.end_date,
        account_id=filters.account_id,
        txn_type=None if filters.txn_type == "all" else filters.txn_type,
        category=filters.category,
        text=filters.text,
    )


def paginate_transactions(
    txs: list[Transaction], pagination: Pagination
) -> tuple[list[Transaction], int]:
    """Return the current page of transactions and total count."""

    total = len(txs)
    page = max(1, pagination.page)
    per_page = max(1, pagination.per_page)
    start = (page - 1) * per_page
    end = start + per_page
    return txs[start:end], total


def compute_summary(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Income, expenses, and net; transfers do not change the net position."""

    income = Decimal("0")
    expenses = Decimal("0")
    for txn in transactions:
        if txn.txn_type == "income":
            income += txn.amount
        elif txn.txn_type == "expense":
            expenses += txn.amount
    return {"income": income, "expenses": expenses, "net": income - expenses}


def compute_spending_by_category(transactions: Iterable[Transaction]) -> list[dict[str, object]]:
    """Roll up expense totals by category, largest first."""

    totals: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    for txn in transactions:
        if txn.txn_type != "expense":
            continue
        totals[txn.category or "Uncategorized"] += txn.amount

    breakdown = [{"name": name, "amount": total} for name, total in totals.items()]
    breakdown.sort(key=lambda entry: entry["amount"], reverse=True)
    return breakdown


def top_categories(
    breakdown: Iterable[dict[str, object]], limit: int = 5
) -> list[dict[str, object]]:
    """Return the top N categories from a breakdown list."""

    items = list(breakdown)
    return items[:limit]
