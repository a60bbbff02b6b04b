"""Balance mutation and amount parsing for ledger operations."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy import select as sa_select
from sqlalchemy import update
from sqlmodel import Session

from ..errors import NotFoundError, ValidationError
from ..logging_config import get_logger
from ..models.account import Account
from ..models.transaction import TRANSFER_IN, TRANSFER_OUT

logger = get_logger("balances")

CENT = Decimal("0.01")


def to_amount(value: object, *, field: str = "amount", round_cents: bool = False) -> Decimal:
    """Parse a user-supplied number into a 2-place Decimal.

    Accepts Decimal, int, float, or numeric strings (thousands separators are
    ignored). Raises ``ValidationError`` for blanks, junk, NaN and infinity,
    and for values with fractions of a cent unless ``round_cents`` is set.
    """

    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if not cleaned:
            raise ValidationError(f"{field} is required")
        value = cleaned
    try:
        parsed = Decimal(str(value)) if not isinstance(value, Decimal) else value
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field} must be a number, got {value!r}") from exc
    if not parsed.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    amount = parsed.quantize(CENT)
    if amount != parsed and not round_cents:
        raise ValidationError(f"{field} cannot have more than two decimal places, got {value!r}")
    return amount


def to_positive_amount(value: object, *, field: str = "amount") -> Decimal:
    amount = to_amount(value, field=field)
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return amount


def signed_delta(txn_type: str, amount: Decimal, category: Optional[str] = None) -> Decimal:
    """Return the balance change a record applies to its account.

    Income adds, expense subtracts; a transfer leg takes its sign from the
    "Transfer In"/"Transfer Out" category.
    """

    if txn_type == "income":
        return amount
    if txn_type == "expense":
        return -amount
    if txn_type == "transfer":
        if category == TRANSFER_IN:
            return amount
        if category == TRANSFER_OUT:
            return -amount
        raise ValidationError(f"Transfer category must be {TRANSFER_IN!r} or {TRANSFER_OUT!r}")
    raise ValidationError(f"Unknown transaction type: {txn_type!r}")


def apply_delta(session: Session, account_id: int, delta: Decimal, *, user_id: int) -> Decimal:
    """Persist ``balance := balance + delta`` and return the new balance.

    The increment runs as a single UPDATE inside the caller's transaction, so
    concurrent writers cannot overwrite each other's changes.
    """

    connection = session.connection()
    result = connection.execute(
        update(Account)
        .where(Account.id == account_id, Account.user_id == user_id)
        .values(balance=Account.balance + delta)
    )
    if result.rowcount == 0:
        raise NotFoundError(f"Account {account_id} not found")
    new_balance = connection.execute(
        sa_select(Account.balance).where(Account.id == account_id)
    ).scalar_one()
    new_balance = Decimal(new_balance).quantize(CENT)
    logger.debug(
        "Balance updated",
        extra={"account_id": account_id, "delta": str(delta), "balance": str(new_balance)},
    )
    return new_balance


def read_balance(session: Session, account_id: int, *, user_id: int) -> Decimal:
    """Current stored balance, read through the caller's transaction."""

    value = session.connection().execute(
        sa_select(Account.balance).where(Account.id == account_id, Account.user_id == user_id)
    ).scalar_one_or_none()
    if value is None:
        raise NotFoundError(f"Account {account_id} not found")
    return Decimal(value).quantize(CENT)
