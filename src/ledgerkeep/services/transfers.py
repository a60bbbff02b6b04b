"""Fund transfers between two accounts of the same user."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from sqlmodel import select

from ..errors import InsufficientFundsError, NotFoundError, ValidationError
from ..infra.database import SessionFactory, translate_store_errors
from ..logging_config import get_logger
from ..models.account import Account
from ..models.transaction import TRANSFER_IN, TRANSFER_OUT, Transaction
from . import sync
from .balances import apply_delta, read_balance, to_positive_amount

logger = get_logger("transfers")


@dataclass(slots=True)
class TransferResult:
    """Both legs of a completed transfer plus the resulting balances."""

    outgoing: Transaction
    incoming: Transaction
    from_balance: Decimal
    to_balance: Decimal

    @property
    def transfer_group_id(self) -> Optional[str]:
        return self.outgoing.transfer_group_id


def transfer(
    session_factory: SessionFactory,
    from_account_id: int,
    to_account_id: int,
    amount: object,
    description: Optional[str] = None,
    *,
    user_id: int,
    clock: Callable[[], datetime] = datetime.now,
) -> TransferResult:
    """Move ``amount`` from one account to another.

    Both balance changes, both ledger records and their sync events are
    written in one database transaction. Nothing is written when any check
    fails.
    """

    if from_account_id == to_account_id:
        raise ValidationError("Cannot transfer to the same account")
    value = to_positive_amount(amount)

    now = clock()
    occurred_on = now.date()
    occurred_time = now.time().replace(second=0, microsecond=0)
    group_id = uuid.uuid4().hex
    note = (description or "").strip()

    with translate_store_errors("transfer funds"):
        with session_factory() as session:
            accounts = {
                account.id: account
                for account in session.exec(
                    select(Account).where(
                        Account.user_id == user_id,
                        Account.id.in_([from_account_id, to_account_id]),  # type: ignore
                    )
                ).all()
            }
            source = accounts.get(from_account_id)
            target = accounts.get(to_account_id)
            if source is None:
                raise NotFoundError(f"Account {from_account_id} not found")
            if target is None:
                raise NotFoundError(f"Account {to_account_id} not found")

            available = read_balance(session, from_account_id, user_id=user_id)
            if available < value:
                raise InsufficientFundsError(source.name, available, value)

            outgoing = Transaction(
                user_id=user_id,
                account_id=from_account_id,
                txn_type="transfer",
                amount=value,
                category=TRANSFER_OUT,
                description=note or f"Transfer to {target.name}",
                occurred_on=occurred_on,
                occurred_time=occurred_time,
                transfer_group_id=group_id,
            )
            incoming = Transaction(
                user_id=user_id,
                account_id=to_account_id,
                txn_type="transfer",
                amount=value,
                category=TRANSFER_IN,
                description=note or f"Transfer from {source.name}",
                occurred_on=occurred_on,
                occurred_time=occurred_time,
                transfer_group_id=group_id,
            )
            session.add(outgoing)
            session.add(incoming)
            session.flush()

            from_balance = apply_delta(session, from_account_id, -value, user_id=user_id)
            to_balance = apply_delta(session, to_account_id, value, user_id=user_id)
            sync.enqueue(session, outgoing)
            sync.enqueue(session, incoming)
            session.commit()
            session.refresh(outgoing)
            session.refresh(incoming)
            session.expunge(outgoing)
            session.expunge(incoming)

    logger.info(
        "Transfer completed",
        extra={
            "from_account_id": from_account_id,
            "to_account_id": to_account_id,
            "amount": str(value),
            "transfer_group_id": group_id,
        },
    )
    return TransferResult(
        outgoing=outgoing,
        incoming=incoming,
        from_balance=from_balance,
        to_balance=to_balance,
    )
