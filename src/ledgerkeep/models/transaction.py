"""SQLModel definitions for ledger transactions."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

TRANSACTION_TYPES = ("income", "expense", "transfer")
TRANSFER_OUT = "Transfer Out"
TRANSFER_IN = "Transfer In"


class Transaction(SQLModel, table=True):
    """A single ledger entry. ``amount`` is always stored positive."""

    __tablename__: ClassVar[str] = "transaction"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    account_id: int = Field(foreign_key="account.id", nullable=False, index=True)
    txn_type: str = Field(nullable=False, max_length=16, index=True)
    amount: Decimal = Field(nullable=False, max_digits=14, decimal_places=2)
    category: str = Field(nullable=False, max_length=64, index=True)
    description: str = Field(default="", max_length=255)
    occurred_on: date = Field(nullable=False, index=True)
    occurred_time: time = Field(default=time(0, 0), nullable=False)
    # Both legs of one transfer carry the same group id.
    transfer_group_id: Optional[str] = Field(default=None, index=True, max_length=64)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def occurred_at(self) -> datetime:
        return datetime.combine(self.occurred_on, self.occurred_time)
