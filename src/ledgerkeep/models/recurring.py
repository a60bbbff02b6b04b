"""Recurring transaction definitions."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

FREQUENCIES = ("daily", "weekly", "monthly", "yearly")


class RecurringTransaction(SQLModel, table=True):
    """Template materialized into concrete transactions on each due date."""

    __tablename__: ClassVar[str] = "recurring_transaction"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    account_id: int = Field(foreign_key="account.id", nullable=False, index=True)
    txn_type: str = Field(nullable=False, max_length=16)
    amount: Decimal = Field(nullable=False, max_digits=14, decimal_places=2)
    category: str = Field(nullable=False, max_length=64)
    description: str = Field(default="", max_length=255)
    frequency: str = Field(default="monthly", nullable=False, max_length=16)
    start_date: date = Field(nullable=False)
    end_date: Optional[date] = Field(default=None)
    next_occurrence: date = Field(nullable=False, index=True)
    last_processed: Optional[date] = Field(default=None)
    is_active: bool = Field(default=True, nullable=False, index=True)
    # Shared by the "Transfer Out" and "Transfer In" halves of a recurring transfer.
    transfer_group_id: Optional[str] = Field(default=None, index=True, max_length=64)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Optional[datetime] = Field(default=None)
