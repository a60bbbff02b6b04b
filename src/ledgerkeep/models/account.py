"""Account model holding the running balance."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

ACCOUNT_TYPES = ("checking", "savings", "credit", "cash", "other")


class Account(SQLModel, table=True):
    """A money container whose balance tracks applied transactions."""

    __tablename__: ClassVar[str] = "account"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    name: str = Field(nullable=False, max_length=128, index=True)
    account_type: str = Field(default="checking", nullable=False, max_length=16)
    balance: Decimal = Field(default=Decimal("0.00"), max_digits=14, decimal_places=2)
    color: str = Field(default="", max_length=64)
    currency: str = Field(default="INR", max_length=3)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
