"""Budgeting tables."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

BUDGET_PERIODS = ("weekly", "monthly", "yearly")


class Budget(SQLModel, table=True):
    """Spending cap for one category over a rolling calendar period."""

    __tablename__: ClassVar[str] = "budget"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    category: str = Field(nullable=False, max_length=64, index=True)
    amount: Decimal = Field(nullable=False, max_digits=14, decimal_places=2)
    period: str = Field(default="monthly", nullable=False, max_length=16)
    alert_threshold: int = Field(default=80, nullable=False)


class BudgetAlert(SQLModel, table=True):
    """Raised when a budget crosses its threshold or is exceeded."""

    __tablename__: ClassVar[str] = "budget_alert"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    budget_id: int = Field(foreign_key="budget.id", nullable=False, index=True)
    alert_type: str = Field(nullable=False, max_length=16)
    # First day of the budget period the alert belongs to; one alert per type per period.
    period_start: date = Field(nullable=False, index=True)
    percentage_used: float = Field(nullable=False)
    message: str = Field(default="", max_length=255)
    is_read: bool = Field(default=False, nullable=False)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
