"""Budget repository protocol."""

from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from ...models.budget import Budget, BudgetAlert


class BudgetRepository(Protocol):
    """Repository for budgets and their alerts."""

    def get_by_id(self, budget_id: int, *, user_id: int) -> Optional[Budget]:
        """Retrieve a budget by ID."""
        ...

    def list_all(self, *, user_id: int) -> list[Budget]:
        """List all budgets."""
        ...

    def create(self, budget: Budget, *, user_id: int) -> Budget:
        """Create a budget."""
        ...

    def update(self, budget: Budget, *, user_id: int) -> Budget:
        """Update a budget."""
        ...

    def delete(self, budget_id: int, *, user_id: int) -> None:
        """Delete a budget and its alerts."""
        ...

    def list_alerts(self, *, user_id: int, unread_only: bool = False) -> list[BudgetAlert]:
        """List alerts newest first."""
        ...

    def add_alert(self, alert: BudgetAlert, *, user_id: int) -> BudgetAlert:
        """Persist a new alert."""
        ...

    def get_by_category(self, category: str, *, user_id: int) -> Optional[Budget]:
        """Retrieve the budget for a category."""
        ...

    def has_alert(
        self, budget_id: int, alert_type: str, period_start: date, *, user_id: int
    ) -> bool:
        ...

    def mark_alerts_read(self, *, user_id: int) -> int:
        """Mark every unread alert read and return how many changed."""
        ...
