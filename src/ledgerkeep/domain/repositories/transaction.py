"""Transaction repository protocol."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Protocol

from ...models.transaction import Transaction


class TransactionRepository(Protocol):
    """Read access to transactions.

    Writes go through the ledger services so that balances move in the same
    database transaction as the rows.
    """

    def get_by_id(self, transaction_id: int, *, user_id: int) -> Optional[Transaction]:
        """Retrieve a transaction by ID."""
        ...

    def list_all(self, *, user_id: int, limit: int = 100, offset: int = 0) -> list[Transaction]:
        """List transactions newest first with pagination."""
        ...

    def search(
        self,
        *,
        user_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
        txn_type: Optional[str] = None,
        category: Optional[str] = None,
        text: Optional[str] = None,
    ) -> list[Transaction]:
        """Advanced search with multiple filters."""
        ...

    def get_monthly_summary(self, year: int, month: int, *, user_id: int) -> dict[str, Decimal]:
        """Get income/expense summary for a month."""
        ...
