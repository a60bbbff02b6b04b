"""SQLModel implementation of Transaction repository."""

from __future__ import annotations

from calendar import monthrange
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlmodel import select

from ...models.transaction import Transaction
from ..database import SessionFactory


class SQLModelTransactionRepository:
    """SQLModel-based transaction repository implementation (read side)."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    @staticmethod
    def _newest_first(statement):
        return statement.order_by(
            Transaction.occurred_on.desc(),  # type: ignore
            Transaction.occurred_time.desc(),  # type: ignore
            Transaction.id.desc(),  # type: ignore
        )

    def get_by_id(self, transaction_id: int, *, user_id: int) -> Optional[Transaction]:
        """Retrieve a transaction by ID."""
        with self.session_factory() as session:
            obj = session.exec(
                select(Transaction)
                .where(Transaction.id == transaction_id)
                .where(Transaction.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int, limit: int = 100, offset: int = 0) -> list[Transaction]:
        """List transactions newest first with pagination."""
        with self.session_factory() as session:
            statement = self._newest_first(
                select(Transaction).where(Transaction.user_id == user_id)
            ).offset(offset).limit(limit)
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

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
        with self.session_factory() as session:
            statement = select(Transaction).where(Transaction.user_id == user_id)

            if start_date:
                statement = statement.where(Transaction.occurred_on >= start_date)
            if end_date:
                statement = statement.where(Transaction.occurred_on <= end_date)
            if account_id:
                statement = statement.where(Transaction.account_id == account_id)
            if txn_type and txn_type != "all":
                statement = statement.where(Transaction.txn_type == txn_type)
            if category:
                statement = statement.where(Transaction.category == category)
            if text:
                statement = statement.where(Transaction.description.contains(text))  # type: ignore

            rows = list(session.exec(self._newest_first(statement)).all())
            session.expunge_all()
            return rows

    def get_monthly_summary(self, year: int, month: int, *, user_id: int) -> dict[str, Decimal]:
        """Get income/expense summary for a month.

        Transfers are excluded: they move money between accounts without
        changing the user's net position.
        """
        start_date = date(year, month, 1)
        end_date = date(year, month, monthrange(year, month)[1])
        transactions = self.search(start_date=start_date, end_date=end_date, user_id=user_id)

        income = sum(
            (t.amount for t in transactions if t.txn_type == "income"),
            Decimal("0"),
        )
        expenses = sum(
            (t.amount for t in transactions if t.txn_type == "expense"),
            Decimal("0"),
        )
        return {"income": income, "expenses": expenses, "net": income - expenses}
