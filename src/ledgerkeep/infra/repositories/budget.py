"""SQLModel implementation of Budget repository."""

from __future__ import annotations

from datetime import date
from typing import Optional

from sqlmodel import select

from ...models.budget import Budget, BudgetAlert
from ..database import SessionFactory


class SQLModelBudgetRepository:
    """SQLModel-based budget repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def get_by_id(self, budget_id: int, *, user_id: int) -> Optional[Budget]:
        with self.session_factory() as session:
            obj = session.exec(
                select(Budget).where(Budget.id == budget_id, Budget.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def get_by_category(self, category: str, *, user_id: int) -> Optional[Budget]:
        with self.session_factory() as session:
            obj = session.exec(
                select(Budget).where(Budget.category == category, Budget.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int) -> list[Budget]:
        with self.session_factory() as session:
            rows = list(
                session.exec(
                    select(Budget).where(Budget.user_id == user_id).order_by(Budget.category)  # type: ignore
                ).all()
            )
            session.expunge_all()
            return rows

    def create(self, budget: Budget, *, user_id: int) -> Budget:
        with self.session_factory() as session:
            budget.user_id = user_id
            session.add(budget)
            session.commit()
            session.refresh(budget)
            session.expunge(budget)
            return budget

    def update(self, budget: Budget, *, user_id: int) -> Budget:
        with self.session_factory() as session:
            budget.user_id = user_id
            budget = session.merge(budget)
            session.commit()
            session.refresh(budget)
            session.expunge(budget)
            return budget

    def delete(self, budget_id: int, *, user_id: int) -> None:
        """Delete a budget and its alerts."""
        with self.session_factory() as session:
            budget = session.exec(
                select(Budget).where(Budget.id == budget_id, Budget.user_id == user_id)
            ).first()
            if budget is None:
                return
            for alert in session.exec(select(BudgetAlert).where(BudgetAlert.budget_id == budget_id)).all():
                session.delete(alert)
            session.delete(budget)
            session.commit()

    def list_alerts(self, *, user_id: int, unread_only: bool = False) -> list[BudgetAlert]:
        with self.session_factory() as session:
            statement = select(BudgetAlert).where(BudgetAlert.user_id == user_id)
            if unread_only:
                statement = statement.where(BudgetAlert.is_read == False)  # noqa: E712
            statement = statement.order_by(BudgetAlert.created_at.desc(), BudgetAlert.id.desc())  # type: ignore
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def has_alert(
        self, budget_id: int, alert_type: str, period_start: date, *, user_id: int
    ) -> bool:
        """True when an alert of this type was already raised in the current period."""
        with self.session_factory() as session:
            existing = session.exec(
                select(BudgetAlert.id).where(
                    BudgetAlert.user_id == user_id,
                    BudgetAlert.budget_id == budget_id,
                    BudgetAlert.alert_type == alert_type,
                    BudgetAlert.period_start == period_start,
                )
            ).first()
            return existing is not None

    def add_alert(self, alert: BudgetAlert, *, user_id: int) -> BudgetAlert:
        with self.session_factory() as session:
            alert.user_id = user_id
            session.add(alert)
            session.commit()
            session.refresh(alert)
            session.expunge(alert)
            return alert

    def mark_alerts_read(self, *, user_id: int) -> int:
        with self.session_factory() as session:
            alerts = session.exec(
                select(BudgetAlert).where(
                    BudgetAlert.user_id == user_id,
                    BudgetAlert.is_read == False,  # noqa: E712
                )
            ).all()
            for alert in alerts:
                alert.is_read = True
                session.add(alert)
            session.commit()
            return len(alerts)
