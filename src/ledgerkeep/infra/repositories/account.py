"""SQLModel implementation of Account repository."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import func
from sqlmodel import Session, select

from ...models.account import Account
from ...models.recurring import RecurringTransaction
from ...models.transaction import Transaction
from ..database import SessionFactory


def count_references(session: Session, account_id: int, *, user_id: int) -> int:
    """Count transactions and recurring definitions pointing at the account.

    Runs on the caller's session so the count and any delete that depends on
    it share one transaction.
    """
    txn_count = session.exec(
        select(func.count())
        .select_from(Transaction)
        .where(Transaction.account_id == account_id, Transaction.user_id == user_id)
    ).one()
    recurring_count = session.exec(
        select(func.count())
        .select_from(RecurringTransaction)
        .where(
            RecurringTransaction.account_id == account_id,
            RecurringTransaction.user_id == user_id,
        )
    ).one()
    return int(txn_count) + int(recurring_count)


class SQLModelAccountRepository:
    """SQLModel-based account repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, account_id: int, *, user_id: int) -> Optional[Account]:
        """Retrieve an account by ID."""
        with self.session_factory() as session:
            obj = session.exec(
                select(Account).where(Account.id == account_id, Account.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def get_by_name(self, name: str, *, user_id: int) -> Optional[Account]:
        """Retrieve the first account with the given name."""
        with self.session_factory() as session:
            statement = (
                select(Account)
                .where(Account.name == name, Account.user_id == user_id)
                .order_by(Account.id)  # type: ignore
            )
            obj = session.exec(statement).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int) -> list[Account]:
        """List all accounts in creation order."""
        with self.session_factory() as session:
            statement = (
                select(Account)
                .where(Account.user_id == user_id)
                .order_by(Account.created_at, Account.id)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def create(self, account: Account, *, user_id: int) -> Account:
        """Create a new account."""
        with self.session_factory() as session:
            account.user_id = user_id
            session.add(account)
            session.commit()
            session.refresh(account)
            session.expunge(account)
            return account

    def update(self, account: Account, *, user_id: int) -> Account:
        """Update an existing account."""
        with self.session_factory() as session:
            account.user_id = user_id
            account = session.merge(account)
            session.commit()
            session.refresh(account)
            session.expunge(account)
            return account

    def delete(self, account_id: int, *, user_id: int) -> None:
        """Delete an account by ID."""
        with self.session_factory() as session:
            account = session.exec(
                select(Account).where(Account.id == account_id, Account.user_id == user_id)
            ).first()
            if account:
                session.delete(account)
                session.commit()
