"""SQLModel implementation of the recurring definition repository."""

from __future__ import annotations

from datetime import date
from typing import Optional

from sqlmodel import select

from ...models.recurring import RecurringTransaction
from ..database import SessionFactory


class SQLModelRecurringRepository:
    """SQLModel-based recurring definition repository."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def get_by_id(self, recurring_id: int, *, user_id: int) -> Optional[RecurringTransaction]:
        with self.session_factory() as session:
            obj = session.exec(
                select(RecurringTransaction).where(
                    RecurringTransaction.id == recurring_id,
                    RecurringTransaction.user_id == user_id,
                )
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int) -> list[RecurringTransaction]:
        with self.session_factory() as session:
            statement = (
                select(RecurringTransaction)
                .where(RecurringTransaction.user_id == user_id)
                .order_by(RecurringTransaction.next_occurrence, RecurringTransaction.id)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_group(self, transfer_group_id: str, *, user_id: int) -> list[RecurringTransaction]:
        with self.session_factory() as session:
            statement = (
                select(RecurringTransaction)
                .where(RecurringTransaction.user_id == user_id)
                .where(RecurringTransaction.transfer_group_id == transfer_group_id)
                .order_by(RecurringTransaction.id)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_due(self, today: date, *, user_id: int) -> list[RecurringTransaction]:
        """Active definitions due on or before ``today``.

        The end date is not filtered here; the scheduler stops each definition
        at its own end date so late runs still catch up on in-range dates.
        """
        with self.session_factory() as session:
            statement = (
                select(RecurringTransaction)
                .where(RecurringTransaction.user_id == user_id)
                .where(RecurringTransaction.is_active == True)  # noqa: E712
                .where(RecurringTransaction.next_occurrence <= today)
                .order_by(RecurringTransaction.next_occurrence, RecurringTransaction.id)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def create(self, recurring: RecurringTransaction, *, user_id: int) -> RecurringTransaction:
        with self.session_factory() as session:
            recurring.user_id = user_id
            session.add(recurring)
            session.commit()
            session.refresh(recurring)
            session.expunge(recurring)
            return recurring

    def bulk_create(
        self, definitions: list[RecurringTransaction], *, user_id: int
    ) -> list[RecurringTransaction]:
        """Insert several definitions atomically (paired transfers)."""
        with self.session_factory() as session:
            for definition in definitions:
                definition.user_id = user_id
                session.add(definition)
            session.commit()
            for definition in definitions:
                session.refresh(definition)
            session.expunge_all()
            return definitions

    def update_many(
        self, definitions: list[RecurringTransaction], *, user_id: int
    ) -> list[RecurringTransaction]:
        """Save a definition group atomically; either every row changes or none does."""
        with self.session_factory() as session:
            merged = []
            for definition in definitions:
                definition.user_id = user_id
                merged.append(session.merge(definition))
            session.commit()
            for definition in merged:
                session.refresh(definition)
            session.expunge_all()
            return merged

    def delete_many(self, recurring_ids: list[int], *, user_id: int) -> None:
        with self.session_factory() as session:
            rows = session.exec(
                select(RecurringTransaction).where(
                    RecurringTransaction.id.in_(recurring_ids),  # type: ignore[union-attr]
                    RecurringTransaction.user_id == user_id,
                )
            ).all()
            for obj in rows:
                session.delete(obj)
            session.commit()
