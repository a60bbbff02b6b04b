"""SQLModel implementation of Category repository."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import func
from sqlmodel import select

from ...models.category import Category
from ..database import SessionFactory


class SQLModelCategoryRepository:
    """SQLModel-based category repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, category_id: int, *, user_id: int) -> Optional[Category]:
        """Retrieve a category by ID."""
        with self.session_factory() as session:
            obj = session.exec(
                select(Category).where(Category.id == category_id, Category.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def get_by_name(self, name: str, category_type: str, *, user_id: int) -> Optional[Category]:
        """Retrieve a category by case-insensitive name within a type."""
        with self.session_factory() as session:
            statement = select(Category).where(
                func.lower(Category.name) == name.strip().lower(),
                Category.category_type == category_type,
                Category.user_id == user_id,
            )
            obj = session.exec(statement).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int) -> list[Category]:
        """List all categories."""
        with self.session_factory() as session:
            statement = (
                select(Category)
                .where(Category.user_id == user_id)
                .order_by(Category.name)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def create(self, category: Category, *, user_id: int) -> Category:
        """Create a new category."""
        with self.session_factory() as session:
            category.user_id = user_id
            session.add(category)
            session.commit()
            session.refresh(category)
            session.expunge(category)
            return category

    def bulk_create(self, categories: list[Category], *, user_id: int) -> list[Category]:
        """Insert several categories in one commit."""
        with self.session_factory() as session:
            for category in categories:
                category.user_id = user_id
                session.add(category)
            session.commit()
            for category in categories:
                session.refresh(category)
            session.expunge_all()
            return categories

    def delete(self, category_id: int, *, user_id: int) -> None:
        """Delete a category by ID."""
        with self.session_factory() as session:
            category = session.exec(
                select(Category).where(Category.id == category_id, Category.user_id == user_id)
            ).first()
            if category:
                session.delete(category)
                session.commit()
