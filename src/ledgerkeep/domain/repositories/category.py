"""Category repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.category import Category


class CategoryRepository(Protocol):
    """Repository for managing category entities."""

    def get_by_id(self, category_id: int, *, user_id: int) -> Optional[Category]:
        """Retrieve a category by ID."""
        ...

    def get_by_name(self, name: str, category_type: str, *, user_id: int) -> Optional[Category]:
        """Retrieve a category by case-insensitive name within a type."""
        ...

    def list_all(self, *, user_id: int) -> list[Category]:
        """List all categories."""
        ...

    def create(self, category: Category, *, user_id: int) -> Category:
        """Create a new category."""
        ...

    def delete(self, category_id: int, *, user_id: int) -> None:
        """Delete a category by ID."""
        ...

    def bulk_create(self, categories: list[Category], *, user_id: int) -> list[Category]:
        """Insert several categories at once."""
        ...
