"""Recurring definition repository protocol."""

from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from ...models.recurring import RecurringTransaction


class RecurringRepository(Protocol):
    """Repository for recurring transaction definitions."""

    def get_by_id(self, recurring_id: int, *, user_id: int) -> Optional[RecurringTransaction]:
        """Retrieve a definition by ID."""
        ...

    def list_all(self, *, user_id: int) -> list[RecurringTransaction]:
        """List definitions ordered by next occurrence."""
        ...

    def list_group(self, transfer_group_id: str, *, user_id: int) -> list[RecurringTransaction]:
        """List every definition sharing a transfer group."""
        ...

    def list_due(self, today: date, *, user_id: int) -> list[RecurringTransaction]:
        """List active definitions whose next occurrence is on or before ``today``."""
        ...

    def create(self, recurring: RecurringTransaction, *, user_id: int) -> RecurringTransaction:
        """Create a definition."""
        ...

    def update_many(
        self, definitions: list[RecurringTransaction], *, user_id: int
    ) -> list[RecurringTransaction]:
        """Save several definitions in one transaction."""
        ...

    def delete_many(self, recurring_ids: list[int], *, user_id: int) -> None:
        """Delete several definitions in one transaction."""
        ...

    def bulk_create(
        self, definitions: list[RecurringTransaction], *, user_id: int
    ) -> list[RecurringTransaction]:
        """Insert several definitions at once."""
        ...
