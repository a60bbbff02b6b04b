"""Account repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.account import Account


class AccountRepository(Protocol):
    """Repository for managing account entities."""

    def get_by_id(self, account_id: int, *, user_id: int) -> Optional[Account]:
        """Retrieve an account by ID."""
        ...

    def get_by_name(self, name: str, *, user_id: int) -> Optional[Account]:
        """Retrieve the first account with the given name."""
        ...

    def list_all(self, *, user_id: int) -> list[Account]:
        """List all accounts in creation order."""
        ...

    def create(self, account: Account, *, user_id: int) -> Account:
        """Create a new account."""
        ...

    def update(self, account: Account, *, user_id: int) -> Account:
        """Update an existing account."""
        ...

    def delete(self, account_id: int, *, user_id: int) -> None:
        """Delete an account by ID."""
        ...
