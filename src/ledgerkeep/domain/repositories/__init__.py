"""Repository protocol definitions for domain layer."""

from .account import AccountRepository
from .budget import BudgetRepository
from .category import CategoryRepository
from .recurring import RecurringRepository
from .transaction import TransactionRepository

__all__ = [
    "AccountRepository",
    "BudgetRepository",
    "CategoryRepository",
    "RecurringRepository",
    "TransactionRepository",
]
