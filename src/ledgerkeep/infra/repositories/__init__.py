"""Concrete repository implementations using SQLModel."""

from .account import SQLModelAccountRepository
from .budget import SQLModelBudgetRepository
from .category import SQLModelCategoryRepository
from .recurring import SQLModelRecurringRepository
from .settings import SQLModelSettingsRepository
from .transaction import SQLModelTransactionRepository

__all__ = [
    "SQLModelAccountRepository",
    "SQLModelBudgetRepository",
    "SQLModelCategoryRepository",
    "SQLModelRecurringRepository",
    "SQLModelSettingsRepository",
    "SQLModelTransactionRepository",
]
