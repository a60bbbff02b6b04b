"""SQLModel table exports."""

from .account import Account
from .budget import Budget, BudgetAlert
from .category import Category
from .recurring import RecurringTransaction
from .settings import AppSetting
from .sync import SyncEvent
from .transaction import Transaction
from .user import User

__all__ = [
    "Account",
    "AppSetting",
    "Budget",
    "BudgetAlert",
    "Category",
    "RecurringTransaction",
    "SyncEvent",
    "Transaction",
    "User",
]
