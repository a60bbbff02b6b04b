"""
Default categories seeded for every new user, plus the fixed transfer labels.
"""

from ..models.transaction import TRANSFER_IN, TRANSFER_OUT

DEFAULT_EXPENSE_CATEGORIES = [
    "Food & Dining",
    "Transportation",
    "Shopping",
    "Entertainment",
    "Bills & Utilities",
    "Healthcare",
    "Travel",
    "Education",
    "Other",
]

DEFAULT_INCOME_CATEGORIES = [
    "Salary",
    "Business",
    "Investment",
    "Other",
]

# Suggested in addition to user categories when defining recurring entries
RECURRING_EXPENSE_CATEGORIES = [
    "Rent",
    "EMI",
    "Subscriptions",
    "Bills & Utilities",
    "Insurance",
    "Loan Payment",
    "Other",
]

RECURRING_INCOME_CATEGORIES = [
    "Salary",
    "Freelance",
    "Interest",
    "Dividends",
    "Rental Income",
    "Other Income",
]

TRANSFER_CATEGORIES = [TRANSFER_OUT, TRANSFER_IN]

DEFAULT_ACCOUNTS = [
    {"name": "Main Checking", "account_type": "checking", "color": "from-blue-500 to-blue-600"},
    {"name": "Savings Account", "account_type": "savings", "color": "from-green-500 to-green-600"},
    {"name": "Credit Card", "account_type": "credit", "color": "from-purple-500 to-purple-600"},
]
