"""Budgeting domain services."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from ..domain.repositories import BudgetRepository, TransactionRepository
from ..errors import NotFoundError, ValidationError
from ..infra.database import translate_store_errors
from ..logging_config import get_logger
from ..models.budget import BUDGET_PERIODS, Budget, BudgetAlert
from .balances import to_positive_amount

logger = get_logger("budgeting")

ALERT_WARNING = "warning"
ALERT_EXCEEDED = "exceeded"


def period_start(period: str, today: date) -> date:
    """First day of the budget period containing ``today``. Weeks start on Sunday."""

    if period == "weekly":
        return today - timedelta(days=(today.weekday() + 1) % 7)
    if period == "yearly":
        return today.replace(month=1, day=1)
    return today.replace(day=1)


@dataclass(slots=True)
class BudgetStatus:
    """Budget paired with what has been spent in its current period."""

    budget: Budget
    spent: Decimal
    period_start: date

    @property
    def percentage(self) -> float:
        if self.budget.amount <= 0:
            return 0.0
        return float(self.spent / self.budget.amount * 100)

    @property
    def remaining(self) -> Decimal:
        return self.budget.amount - self.spent


def _validate_period(period: str) -> str:
    value = (period or "").strip().lower()
    if value not in BUDGET_PERIODS:
        raise ValidationError(f"period must be one of {', '.join(BUDGET_PERIODS)}")
    return value


def _validate_threshold(threshold: int) -> int:
    try:
        value = int(threshold)
    except (TypeError, ValueError) as exc:
        raise ValidationError("alert threshold must be a whole percentage") from exc
    if not 1 <= value <= 100:
        raise ValidationError("alert threshold must be between 1 and 100")
    return value


def create_budget(
    repo: BudgetRepository,
    *,
    user_id: int,
    category: str,
    amount: object,
    period: str = "monthly",
    alert_threshold: int = 80,
) -> Budget:
    """Create a budget for a category that has none yet."""

    name = (category or "").strip()
    if not name:
        raise ValidationError("category is required")
    budget = Budget(
        category=name,
        amount=to_positive_amount(amount),
        period=_validate_period(period),
        alert_threshold=_validate_threshold(alert_threshold),
    )
    with translate_store_errors("create budget"):
        if repo.get_by_category(name, user_id=user_id) is not None:
            raise ValidationError(f"A budget for {name!r} already exists")
        budget = repo.create(budget, user_id=user_id)
    logger.info("Budget created", extra={"budget_id": budget.id, "category": name})
    return budget


def update_budget(
    repo: BudgetRepository,
    budget_id: int,
    *,
    user_id: int,
    amount: object = None,
    period: Optional[str] = None,
    alert_threshold: Optional[int] = None,
) -> Budget:
    with translate_store_errors("update budget"):
        budget = repo.get_by_id(budget_id, user_id=user_id)
        if budget is None:
            raise NotFoundError(f"Budget {budget_id} not found")
        if amount is not None:
            budget.amount = to_positive_amount(amount)
        if period is not None:
            budget.period = _validate_period(period)
        if alert_threshold is not None:
            budget.alert_threshold = _validate_threshold(alert_threshold)
        return repo.update(budget, user_id=user_id)


def delete_budget(repo: BudgetRepository, budget_id: int, *, user_id: int) -> None:
    with translate_store_errors("delete budget"):
        if repo.get_by_id(budget_id, user_id=user_id) is None:
            raise NotFoundError(f"Budget {budget_id} not found")
        repo.delete(budget_id, user_id=user_id)
    logger.info("Budget deleted", extra={"budget_id": budget_id})


def compute_budget_statuses(
    *,
    budgets: BudgetRepository,
    transactions: TransactionRepository,
    user_id: int,
    today: Optional[date] = None,
) -> list[BudgetStatus]:
    """Spending against every budget for the period containing ``today``."""

    today = today or date.today()
    items = budgets.list_all(user_id=user_id)
    if not items:
        return []

    starts = {budget.id: period_start(budget.period, today) for budget in items}
    expenses = transactions.search(
        user_id=user_id, start_date=min(starts.values()), end_date=today, txn_type="expense"
    )
    by_category: dict[str, list] = defaultdict(list)
    for txn in expenses:
        by_category[txn.category].append(txn)

    statuses = []
    for budget in items:
        start = starts[budget.id]
        spent = sum(
            (txn.amount for txn in by_category.get(budget.category, []) if txn.occurred_on >= start),
            Decimal("0"),
        )
        statuses.append(BudgetStatus(budget=budget, spent=spent, period_start=start))
    return statuses


def _alert_for(status: BudgetStatus) -> Optional[tuple[str, str]]:
    pct = status.percentage
    name = status.budget.category
    if pct >= 100:
        return (
            ALERT_EXCEEDED,
            f"You've exceeded your {name} budget! Spent {status.spent} of {status.budget.amount}",
        )
    if pct >= status.budget.alert_threshold:
        return ALERT_WARNING, f"You've spent {pct:.0f}% of your {name} budget"
    return None


def check_budget_alerts(
    repo: BudgetRepository, statuses: Iterable[BudgetStatus], *, user_id: int
) -> list[BudgetAlert]:
    """Raise warning/exceeded alerts, at most one per budget, type and period."""

    raised = []
    with translate_store_errors("record budget alerts"):
        for status in statuses:
            found = _alert_for(status)
            if found is None:
                continue
            alert_type, message = found
            if repo.has_alert(status.budget.id, alert_type, status.period_start, user_id=user_id):
                continue
            alert = repo.add_alert(
                BudgetAlert(
                    budget_id=status.budget.id,
                    alert_type=alert_type,
                    period_start=status.period_start,
                    percentage_used=round(status.percentage, 2),
                    message=message,
                ),
                user_id=user_id,
            )
            raised.append(alert)
            logger.info(
                "Budget alert raised",
                extra={"budget_id": status.budget.id, "alert_type": alert_type},
            )
    return raised
