"""Budget periods, spending status and alerts."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from ledgerkeep.errors import NotFoundError, ValidationError
from ledgerkeep.services import budgeting
from ledgerkeep.services.budgeting import (
    ALERT_EXCEEDED,
    ALERT_WARNING,
    check_budget_alerts,
    compute_budget_statuses,
    period_start,
)


@pytest.mark.parametrize(
    "period, today, expected",
    [
        ("weekly", date(2024, 4, 3), date(2024, 3, 31)),  # Wednesday
        ("weekly", date(2024, 3, 31), date(2024, 3, 31)),  # Sunday
        ("weekly", date(2024, 4, 6), date(2024, 3, 31)),  # Saturday
        ("monthly", date(2024, 4, 18), date(2024, 4, 1)),
        ("yearly", date(2024, 4, 18), date(2024, 1, 1)),
    ],
)
def test_period_start(period, today, expected):
    assert period_start(period, today) == expected


def test_create_budget_validation(repos, user):
    with pytest.raises(ValidationError):
        budgeting.create_budget(repos.budgets, user_id=user.id, category=" ", amount="10")
    with pytest.raises(ValidationError):
        budgeting.create_budget(repos.budgets, user_id=user.id, category="Food", amount="0")
    with pytest.raises(ValidationError):
        budgeting.create_budget(repos.budgets, user_id=user.id, category="Food", amount="10", period="daily")
    with pytest.raises(ValidationError):
        budgeting.create_budget(repos.budgets, user_id=user.id, category="Food", amount="10", alert_threshold=150)
    assert repos.budgets.list_all(user_id=user.id) == []


def test_one_budget_per_category(repos, user):
    budgeting.create_budget(repos.budgets, user_id=user.id, category="Shopping", amount="500")

    with pytest.raises(ValidationError):
        budgeting.create_budget(repos.budgets, user_id=user.id, category="Shopping", amount="100")


def test_update_and_delete_budget(repos, user):
    budget = budgeting.create_budget(repos.budgets, user_id=user.id, category="Travel", amount="500")

    updated = budgeting.update_budget(
        repos.budgets, budget.id, user_id=user.id, amount="750", period="yearly", alert_threshold=90
    )
    assert (updated.amount, updated.period, updated.alert_threshold) == (Decimal("750.00"), "yearly", 90)

    budgeting.delete_budget(repos.budgets, budget.id, user_id=user.id)
    assert repos.budgets.get_by_id(budget.id, user_id=user.id) is None
    with pytest.raises(NotFoundError):
        budgeting.delete_budget(repos.budgets, budget.id, user_id=user.id)


@pytest.fixture
def food_budget(repos, user):
    return budgeting.create_budget(
        repos.budgets, user_id=user.id, category="Food & Dining", amount="1000", alert_threshold=80
    )


def test_statuses_count_current_period_expenses_only(food_budget, seed_accounts, transaction_factory, repos, user):
    checking = seed_accounts["checking"].id
    transaction_factory(checking, amount="300", occurred_on=date(2024, 4, 2))
    transaction_factory(checking, amount="200", occurred_on=date(2024, 4, 10))
    transaction_factory(checking, amount="999", occurred_on=date(2024, 3, 30))
    transaction_factory(checking, amount="50", category="Shopping", occurred_on=date(2024, 4, 3))
    transaction_factory(checking, amount="70", txn_type="income", occurred_on=date(2024, 4, 3))

    (status,) = compute_budget_statuses(
        budgets=repos.budgets, transactions=repos.transactions, user_id=user.id, today=date(2024, 4, 15)
    )

    assert status.period_start == date(2024, 4, 1)
    assert status.spent == Decimal("500.00")
    assert status.remaining == Decimal("500.00")
    assert status.percentage == pytest.approx(50.0)


def test_no_budgets_no_statuses(repos, user):
    assert compute_budget_statuses(budgets=repos.budgets, transactions=repos.transactions, user_id=user.id) == []


def test_warning_alert_raised_once_per_period(food_budget, seed_accounts, transaction_factory, repos, user):
    transaction_factory(seed_accounts["checking"].id, amount="850", occurred_on=date(2024, 4, 5))

    def check(today):
        statuses = compute_budget_statuses(
            budgets=repos.budgets, transactions=repos.transactions, user_id=user.id, today=today
        )
        return check_budget_alerts(repos.budgets, statuses, user_id=user.id)

    (alert,) = check(date(2024, 4, 6))
    assert alert.alert_type == ALERT_WARNING
    assert alert.period_start == date(2024, 4, 1)
    assert alert.percentage_used == pytest.approx(85.0)
    assert alert.message == "You've spent 85% of your Food & Dining budget"

    assert check(date(2024, 4, 20)) == []

    transaction_factory(seed_accounts["checking"].id, amount="200", occurred_on=date(2024, 4, 21))
    (exceeded,) = check(date(2024, 4, 22))
    assert exceeded.alert_type == ALERT_EXCEEDED
    assert exceeded.message.startswith("You've exceeded your Food & Dining budget!")

    transaction_factory(seed_accounts["checking"].id, amount="900", occurred_on=date(2024, 5, 2))
    (next_month,) = check(date(2024, 5, 3))
    assert next_month.period_start == date(2024, 5, 1)
    assert len(repos.budgets.list_alerts(user_id=user.id)) == 3


def test_below_threshold_raises_nothing(food_budget, seed_accounts, transaction_factory, repos, user):
    transaction_factory(seed_accounts["checking"].id, amount="100", occurred_on=date(2024, 4, 5))
    statuses = compute_budget_statuses(
        budgets=repos.budgets, transactions=repos.transactions, user_id=user.id, today=date(2024, 4, 6)
    )

    assert check_budget_alerts(repos.budgets, statuses, user_id=user.id) == []


def test_mark_alerts_read(food_budget, seed_accounts, transaction_factory, repos, user):
    transaction_factory(seed_accounts["checking"].id, amount="1500", occurred_on=date(2024, 4, 5))
    statuses = compute_budget_statuses(
        budgets=repos.budgets, transactions=repos.transactions, user_id=user.id, today=date(2024, 4, 6)
    )
    check_budget_alerts(repos.budgets, statuses, user_id=user.id)

    assert len(repos.budgets.list_alerts(user_id=user.id, unread_only=True)) == 1
    assert repos.budgets.mark_alerts_read(user_id=user.id) == 1
    assert repos.budgets.list_alerts(user_id=user.id, unread_only=True) == []


def test_session_budget_statuses(ledger, food_budget, seed_accounts, transaction_factory, repos, user):
    transaction_factory(seed_accounts["checking"].id, amount="900", occurred_on=date(2024, 3, 28))

    (status,) = ledger.budget_statuses()

    assert status.period_start == date(2024, 4, 1)
    assert status.spent == Decimal("0")
    assert repos.budgets.list_alerts(user_id=user.id) == []
