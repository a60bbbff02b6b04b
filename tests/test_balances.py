"""Tests for amount parsing and the balance mutator."""

from __future__ import annotations

from decimal import Decimal

import pytest

from ledgerkeep.errors import NotFoundError, ValidationError
from ledgerkeep.models.transaction import TRANSFER_IN, TRANSFER_OUT
from ledgerkeep.services.balances import (
    apply_delta,
    read_balance,
    signed_delta,
    to_amount,
    to_positive_amount,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("12.5", Decimal("12.50")),
        ("1,234.56", Decimal("1234.56")),
        (7, Decimal("7.00")),
        (Decimal("0.130"), Decimal("0.13")),
        ("12.500", Decimal("12.50")),
        (" 42 ", Decimal("42.00")),
    ],
)
def test_to_amount_parses_numbers(raw, expected):
    assert to_amount(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "abc", "NaN", "inf", True])
def test_to_amount_rejects_junk(raw):
    with pytest.raises(ValidationError):
        to_amount(raw)


@pytest.mark.parametrize("raw", ["10.005", Decimal("0.129"), 2.345])
def test_to_amount_rejects_fractions_of_a_cent(raw):
    with pytest.raises(ValidationError, match="two decimal places"):
        to_amount(raw)


def test_to_amount_rounds_when_asked():
    assert to_amount("10.005", round_cents=True) == Decimal("10.00")
    assert to_amount("99.999", round_cents=True) == Decimal("100.00")


@pytest.mark.parametrize("raw", ["0", "-5", "0.001"])
def test_to_positive_amount_rejects_non_positive(raw):
    with pytest.raises(ValidationError):
        to_positive_amount(raw)


def test_validation_error_is_value_error():
    with pytest.raises(ValueError):
        to_positive_amount("-1")


def test_signed_delta_by_type():
    amount = Decimal("10.00")
    assert signed_delta("income", amount) == amount
    assert signed_delta("expense", amount) == -amount
    assert signed_delta("transfer", amount, TRANSFER_IN) == amount
    assert signed_delta("transfer", amount, TRANSFER_OUT) == -amount


def test_signed_delta_rejects_unknown():
    with pytest.raises(ValidationError):
        signed_delta("refund", Decimal("1"))
    with pytest.raises(ValidationError):
        signed_delta("transfer", Decimal("1"), "Groceries")


def test_apply_delta_increments_in_place(session_factory, user, account_factory):
    account = account_factory(balance="100.00")

    with session_factory() as session:
        assert apply_delta(session, account.id, Decimal("-30.25"), user_id=user.id) == Decimal("69.75")
        assert apply_delta(session, account.id, Decimal("5"), user_id=user.id) == Decimal("74.75")
        assert read_balance(session, account.id, user_id=user.id) == Decimal("74.75")


def test_apply_delta_zero_is_allowed(session_factory, user, account_factory, balance_of):
    account = account_factory(balance="10.00")
    with session_factory() as session:
        apply_delta(session, account.id, Decimal("0"), user_id=user.id)
    assert balance_of(account.id) == Decimal("10.00")


def test_apply_delta_missing_account(session_factory, user):
    with pytest.raises(NotFoundError):
        with session_factory() as session:
            apply_delta(session, 9999, Decimal("1"), user_id=user.id)


def test_apply_delta_is_scoped_to_user(session_factory, user, account_factory, balance_of):
    account = account_factory(balance="10.00")
    with pytest.raises(NotFoundError):
        with session_factory() as session:
            apply_delta(session, account.id, Decimal("1"), user_id=user.id + 1)
    assert balance_of(account.id) == Decimal("10.00")


def test_apply_delta_rolls_back_with_caller(session_factory, user, account_factory, balance_of):
    account = account_factory(balance="50.00")

    with pytest.raises(RuntimeError):
        with session_factory() as session:
            apply_delta(session, account.id, Decimal("25"), user_id=user.id)
            raise RuntimeError("abort")

    assert balance_of(account.id) == Decimal("50.00")
