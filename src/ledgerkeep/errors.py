"""Exception taxonomy for ledger operations."""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for every failure reported by a ledger operation."""


class ValidationError(LedgerError, ValueError):
    """A required field is missing or malformed; nothing was written."""


class AccountInUseError(ValidationError):
    """Account still referenced by transactions or recurring definitions."""


class NotFoundError(LedgerError, LookupError):
    """Referenced account, transaction, or definition does not exist."""


class InsufficientFundsError(LedgerError):
    """Transfer amount exceeds the source account balance."""

    def __init__(self, account_name: str, balance, amount) -> None:
        self.account_name = account_name
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Insufficient funds in {account_name!r}: balance {balance}, requested {amount}"
        )


class PersistenceError(LedgerError, RuntimeError):
    """The store rejected a read or write; the DB transaction was rolled back."""


class SyncError(LedgerError):
    """Best-effort outbound notification failed. Never surfaced to callers."""


class RatesUnavailableError(LedgerError):
    """Exchange rates could not be fetched and no cached or fallback rates exist."""


__all__ = [
    "AccountInUseError",
    "InsufficientFundsError",
    "LedgerError",
    "NotFoundError",
    "PersistenceError",
    "RatesUnavailableError",
    "SyncError",
    "ValidationError",
]
