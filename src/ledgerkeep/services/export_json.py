"""Full JSON backup of accounts and transactions."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from ..models.account import Account
from ..models.transaction import Transaction


def account_record(account: Account) -> dict[str, Any]:
    return {
        "id": account.id,
        "name": account.name,
        "type": account.account_type,
        "balance": str(account.balance),
        "color": account.color,
        "currency": account.currency,
    }


def transaction_record(txn: Transaction) -> dict[str, Any]:
    return {
        "id": txn.id,
        "account_id": txn.account_id,
        "type": txn.txn_type,
        "amount": str(txn.amount),
        "category": txn.category,
        "description": txn.description,
        "date": txn.occurred_on.isoformat(),
        "time": txn.occurred_time.strftime("%H:%M"),
        "transfer_group_id": txn.transfer_group_id,
    }


def build_backup(
    *, accounts: Iterable[Account], transactions: Iterable[Transaction], exported_at: datetime | None = None
) -> dict[str, Any]:
    """Backup document: ``{"exported_at", "accounts", "transactions"}``."""

    return {
        "exported_at": (exported_at or datetime.now(timezone.utc)).isoformat(),
        "accounts": [account_record(account) for account in accounts],
        "transactions": [transaction_record(txn) for txn in transactions],
    }


def export_backup_json(
    *, accounts: Iterable[Account], transactions: Iterable[Transaction], output_path: Path
) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    document = build_backup(accounts=accounts, transactions=transactions)
    output_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
    return output_path
