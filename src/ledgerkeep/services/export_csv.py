"""CSV export helpers for LedgerKeep."""

from __future__ import annotations

import csv
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterable

from ..models.transaction import Transaction

CSV_HEADERS = ["Date", "Description", "Category", "Type", "Amount"]


def _serialize_value(value):
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    return str(value)


def export_transactions_csv(*, transactions: Iterable[Transaction], output_path: Path) -> Path:
    """Write transactions to CSV at `output_path`.

    Columns are deterministic: Date, Description, Category, Type, Amount.
    Amounts are positive; the Type column carries the direction.
    Returns the path written.
    """

    output_path.parent.mkdir(parents=True, exist_ok=True)

    # Use newline='' for csv on Windows
    with output_path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh, quoting=csv.QUOTE_MINIMAL)
        writer.writerow(CSV_HEADERS)
        for tx in transactions:
            writer.writerow(
                [
                    _serialize_value(tx.occurred_on),
                    _serialize_value(tx.description),
                    _serialize_value(tx.category),
                    _serialize_value(tx.txn_type),
                    _serialize_value(tx.amount),
                ]
            )

    return output_path
