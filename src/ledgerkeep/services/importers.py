"""Import CSV exports and JSON backups into an account.

Every imported row goes through ``add_transaction`` so balances, validation
and sync behave exactly as for entries typed in by hand.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..errors import NotFoundError, ValidationError
from ..infra.database import SessionFactory
from ..infra.repositories.account import SQLModelAccountRepository
from ..logging_config import get_logger
from .import_csv import ColumnMapping, ParsedRow, load_csv_rows, parse_row
from .ledger_service import TransactionInput, add_transaction

logger = get_logger("importers")

IMPORT_PREFIX = "[Imported] "

BACKUP_MAPPING = ColumnMapping(
    date="date",
    description="description",
    category="category",
    txn_type="type",
    amount="amount",
    time="time",
)


@dataclass
class ImportResult:
    """Result of an import operation."""

    created: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)


def _require_account(session_factory: SessionFactory, account_id: int, *, user_id: int) -> None:
    if SQLModelAccountRepository(session_factory).get_by_id(account_id, user_id=user_id) is None:
        raise NotFoundError(f"Account {account_id} not found")


def _add_rows(
    session_factory: SessionFactory,
    rows: list[ParsedRow],
    result: ImportResult,
    *,
    account_id: int,
    user_id: int,
) -> None:
    for row in rows:
        try:
            add_transaction(
                session_factory,
                TransactionInput(
                    account_id=account_id,
                    txn_type=row.txn_type,
                    amount=row.amount,
                    category=row.category,
                    description=f"{IMPORT_PREFIX}{row.description}",
                    occurred_on=row.occurred_on,
                    occurred_time=row.occurred_time,
                ),
                user_id=user_id,
            )
        except ValidationError as exc:
            result.skipped += 1
            result.errors.append(f"Row {row.row_number}: {exc}")
            continue
        result.created += 1


def import_transactions_csv(
    session_factory: SessionFactory,
    csv_path: Path,
    *,
    account_id: int,
    user_id: int,
    mapping: ColumnMapping | None = None,
) -> ImportResult:
    """Import a CSV with Date, Description, Category, Type, Amount columns."""

    _require_account(session_factory, account_id, user_id=user_id)
    logger.info("Starting CSV import", extra={"path": str(csv_path), "account_id": account_id})

    rows, errors = load_csv_rows(csv_path=csv_path, mapping=mapping)
    result = ImportResult(skipped=len(errors), errors=list(errors))
    _add_rows(session_factory, rows, result, account_id=account_id, user_id=user_id)

    logger.info(
        "CSV import finished",
        extra={"created_count": result.created, "skipped": result.skipped},
    )
    return result


def import_backup_json(
    session_factory: SessionFactory,
    json_path: Path,
    *,
    account_id: int,
    user_id: int,
) -> ImportResult:
    """Import the ``transactions`` of a JSON backup into one account.

    Transfer legs are skipped: a single leg on its own would not balance.
    """

    _require_account(session_factory, account_id, user_id=user_id)
    try:
        document: Any = json.loads(Path(json_path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Backup is not valid JSON: {exc.msg}") from exc
    if not isinstance(document, dict) or not isinstance(document.get("transactions"), list):
        raise ValidationError("Backup must contain a 'transactions' list")

    result = ImportResult()
    rows: list[ParsedRow] = []
    for index, record in enumerate(document["transactions"], start=1):
        if not isinstance(record, dict):
            result.skipped += 1
            result.errors.append(f"Row {index}: not an object")
            continue
        try:
            rows.append(parse_row(record, BACKUP_MAPPING, index))
        except ValidationError as exc:
            result.skipped += 1
            result.errors.append(f"Row {index}: {exc}")

    _add_rows(session_factory, rows, result, account_id=account_id, user_id=user_id)
    logger.info(
        "Backup import finished",
        extra={"path": str(json_path), "created_count": result.created, "skipped": result.skipped},
    )
    return result
