"""CSV ingestion utilities."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Mapping, Optional

import pandas as pd

from ..errors import ValidationError
from .balances import to_positive_amount

DATE_FORMATS = ["%Y-%m-%d", "%d/%m/%Y", "%m/%d/%Y", "%Y/%m/%d", "%d-%m-%Y", "%m-%d-%Y"]
IMPORTABLE_TYPES = ("income", "expense")


@dataclass(slots=True)
class ColumnMapping:
    """Maps expected transaction fields to (lower-cased) CSV headers."""

    date: str = "date"
    description: str = "description"
    category: str = "category"
    txn_type: str = "type"
    amount: str = "amount"
    time: str | None = "time"


@dataclass(slots=True)
class ParsedRow:
    """One CSV row that passed validation."""

    row_number: int
    occurred_on: date
    occurred_time: Optional[time]
    txn_type: str
    amount: Decimal
    category: str
    description: str


def normalize_frame(*, file_path: Path, encoding: str = "utf-8-sig") -> pd.DataFrame:
    """Load a CSV file into a DataFrame with consistent column casing.

    Headers are lower-cased and a trailing unit such as ``Amount (₹)`` is
    dropped. Every cell is read as text.
    """

    frame = pd.read_csv(file_path, encoding=encoding, dtype=str, keep_default_na=False)
    frame.columns = [re.sub(r"\s*\(.*\)$", "", str(c)).strip().lower() for c in frame.columns]
    return frame


def parse_date(raw: object) -> date:
    text = str(raw or "").strip()
    if not text:
        raise ValidationError("date is required")
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError as exc:
        raise ValidationError(f"could not parse date {text!r}") from exc


def parse_time(raw: object) -> Optional[time]:
    text = str(raw or "").strip()
    if not text:
        return None
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"could not parse time {text!r}")


def parse_row(row: Mapping, mapping: ColumnMapping, row_number: int) -> ParsedRow:
    """Validate one row. Raises ``ValidationError`` naming the first bad field."""

    txn_type = str(row.get(mapping.txn_type) or "").strip().lower()
    if txn_type not in IMPORTABLE_TYPES:
        raise ValidationError(f"type must be income or expense, got {txn_type or 'nothing'!r}")
    category = str(row.get(mapping.category) or "").strip()
    if not category:
        raise ValidationError("category is required")
    description = str(row.get(mapping.description) or "").strip()
    if not description:
        raise ValidationError("description is required")
    return ParsedRow(
        row_number=row_number,
        occurred_on=parse_date(row.get(mapping.date)),
        occurred_time=parse_time(row.get(mapping.time)) if mapping.time else None,
        txn_type=txn_type,
        amount=to_positive_amount(row.get(mapping.amount)),
        category=category,
        description=description,
    )


def parse_rows(
    *, rows: Iterable[Mapping], mapping: ColumnMapping
) -> tuple[list[ParsedRow], list[str]]:
    """Split rows into parsed entries and ``"Row N: reason"`` errors.

    Row numbers count the header as row 1, matching what a spreadsheet shows.
    """

    parsed: list[ParsedRow] = []
    errors: list[str] = []
    for row_number, row in enumerate(rows, start=2):
        try:
            parsed.append(parse_row(row, mapping, row_number))
        except ValidationError as exc:
            errors.append(f"Row {row_number}: {exc}")
    return parsed, errors


def load_csv_rows(
    *, csv_path: Path, mapping: ColumnMapping | None = None
) -> tuple[list[ParsedRow], list[str]]:
    """Parse the file and return valid rows plus per-row errors."""

    mapping = mapping or ColumnMapping()
    frame = normalize_frame(file_path=csv_path)
    required = [mapping.date, mapping.description, mapping.category, mapping.txn_type, mapping.amount]
    missing = [column for column in required if column not in frame.columns]
    if missing:
        raise ValidationError(f"CSV is missing column(s): {', '.join(missing)}")
    return parse_rows(rows=frame.to_dict("records"), mapping=mapping)
