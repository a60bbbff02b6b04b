"""Recurring transaction definitions and materialization of due occurrences.

A definition is either an income/expense template or one half of a paired
transfer. ``process_due`` turns every due occurrence into a real ledger entry
and moves the definition forward by one period per occurrence, stopping at the
definition's end date.
"""

from __future__ import annotations

import calendar
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from ..errors import LedgerError, NotFoundError, ValidationError
from ..infra.database import SessionFactory, translate_store_errors
from ..infra.repositories.account import SQLModelAccountRepository
from ..infra.repositories.recurring import SQLModelRecurringRepository
from ..logging_config import get_logger
from ..models.recurring import FREQUENCIES, RecurringTransaction
from ..models.transaction import TRANSFER_IN, TRANSFER_OUT, Transaction
from . import sync
from .balances import apply_delta, signed_delta, to_positive_amount

logger = get_logger("recurring")


def _add_months(value: date, months: int, anchor_day: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(anchor_day, last_day))


def advance_date(current: date, frequency: str, anchor_day: Optional[int] = None) -> date:
    """Return the occurrence after ``current``.

    Monthly and yearly steps land on ``anchor_day`` (normally the start date's
    day), clamped to the end of shorter months: Jan 31, Feb 29, Mar 31.
    """

    day = anchor_day or current.day
    if frequency == "daily":
        return current + timedelta(days=1)
    if frequency == "weekly":
        return current + timedelta(weeks=1)
    if frequency == "monthly":
        return _add_months(current, 1, day)
    if frequency == "yearly":
        return _add_months(current, 12, day)
    raise ValidationError(f"Unknown frequency: {frequency!r}")


@dataclass
class RecurringInput:
    """Fields for a new income/expense definition."""

    account_id: Optional[int]
    txn_type: str
    amount: object
    category: str
    description: str
    frequency: str
    start_date: Optional[date]
    end_date: Optional[date] = None
    next_occurrence: Optional[date] = None


@dataclass
class ProcessResult:
    """Outcome of one recurrence pass."""

    processed: list[int] = field(default_factory=list)
    created: list[Transaction] = field(default_factory=list)
    deactivated: list[int] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.created or self.deactivated)


def _validate_schedule(frequency: str, start_date: Optional[date], end_date: Optional[date]) -> str:
    freq = (frequency or "").strip().lower()
    if freq not in FREQUENCIES:
        raise ValidationError(f"frequency must be one of {', '.join(FREQUENCIES)}")
    if start_date is None:
        raise ValidationError("start date is required")
    if end_date is not None and end_date < start_date:
        raise ValidationError("end date cannot be before start date")
    return freq


def _require_text(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def _require_account(session_factory: SessionFactory, account_id: Optional[int], *, user_id: int):
    if account_id is None:
        raise ValidationError("account is required")
    account = SQLModelAccountRepository(session_factory).get_by_id(account_id, user_id=user_id)
    if account is None:
        raise NotFoundError(f"Account {account_id} not found")
    return account


def create_recurring(
    session_factory: SessionFactory, data: RecurringInput, *, user_id: int
) -> RecurringTransaction:
    """Store an income or expense definition. The first occurrence is its start date."""

    txn_type = _require_text(data.txn_type, "type").lower()
    if txn_type not in ("income", "expense"):
        raise ValidationError("type must be income or expense; use a recurring transfer instead")
    amount = to_positive_amount(data.amount)
    category = _require_text(data.category, "category")
    description = _require_text(data.description, "description")
    frequency = _validate_schedule(data.frequency, data.start_date, data.end_date)
    next_occurrence = data.next_occurrence or data.start_date
    if next_occurrence < data.start_date:
        raise ValidationError("next occurrence cannot be before start date")

    with translate_store_errors("create recurring transaction"):
        _require_account(session_factory, data.account_id, user_id=user_id)
        definition = SQLModelRecurringRepository(session_factory).create(
            RecurringTransaction(
                user_id=user_id,
                account_id=data.account_id,
                txn_type=txn_type,
                amount=amount,
                category=category,
                description=description,
                frequency=frequency,
                start_date=data.start_date,
                end_date=data.end_date,
                next_occurrence=next_occurrence,
            ),
            user_id=user_id,
        )
    logger.info(
        "Recurring transaction created",
        extra={"recurring_id": definition.id, "frequency": frequency, "amount": str(amount)},
    )
    return definition


def create_recurring_transfer(
    session_factory: SessionFactory,
    *,
    user_id: int,
    from_account_id: int,
    to_account_id: int,
    amount: object,
    frequency: str,
    start_date: Optional[date],
    end_date: Optional[date] = None,
    description: Optional[str] = None,
) -> tuple[RecurringTransaction, RecurringTransaction]:
    """Store a paired transfer as two definitions sharing one group id."""

    if from_account_id == to_account_id:
        raise ValidationError("Cannot transfer to the same account")
    value = to_positive_amount(amount)
    freq = _validate_schedule(frequency, start_date, end_date)

    with translate_store_errors("create recurring transfer"):
        source = _require_account(session_factory, from_account_id, user_id=user_id)
        target = _require_account(session_factory, to_account_id, user_id=user_id)
        group_id = uuid.uuid4().hex
        note = (description or "").strip()
        common = dict(
            user_id=user_id,
            txn_type="transfer",
            amount=value,
            frequency=freq,
            start_date=start_date,
            end_date=end_date,
            next_occurrence=start_date,
            transfer_group_id=group_id,
        )
        outgoing, incoming = SQLModelRecurringRepository(session_factory).bulk_create(
            [
                RecurringTransaction(
                    account_id=from_account_id,
                    category=TRANSFER_OUT,
                    description=note or f"Transfer to {target.name}",
                    **common,
                ),
                RecurringTransaction(
                    account_id=to_account_id,
                    category=TRANSFER_IN,
                    description=note or f"Transfer from {source.name}",
                    **common,
                ),
            ],
            user_id=user_id,
        )
    logger.info(
        "Recurring transfer created",
        extra={"transfer_group_id": group_id, "frequency": freq, "amount": str(value)},
    )
    return outgoing, incoming


def _group_of(
    repo: SQLModelRecurringRepository, recurring_id: int, *, user_id: int
) -> list[RecurringTransaction]:
    definition = repo.get_by_id(recurring_id, user_id=user_id)
    if definition is None:
        raise NotFoundError(f"Recurring transaction {recurring_id} not found")
    if definition.transfer_group_id:
        return repo.list_group(definition.transfer_group_id, user_id=user_id)
    return [definition]


_SHARED_FIELDS = ("amount", "frequency", "start_date", "end_date")


def update_recurring(
    session_factory: SessionFactory,
    recurring_id: int,
    *,
    user_id: int,
    amount: object = None,
    category: Optional[str] = None,
    description: Optional[str] = None,
    frequency: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    clear_end_date: bool = False,
) -> RecurringTransaction:
    """Edit a definition.

    Amount and schedule changes to one half of a paired transfer are applied to
    both halves so the legs stay balanced. Every check runs before anything is
    written, and the group is saved in one transaction.
    """

    repo = SQLModelRecurringRepository(session_factory)
    with translate_store_errors("update recurring transaction"):
        group = _group_of(repo, recurring_id, user_id=user_id)
        target = next(item for item in group if item.id == recurring_id)

        changes: dict[str, object] = {}
        if amount is not None:
            changes["amount"] = to_positive_amount(amount)
        if frequency is not None:
            changes["frequency"] = frequency
        if start_date is not None:
            changes["start_date"] = start_date
        if end_date is not None or clear_end_date:
            changes["end_date"] = None if clear_end_date else end_date

        new_start = changes.get("start_date", target.start_date)
        new_end = changes.get("end_date", target.end_date)
        changes["frequency"] = _validate_schedule(
            changes.get("frequency", target.frequency), new_start, new_end  # type: ignore[arg-type]
        )
        if category is not None:
            if target.txn_type == "transfer":
                raise ValidationError("The category of a transfer definition is fixed")
            changes["category"] = _require_text(category, "category")
        if description is not None:
            changes["description"] = _require_text(description, "description")

        now = datetime.now(timezone.utc)
        for item in group:
            for name, value in changes.items():
                if item.id == recurring_id or name in _SHARED_FIELDS:
                    setattr(item, name, value)
            if item.next_occurrence < item.start_date:
                item.next_occurrence = item.start_date
            item.updated_at = now
        saved = repo.update_many(group, user_id=user_id)
    logger.info("Recurring transaction updated", extra={"recurring_id": recurring_id})
    return next(item for item in saved if item.id == recurring_id)


def toggle_recurring(
    session_factory: SessionFactory, recurring_id: int, is_active: bool, *, user_id: int
) -> list[RecurringTransaction]:
    """Activate or pause a definition together with its transfer partner."""

    repo = SQLModelRecurringRepository(session_factory)
    with translate_store_errors("toggle recurring transaction"):
        group = _group_of(repo, recurring_id, user_id=user_id)
        now = datetime.now(timezone.utc)
        for item in group:
            item.is_active = is_active
            item.updated_at = now
        updated = repo.update_many(group, user_id=user_id)
    logger.info(
        "Recurring transaction %s", "activated" if is_active else "paused",
        extra={"recurring_ids": [item.id for item in updated]},
    )
    return updated


def delete_recurring(session_factory: SessionFactory, recurring_id: int, *, user_id: int) -> list[int]:
    """Delete a definition and its transfer partner. Past entries are kept."""

    repo = SQLModelRecurringRepository(session_factory)
    with translate_store_errors("delete recurring transaction"):
        removed = [item.id for item in _group_of(repo, recurring_id, user_id=user_id)]
        repo.delete_many(removed, user_id=user_id)
    logger.info("Recurring transaction deleted", extra={"recurring_ids": removed})
    return removed


def list_recurring(session_factory: SessionFactory, *, user_id: int) -> list[RecurringTransaction]:
    with translate_store_errors("list recurring transactions"):
        return SQLModelRecurringRepository(session_factory).list_all(user_id=user_id)


def _occurrence_group_id(definition: RecurringTransaction, occurrence: date) -> Optional[str]:
    # Both halves of a paired transfer derive the same id for the same date.
    if not definition.transfer_group_id:
        return None
    return uuid.uuid5(
        uuid.NAMESPACE_OID, f"{definition.transfer_group_id}:{occurrence.isoformat()}"
    ).hex


def _materialize(
    session_factory: SessionFactory,
    recurring_id: int,
    *,
    user_id: int,
    today: date,
    result: ProcessResult,
) -> None:
    with translate_store_errors("process recurring transaction"):
        with session_factory() as session:
            definition = session.get(RecurringTransaction, recurring_id)
            if definition is None or not definition.is_active or definition.user_id != user_id:
                return

            anchor_day = definition.start_date.day
            delta = signed_delta(definition.txn_type, definition.amount, definition.category)
            created: list[Transaction] = []
            while definition.next_occurrence <= today and (
                definition.end_date is None or definition.next_occurrence <= definition.end_date
            ):
                occurrence = definition.next_occurrence
                txn = Transaction(
                    user_id=user_id,
                    account_id=definition.account_id,
                    txn_type=definition.txn_type,
                    amount=definition.amount,
                    category=definition.category,
                    description=definition.description,
                    occurred_on=occurrence,
                    occurred_time=time(0, 0),
                    transfer_group_id=_occurrence_group_id(definition, occurrence),
                )
                session.add(txn)
                session.flush()
                apply_delta(session, definition.account_id, delta, user_id=user_id)
                sync.enqueue(session, txn)
                created.append(txn)
                definition.next_occurrence = advance_date(
                    occurrence, definition.frequency, anchor_day
                )

            expired = (
                definition.end_date is not None and definition.next_occurrence > definition.end_date
            )
            if expired:
                definition.is_active = False
            definition.last_processed = today
            definition.updated_at = datetime.now(timezone.utc)
            session.add(definition)
            session.commit()
            for txn in created:
                session.refresh(txn)
            session.expunge_all()

    result.processed.append(recurring_id)
    result.created.extend(created)
    if expired:
        result.deactivated.append(recurring_id)
    logger.info(
        "Recurring transaction processed",
        extra={
            "recurring_id": recurring_id,
            "created_count": len(created),
            "next_occurrence": definition.next_occurrence.isoformat(),
            "is_active": definition.is_active,
        },
    )


def process_due(
    session_factory: SessionFactory, *, user_id: int, today: Optional[date] = None
) -> ProcessResult:
    """Materialize every occurrence due on or before ``today``.

    Each definition commits on its own; a failure is logged and recorded in
    the result and the pass continues with the next definition.
    """

    today = today or date.today()
    result = ProcessResult()
    with translate_store_errors("load due recurring transactions"):
        due = SQLModelRecurringRepository(session_factory).list_due(today, user_id=user_id)

    for definition in due:
        try:
            _materialize(session_factory, definition.id, user_id=user_id, today=today, result=result)
        except LedgerError as exc:
            logger.exception(
                "Recurring transaction failed", extra={"recurring_id": definition.id}
            )
            result.errors.append(f"{definition.description}: {exc}")

    if due:
        logger.info(
            "Recurrence pass finished",
            extra={
                "due": len(due),
                "processed": len(result.processed),
                "created_count": len(result.created),
                "failed": len(result.errors),
            },
        )
    return result
