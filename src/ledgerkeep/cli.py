"""Command line interface for LedgerKeep."""

from __future__ import annotations

import time as time_module
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import click

from .config import BaseConfig
from .errors import LedgerError
from .logging_config import setup_logging
from .services import budgeting, categories, export_csv, export_json, export_pdf, importers
from .services.currency import CURRENCY_CODES, CurrencyConverter, format_currency
from .services.ledger_service import (
    LedgerFilters,
    TransactionInput,
    compute_spending_by_category,
    compute_summary,
    filtered_transactions,
    top_categories,
)
from .services.recurring import RecurringInput
from .session import LedgerSession, open_ledger

DATE = click.DateTime(formats=["%Y-%m-%d"])


class LedgerGroup(click.Group):
    """Report ledger failures as one red line and a non-zero exit code."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except LedgerError as exc:
            click.secho(f"Error: {exc}", fg="red", err=True)
            ctx.exit(1)


def _ledger(ctx: click.Context) -> LedgerSession:
    state = ctx.find_root().ensure_object(dict)
    if "ledger" not in state:
        config: BaseConfig = state["config"]
        ledger = open_ledger(config)
        state["ledger"] = ledger
        ctx.find_root().call_on_close(ledger.close)
    return state["ledger"]


def _money(ledger: LedgerSession, amount) -> str:
    return format_currency(amount, ledger.config.BASE_CURRENCY)


def _as_date(value: Optional[datetime]) -> Optional[date]:
    return value.date() if value is not None else None


def _ok(message: str) -> None:
    click.secho(message, fg="green")


@click.group(cls=LedgerGroup)
@click.option("--quiet", is_flag=True, default=False, help="Skip log setup (console stays silent).")
@click.pass_context
def main(ctx: click.Context, quiet: bool) -> None:
    """LedgerKeep personal finance ledger."""

    config = BaseConfig()
    if not quiet:
        setup_logging(config)
    ctx.ensure_object(dict)["config"] = config


# Accounts


@main.group()
def accounts() -> None:
    """Manage accounts."""


@accounts.command("list")
@click.pass_context
def accounts_list(ctx: click.Context) -> None:
    ledger = _ledger(ctx)
    for account in ledger.accounts:
        click.echo(
            f"{account.id:>4}  {account.name:<24} {account.account_type:<9} "
            f"{_money(ledger, account.balance):>16}"
        )
    click.echo(f"Total: {_money(ledger, ledger.total_balance())}")


@accounts.command("add")
@click.argument("name")
@click.option("--type", "account_type", default="checking", show_default=True)
@click.option("--balance", "initial_balance", default="0", show_default=True)
@click.option("--color", default="")
@click.pass_context
def accounts_add(ctx, name, account_type, initial_balance, color) -> None:
    ledger = _ledger(ctx)
    account = ledger.create_account(name, account_type, initial_balance, color)
    _ok(f"Account {account.id} created: {account.name} ({_money(ledger, account.balance)})")


@accounts.command("update")
@click.argument("account_id", type=int)
@click.option("--name")
@click.option("--type", "account_type")
@click.option("--color")
@click.pass_context
def accounts_update(ctx, account_id, name, account_type, color) -> None:
    account = _ledger(ctx).update_account(
        account_id, name=name, account_type=account_type, color=color
    )
    _ok(f"Account {account.id} updated: {account.name}")


@accounts.command("delete")
@click.argument("account_id", type=int)
@click.pass_context
def accounts_delete(ctx, account_id) -> None:
    _ledger(ctx).delete_account(account_id)
    _ok(f"Account {account_id} deleted")


@accounts.command("dedupe")
@click.pass_context
def accounts_dedupe(ctx) -> None:
    """Remove duplicate accounts that have no transactions."""
    removed = _ledger(ctx).remove_duplicate_accounts()
    _ok(f"Removed {len(removed)} duplicate account(s)")


# Transactions


@main.group()
def transactions() -> None:
    """Record and browse transactions."""


@transactions.command("list")
@click.option("--account", "account_id", type=int)
@click.option("--type", "txn_type", type=click.Choice(["all", "income", "expense", "transfer"]), default="all")
@click.option("--category")
@click.option("--search", "text")
@click.option("--from", "start", type=DATE)
@click.option("--to", "end", type=DATE)
@click.option("--limit", type=int, default=50, show_default=True)
@click.pass_context
def transactions_list(ctx, account_id, txn_type, category, text, start, end, limit) -> None:
    ledger = _ledger(ctx)
    rows = filtered_transactions(
        ledger.transaction_repo,
        LedgerFilters(
            user_id=ledger.user_id,
            start_date=_as_date(start),
            end_date=_as_date(end),
            account_id=account_id,
            category=category,
            text=text,
            txn_type=txn_type,
        ),
    )
    for txn in rows[:limit]:
        click.echo(
            f"{txn.id:>5}  {txn.occurred_on.isoformat()} {txn.occurred_time.strftime('%H:%M')}  "
            f"{txn.txn_type:<8} {txn.category:<18} {_money(ledger, txn.amount):>14}  {txn.description}"
        )
    summary = compute_summary(rows)
    click.echo(
        f"{len(rows)} transaction(s)  income {_money(ledger, summary['income'])}  "
        f"expenses {_money(ledger, summary['expenses'])}  net {_money(ledger, summary['net'])}"
    )


@transactions.command("add")
@click.option("--account", "account_id", type=int, required=True)
@click.option("--type", "txn_type", type=click.Choice(["income", "expense"]), required=True)
@click.option("--amount", required=True)
@click.option("--category", required=True)
@click.option("--description", required=True)
@click.option("--date", "occurred_on", type=DATE)
@click.option("--time", "occurred_time", type=click.DateTime(formats=["%H:%M"]))
@click.pass_context
def transactions_add(ctx, account_id, txn_type, amount, category, description, occurred_on, occurred_time) -> None:
    ledger = _ledger(ctx)
    txn = ledger.add_transaction(
        TransactionInput(
            account_id=account_id,
            txn_type=txn_type,
            amount=amount,
            category=category,
            description=description,
            occurred_on=_as_date(occurred_on),
            occurred_time=occurred_time.time() if occurred_time else None,
        )
    )
    account = ledger.account(txn.account_id)
    balance = _money(ledger, account.balance) if account else "?"
    _ok(f"Transaction {txn.id} added; {account.name if account else txn.account_id} balance {balance}")


@transactions.command("delete")
@click.argument("transaction_id", type=int)
@click.pass_context
def transactions_delete(ctx, transaction_id) -> None:
    _ledger(ctx).delete_transaction(transaction_id)
    _ok(f"Transaction {transaction_id} deleted")


@transactions.command("summary")
@click.option("--month", help="YYYY-MM, defaults to the current month")
@click.option("--top", type=int, default=5, show_default=True)
@click.pass_context
def transactions_summary(ctx, month, top) -> None:
    ledger = _ledger(ctx)
    today = ledger.today()
    try:
        year, month_no = (int(part) for part in month.split("-")) if month else (today.year, today.month)
    except ValueError as exc:
        raise click.BadParameter("month must look like 2024-03", param_hint="--month") from exc
    totals = ledger.monthly_summary(year, month_no)
    click.echo(f"{year}-{month_no:02d}")
    for key in ("income", "expenses", "net"):
        click.echo(f"  {key:<9}{_money(ledger, totals[key]):>16}")
    month_rows = [t for t in ledger.transactions if (t.occurred_on.year, t.occurred_on.month) == (year, month_no)]
    for entry in top_categories(compute_spending_by_category(month_rows), limit=top):
        click.echo(f"  {entry['name']:<20}{_money(ledger, entry['amount']):>14}")


@main.command()
@click.argument("from_account_id", type=int)
@click.argument("to_account_id", type=int)
@click.argument("amount")
@click.option("--description")
@click.pass_context
def transfer(ctx, from_account_id, to_account_id, amount, description) -> None:
    """Move funds between two accounts."""
    ledger = _ledger(ctx)
    result = ledger.transfer(from_account_id, to_account_id, amount, description)
    _ok(
        f"Transferred {_money(ledger, result.outgoing.amount)}; "
        f"balances now {_money(ledger, result.from_balance)} / {_money(ledger, result.to_balance)}"
    )


# Recurring


@main.group()
def recurring() -> None:
    """Manage recurring transactions."""


@recurring.command("list")
@click.pass_context
def recurring_list(ctx) -> None:
    ledger = _ledger(ctx)
    for item in ledger.recurring:
        state = "active" if item.is_active else "paused"
        click.echo(
            f"{item.id:>4}  {item.frequency:<8} next {item.next_occurrence.isoformat()}  {state:<6} "
            f"{item.category:<16} {_money(ledger, item.amount):>14}  {item.description}"
        )


@recurring.command("add")
@click.option("--account", "account_id", type=int, required=True)
@click.option("--type", "txn_type", type=click.Choice(["income", "expense"]), required=True)
@click.option("--amount", required=True)
@click.option("--category", required=True)
@click.option("--description", required=True)
@click.option("--frequency", type=click.Choice(["daily", "weekly", "monthly", "yearly"]), default="monthly")
@click.option("--start", "start_date", type=DATE, required=True)
@click.option("--end", "end_date", type=DATE)
@click.pass_context
def recurring_add(ctx, account_id, txn_type, amount, category, description, frequency, start_date, end_date) -> None:
    definition = _ledger(ctx).create_recurring(
        RecurringInput(
            account_id=account_id,
            txn_type=txn_type,
            amount=amount,
            category=category,
            description=description,
            frequency=frequency,
            start_date=_as_date(start_date),
            end_date=_as_date(end_date),
        )
    )
    _ok(f"Recurring transaction {definition.id} created ({definition.frequency})")


@recurring.command("add-transfer")
@click.option("--from", "from_account_id", type=int, required=True)
@click.option("--to", "to_account_id", type=int, required=True)
@click.option("--amount", required=True)
@click.option("--frequency", type=click.Choice(["daily", "weekly", "monthly", "yearly"]), default="monthly")
@click.option("--start", "start_date", type=DATE, required=True)
@click.option("--end", "end_date", type=DATE)
@click.option("--description")
@click.pass_context
def recurring_add_transfer(ctx, from_account_id, to_account_id, amount, frequency, start_date, end_date, description) -> None:
    outgoing, incoming = _ledger(ctx).create_recurring_transfer(
        from_account_id=from_account_id,
        to_account_id=to_account_id,
        amount=amount,
        frequency=frequency,
        start_date=_as_date(start_date),
        end_date=_as_date(end_date),
        description=description,
    )
    _ok(f"Recurring transfer created ({outgoing.id} out, {incoming.id} in)")


@recurring.command("update")
@click.argument("recurring_id", type=int)
@click.option("--amount")
@click.option("--category")
@click.option("--description")
@click.option("--frequency", type=click.Choice(["daily", "weekly", "monthly", "yearly"]))
@click.option("--start", "start_date", type=DATE)
@click.option("--end", "end_date", type=DATE)
@click.option("--no-end", "clear_end_date", is_flag=True, default=False)
@click.pass_context
def recurring_update(ctx, recurring_id, amount, category, description, frequency, start_date, end_date, clear_end_date) -> None:
    definition = _ledger(ctx).update_recurring(
        recurring_id,
        amount=amount,
        category=category,
        description=description,
        frequency=frequency,
        start_date=_as_date(start_date),
        end_date=_as_date(end_date),
        clear_end_date=clear_end_date,
    )
    _ok(f"Recurring transaction {definition.id} updated")


@recurring.command("pause")
@click.argument("recurring_id", type=int)
@click.pass_context
def recurring_pause(ctx, recurring_id) -> None:
    updated = _ledger(ctx).toggle_recurring(recurring_id, False)
    _ok(f"Paused {len(updated)} recurring definition(s)")


@recurring.command("resume")
@click.argument("recurring_id", type=int)
@click.pass_context
def recurring_resume(ctx, recurring_id) -> None:
    updated = _ledger(ctx).toggle_recurring(recurring_id, True)
    _ok(f"Resumed {len(updated)} recurring definition(s)")


@recurring.command("delete")
@click.argument("recurring_id", type=int)
@click.pass_context
def recurring_delete(ctx, recurring_id) -> None:
    removed = _ledger(ctx).delete_recurring(recurring_id)
    _ok(f"Deleted {len(removed)} recurring definition(s)")


@main.command("process-recurring")
@click.option("--date", "as_of", type=DATE, help="Process as if today were this date.")
@click.pass_context
def process_recurring(ctx, as_of) -> None:
    """Materialize due recurring transactions."""
    result = _ledger(ctx).process_recurring(_as_date(as_of))
    if result is None:
        click.echo("A recurrence pass is already running")
        return
    _ok(f"Created {len(result.created)} transaction(s) from {len(result.processed)} definition(s)")
    for message in result.errors:
        click.secho(f"  {message}", fg="yellow")


# Categories


@main.group("categories")
def categories_group() -> None:
    """Manage categories."""


@categories_group.command("list")
@click.pass_context
def categories_list(ctx) -> None:
    ledger = _ledger(ctx)
    for category in ledger.category_repo.list_all(user_id=ledger.user_id):
        click.echo(f"{category.id:>4}  {category.category_type:<8} {category.name}")


@categories_group.command("add")
@click.argument("name")
@click.option("--type", "category_type", type=click.Choice(["income", "expense"]), default="expense")
@click.pass_context
def categories_add(ctx, name, category_type) -> None:
    ledger = _ledger(ctx)
    category, created = categories.add_category(
        ledger.category_repo, name, category_type, user_id=ledger.user_id
    )
    if created:
        _ok(f"Category {category.name!r} added")
    else:
        click.echo(f"Category {category.name!r} already exists")


@categories_group.command("delete")
@click.argument("category_id", type=int)
@click.pass_context
def categories_delete(ctx, category_id) -> None:
    ledger = _ledger(ctx)
    categories.delete_category(ledger.category_repo, category_id, user_id=ledger.user_id)
    _ok(f"Category {category_id} deleted")


# Budgets


@main.group()
def budgets() -> None:
    """Manage budgets and alerts."""


@budgets.command("list")
@click.pass_context
def budgets_list(ctx) -> None:
    ledger = _ledger(ctx)
    for status in ledger.budget_statuses():
        color = "red" if status.percentage >= 100 else (
            "yellow" if status.percentage >= status.budget.alert_threshold else None
        )
        click.secho(
            f"{status.budget.id:>4}  {status.budget.category:<20} {status.budget.period:<8} "
            f"{_money(ledger, status.spent):>14} / {_money(ledger, status.budget.amount):<14} "
            f"{status.percentage:5.1f}%",
            fg=color,
        )


@budgets.command("add")
@click.argument("category")
@click.argument("amount")
@click.option("--period", type=click.Choice(["weekly", "monthly", "yearly"]), default="monthly")
@click.option("--threshold", "alert_threshold", type=int, default=80, show_default=True)
@click.pass_context
def budgets_add(ctx, category, amount, period, alert_threshold) -> None:
    ledger = _ledger(ctx)
    budget = budgeting.create_budget(
        ledger.budget_repo,
        user_id=ledger.user_id,
        category=category,
        amount=amount,
        period=period,
        alert_threshold=alert_threshold,
    )
    _ok(f"Budget {budget.id} created for {budget.category}")


@budgets.command("update")
@click.argument("budget_id", type=int)
@click.option("--amount")
@click.option("--period", type=click.Choice(["weekly", "monthly", "yearly"]))
@click.option("--threshold", "alert_threshold", type=int)
@click.pass_context
def budgets_update(ctx, budget_id, amount, period, alert_threshold) -> None:
    ledger = _ledger(ctx)
    budgeting.update_budget(
        ledger.budget_repo,
        budget_id,
        user_id=ledger.user_id,
        amount=amount,
        period=period,
        alert_threshold=alert_threshold,
    )
    _ok(f"Budget {budget_id} updated")


@budgets.command("delete")
@click.argument("budget_id", type=int)
@click.pass_context
def budgets_delete(ctx, budget_id) -> None:
    ledger = _ledger(ctx)
    budgeting.delete_budget(ledger.budget_repo, budget_id, user_id=ledger.user_id)
    _ok(f"Budget {budget_id} deleted")


@budgets.command("alerts")
@click.option("--unread", is_flag=True, default=False)
@click.option("--mark-read", is_flag=True, default=False)
@click.pass_context
def budgets_alerts(ctx, unread, mark_read) -> None:
    ledger = _ledger(ctx)
    ledger.budget_statuses()
    for alert in ledger.budget_repo.list_alerts(user_id=ledger.user_id, unread_only=unread):
        click.secho(
            f"[{alert.alert_type}] {alert.message}",
            fg="red" if alert.alert_type == budgeting.ALERT_EXCEEDED else "yellow",
        )
    if mark_read:
        count = ledger.budget_repo.mark_alerts_read(user_id=ledger.user_id)
        click.echo(f"Marked {count} alert(s) as read")


# Export / import


@main.command("export")
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--format", "fmt", type=click.Choice(["csv", "json", "pdf"]))
@click.pass_context
def export_command(ctx, output: Path, fmt: Optional[str]) -> None:
    """Export transactions as CSV, a JSON backup, or a PDF report."""
    ledger = _ledger(ctx)
    fmt = fmt or output.suffix.lstrip(".").lower() or "csv"
    if fmt == "csv":
        export_csv.export_transactions_csv(transactions=ledger.transactions, output_path=output)
    elif fmt == "json":
        export_json.export_backup_json(
            accounts=ledger.accounts, transactions=ledger.transactions, output_path=output
        )
    elif fmt == "pdf":
        export_pdf.export_transactions_pdf(
            transactions=ledger.transactions,
            output_path=output,
            currency=ledger.config.BASE_CURRENCY,
        )
    else:
        raise click.BadParameter(f"unsupported format {fmt!r}", param_hint="--format")
    _ok(f"Exported {len(ledger.transactions)} transaction(s) to {output}")


@main.command("import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--account", "account_id", type=int, required=True)
@click.pass_context
def import_command(ctx, source: Path, account_id: int) -> None:
    """Import a CSV export or JSON backup into an account."""
    ledger = _ledger(ctx)
    if source.suffix.lower() == ".json":
        result = importers.import_backup_json(
            ledger.session_factory, source, account_id=account_id, user_id=ledger.user_id
        )
    else:
        result = importers.import_transactions_csv(
            ledger.session_factory, source, account_id=account_id, user_id=ledger.user_id
        )
    ledger.refresh()
    ledger.drain_sync()
    _ok(f"Imported {result.created} transaction(s), skipped {result.skipped}")
    for message in result.errors:
        click.secho(f"  {message}", fg="yellow")


@main.command()
@click.argument("amount")
@click.argument("from_code", type=click.Choice(CURRENCY_CODES, case_sensitive=False))
@click.argument("to_code", type=click.Choice(CURRENCY_CODES, case_sensitive=False))
@click.option("--refresh", is_flag=True, default=False, help="Ignore cached rates.")
@click.pass_context
def convert(ctx, amount, from_code, to_code, refresh) -> None:
    """Convert an amount between currencies."""
    ledger = _ledger(ctx)
    config = ledger.config
    converter = CurrencyConverter(
        ledger.settings_repo,
        base_currency=config.BASE_CURRENCY,
        rates_url=config.RATES_URL,
        cache_seconds=config.RATES_CACHE_SECONDS,
        timeout=config.HTTP_TIMEOUT,
    )
    try:
        if refresh:
            converter.rates(refresh=True)
        result = converter.convert(amount, from_code, to_code)
    finally:
        converter.close()
    click.echo(
        f"{format_currency(amount, from_code.upper())} = {format_currency(result, to_code.upper())}"
    )
    if converter.using_fallback:
        click.secho("Live rates unavailable; used approximate values", fg="yellow")


@main.command()
@click.pass_context
def sync(ctx) -> None:
    """Push pending transactions to the sync webhook."""
    ledger = _ledger(ctx)
    if ledger.dispatcher is None:
        click.echo("Sync is not configured (set LEDGERKEEP_SYNC_URL)")
        return
    result = ledger.drain_sync()
    if result is None:
        click.secho("Sync failed; see the log for details", fg="yellow")
        return
    _ok(f"Delivered {result.delivered}, retrying {result.retried}, failed {result.failed}")


@main.command("run-scheduler")
@click.pass_context
def run_scheduler(ctx) -> None:
    """Run recurring processing and sync on an interval until interrupted."""
    from .scheduler import create_scheduler

    scheduler = create_scheduler(_ledger(ctx), auto_start=True)
    click.echo(f"Scheduler running every {scheduler.interval_minutes} minute(s); Ctrl+C to stop")
    try:
        while True:
            time_module.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop()


if __name__ == "__main__":  # pragma: no cover
    main()
