"""PDF transaction history rendered with matplotlib's PDF backend."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Iterable

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.backends.backend_pdf import PdfPages

from ..models.transaction import Transaction
from .ledger_service import compute_summary

PAGE_SIZE = (8.27, 11.69)  # A4 portrait, inches
ROWS_PER_PAGE = 32
COLUMNS = ["Date", "Description", "Category", "Type", "Amount"]
TYPE_COLORS = {"income": "#22c55e", "expense": "#ef4444"}


def _money(value, currency: str) -> str:
    return f"{currency} {value:,.2f}"


def _rows(transactions: list[Transaction], currency: str) -> list[list[str]]:
    return [
        [
            txn.occurred_on.strftime("%d/%m/%Y"),
            txn.description[:40],
            txn.category,
            txn.txn_type.capitalize(),
            _money(txn.amount, currency),
        ]
        for txn in transactions
    ]


def _draw_table(fig, rows: list[list[str]], top: float) -> None:
    ax = fig.add_axes([0.06, 0.04, 0.88, top - 0.04])
    ax.axis("off")
    if not rows:
        ax.text(0.5, 0.9, "No transactions", ha="center", va="top", fontsize=11, color="#666")
        return
    table = ax.table(
        cellText=rows,
        colLabels=COLUMNS,
        colWidths=[0.14, 0.36, 0.18, 0.12, 0.2],
        loc="upper center",
        cellLoc="left",
    )
    table.auto_set_font_size(False)
    table.set_fontsize(8)
    table.scale(1, 1.3)
    for (row, col), cell in table.get_celld().items():
        if row == 0:
            cell.set_facecolor("#000000")
            cell.get_text().set_color("#ffffff")
            cell.get_text().set_weight("bold")
            continue
        if row % 2 == 0:
            cell.set_facecolor("#f5f5f5")
        if col == 3:
            color = TYPE_COLORS.get(rows[row - 1][3].lower())
            if color:
                cell.get_text().set_color(color)
        if col == 4:
            cell.get_text().set_horizontalalignment("right")


def export_transactions_pdf(
    *,
    transactions: Iterable[Transaction],
    output_path: Path,
    currency: str = "INR",
    generated_on: date | None = None,
) -> Path:
    """Write a "Transaction History" report: title, date, totals, then the table."""

    txs = list(transactions)
    summary = compute_summary(txs)
    rows = _rows(txs, currency)
    chunks = [rows[i : i + ROWS_PER_PAGE] for i in range(0, len(rows), ROWS_PER_PAGE)] or [[]]
    generated = (generated_on or date.today()).strftime("%d/%m/%Y")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with PdfPages(output_path) as pdf:
        for index, chunk in enumerate(chunks):
            fig = plt.figure(figsize=PAGE_SIZE)
            if index == 0:
                fig.text(0.06, 0.95, "Transaction History", fontsize=18, weight="bold")
                fig.text(0.06, 0.925, f"Generated on: {generated}", fontsize=10)
                fig.text(0.06, 0.9, f"Total Income: {_money(summary['income'], currency)}", fontsize=11)
                fig.text(0.06, 0.88, f"Total Expenses: {_money(summary['expenses'], currency)}", fontsize=11)
                fig.text(0.06, 0.86, f"Net Balance: {_money(summary['net'], currency)}", fontsize=11)
                _draw_table(fig, chunk, top=0.84)
            else:
                _draw_table(fig, chunk, top=0.95)
            fig.text(0.94, 0.02, f"Page {index + 1} of {len(chunks)}", fontsize=8, ha="right")
            pdf.savefig(fig)
            plt.close(fig)

        info = pdf.infodict()
        info["Title"] = "Transaction History"
    return output_path
