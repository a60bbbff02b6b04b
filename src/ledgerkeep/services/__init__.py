"""Service module exports."""

from . import (
    balances,
    budgeting,
    categories,
    currency,
    export_csv,
    export_json,
    export_pdf,
    import_csv,
    importers,
    ledger_service,
    recurring,
    sync,
    transfers,
    users,
)

__all__ = [
    "balances",
    "budgeting",
    "categories",
    "currency",
    "export_csv",
    "export_json",
    "export_pdf",
    "import_csv",
    "importers",
    "ledger_service",
    "recurring",
    "sync",
    "transfers",
    "users",
]
