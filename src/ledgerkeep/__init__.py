"""LedgerKeep personal finance ledger package."""

from __future__ import annotations

from .config import BaseConfig, DevConfig
from .session import LedgerSession, open_ledger

__all__ = ["BaseConfig", "DevConfig", "LedgerSession", "open_ledger"]
