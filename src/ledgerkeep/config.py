"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "LedgerKeep"
    DB_FILENAME = "ledgerkeep.db"
    DEFAULT_RATES_URL = "https://api.frankfurter.app"
    RATES_CACHE_SECONDS = 60 * 60
    SQLITE_PRAGMAS = {"journal_mode": "wal", "foreign_keys": "on"}

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("LEDGERKEEP_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("LEDGERKEEP_DATABASE_URL", self._build_sqlite_url())
        self.BASE_CURRENCY = os.getenv("LEDGERKEEP_BASE_CURRENCY", "INR").strip().upper()
        self.RATES_URL = os.getenv("LEDGERKEEP_RATES_URL", self.DEFAULT_RATES_URL).rstrip("/")
        self.SYNC_URL = os.getenv("LEDGERKEEP_SYNC_URL") or None
        self.SYNC_MAX_ATTEMPTS = _env_int("LEDGERKEEP_SYNC_MAX_ATTEMPTS", 5)
        self.SCHEDULER_INTERVAL_MINUTES = _env_int("LEDGERKEEP_SCHEDULER_INTERVAL_MINUTES", 60)
        self.HTTP_TIMEOUT = float(os.getenv("LEDGERKEEP_HTTP_TIMEOUT", "10"))
        if len(self.BASE_CURRENCY) != 3:
            raise ValueError("LEDGERKEEP_BASE_CURRENCY must be a 3-letter ISO-4217 code.")

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("LEDGERKEEP_DATA_DIR", "instance")
        base_path = Path(data_root).expanduser()
        try:
            path = base_path.resolve()
            path.mkdir(parents=True, exist_ok=True)
            return path
        except PermissionError:
            # Protected locations fall back to user-local storage.
            fallback_path = Path.home() / ".local" / "share" / self.APP_NAME.lower()
            fallback_path.mkdir(parents=True, exist_ok=True)
            return fallback_path.resolve()

    def _build_sqlite_url(self) -> str:
        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        engine_options: dict[str, Any] = {}
        if self.DATABASE_URL.startswith("sqlite"):
            engine_options["connect_args"] = {"check_same_thread": False}
        return engine_options


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True
    TESTING = False
