"""Configuration loading from the environment."""

from __future__ import annotations

import pytest

from ledgerkeep.config import BaseConfig
from ledgerkeep.infra.database import bootstrap_database, create_db_engine


def test_defaults(ledger_env, monkeypatch):
    monkeypatch.delenv("LEDGERKEEP_DATABASE_URL")

    config = BaseConfig()

    assert config.DATA_DIR == ledger_env.resolve()
    assert ledger_env.is_dir()
    assert config.DATABASE_URL == f"sqlite:///{ledger_env.resolve() / 'ledgerkeep.db'}"
    assert config.BASE_CURRENCY == "INR"
    assert config.RATES_URL == BaseConfig.DEFAULT_RATES_URL
    assert config.SYNC_URL is None
    assert config.SYNC_MAX_ATTEMPTS == 5
    assert config.SCHEDULER_INTERVAL_MINUTES == 60


def test_environment_overrides(ledger_env, monkeypatch):
    monkeypatch.setenv("LEDGERKEEP_BASE_CURRENCY", " usd ")
    monkeypatch.setenv("LEDGERKEEP_SYNC_URL", "https://hooks.example.test/ledger")
    monkeypatch.setenv("LEDGERKEEP_RATES_URL", "https://rates.example.test/")
    monkeypatch.setenv("LEDGERKEEP_SYNC_MAX_ATTEMPTS", "3")
    monkeypatch.setenv("LEDGERKEEP_DEV_MODE", "off")

    config = BaseConfig()

    assert config.BASE_CURRENCY == "USD"
    assert config.SYNC_URL == "https://hooks.example.test/ledger"
    assert config.RATES_URL == "https://rates.example.test"
    assert config.SYNC_MAX_ATTEMPTS == 3
    assert config.DEV_MODE is False


def test_invalid_values_are_rejected(ledger_env, monkeypatch):
    monkeypatch.setenv("LEDGERKEEP_SCHEDULER_INTERVAL_MINUTES", "hourly")
    with pytest.raises(ValueError, match="LEDGERKEEP_SCHEDULER_INTERVAL_MINUTES"):
        BaseConfig()

    monkeypatch.delenv("LEDGERKEEP_SCHEDULER_INTERVAL_MINUTES")
    monkeypatch.setenv("LEDGERKEEP_BASE_CURRENCY", "RUPEE")
    with pytest.raises(ValueError):
        BaseConfig()


def test_sqlite_engine_gets_pragmas(config):
    engine, _factory = bootstrap_database(config)
    try:
        with engine.connect() as connection:
            assert connection.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1
            assert connection.exec_driver_sql("PRAGMA journal_mode").scalar() == "wal"
    finally:
        engine.dispose()


def test_engine_options_for_sqlite(config):
    assert config.sqlalchemy_engine_options() == {"connect_args": {"check_same_thread": False}}
    engine = create_db_engine(config)
    assert engine.dialect.name == "sqlite"
    engine.dispose()
