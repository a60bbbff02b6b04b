"""Database infrastructure."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, ContextManager, Iterator, Tuple

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from ..config import BaseConfig

SessionFactory = Callable[[], ContextManager[Session]]


def create_db_engine(config: BaseConfig) -> Engine:
    """Create SQLModel engine from configuration."""
    engine = create_engine(config.DATABASE_URL, **config.sqlalchemy_engine_options())
    if engine.dialect.name == "sqlite":
        pragmas = dict(config.SQLITE_PRAGMAS)
        if ":memory:" in config.DATABASE_URL:
            pragmas.pop("journal_mode", None)

        @event.listens_for(engine, "connect")
        def _apply_pragmas(dbapi_connection, _record) -> None:  # pragma: no cover - driver hook
            cursor = dbapi_connection.cursor()
            for name, value in pragmas.items():
                cursor.execute(f"PRAGMA {name}={value}")
            cursor.close()

    return engine


def init_database(engine: Engine) -> None:
    """Initialize database schema."""
    # Import all models to ensure they're registered
    from .. import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def create_session_factory(engine: Engine, *, sync_enabled: bool = True) -> SessionFactory:
    """Create a session factory whose sessions commit on clean exit.

    ``sync_enabled`` is carried on ``Session.info``; when it is false, writes
    skip the sync outbox.
    """

    @contextmanager
    def factory() -> Iterator[Session]:
        session = Session(engine, expire_on_commit=False, info={"sync_enabled": sync_enabled})
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return factory


def bootstrap_database(config: BaseConfig | None = None) -> Tuple[Engine, SessionFactory]:
    """Convenience bootstrap for engine + session_factory with schema init.

    Used by CLI startup and tests to ensure consistent engine options and
    session configuration. Returns (engine, session_factory).
    """

    cfg = config or BaseConfig()
    engine = create_db_engine(cfg)
    init_database(engine)
    return engine, create_session_factory(engine, sync_enabled=bool(cfg.SYNC_URL))


@contextmanager
def translate_store_errors(action: str) -> Iterator[None]:
    """Re-raise SQLAlchemy failures as ``PersistenceError`` naming the action."""

    from sqlalchemy.exc import SQLAlchemyError

    from ..errors import PersistenceError

    try:
        yield
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Could not {action}: {exc.__class__.__name__}") from exc
