"""Engine and session factory for the reconciliation store.

Both are created on first use from ``DATABASE_URL`` and shared by the
request-scoped ``get_db`` dependency and the persistence adapters, which open
their own ``Session.begin()`` transactions.
"""
from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from guardpay.config import get_settings, require_setting

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _build_engine(database_url: str) -> Engine:
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, future=True, pool_pre_ping=True)
    built = create_engine(database_url, future=True, connect_args={"check_same_thread": False})
    event.listen(built, "connect", _enable_sqlite_foreign_keys)
    return built


def init_engine() -> Engine:
    """Create the engine and session factory once per process.

    Raises ``ConfigurationError`` when ``DATABASE_URL`` is not configured.
    """

    global _engine, _session_factory
    if _engine is None:
        _engine = _build_engine(require_setting(get_settings(), "database_url"))
        _session_factory = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)
    return _engine


def get_engine() -> Engine:
    return init_engine()


def get_sessionmaker() -> sessionmaker[Session]:
    init_engine()
    assert _session_factory is not None
    return _session_factory


def close_engine() -> None:
    """Dispose pooled connections; the next use builds a fresh engine."""

    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a session closed after the request."""

    with get_sessionmaker()() as session:
        yield session


__all__ = ["close_engine", "get_db", "get_engine", "get_sessionmaker", "init_engine"]
