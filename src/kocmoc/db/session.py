"""Declarative base and engine construction."""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    # SQLite ignores ON DELETE CASCADE unless the pragma is set per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(
    url: str,
    *,
    echo: bool = False,
    pool_timeout: float | None = None,
    statement_timeout_ms: int | None = None,
    **engine_kwargs: Any,
) -> Engine:
    """Create an engine with per-dialect request deadlines applied.

    Args:
        url: SQLAlchemy database URL.
        echo: Log emitted SQL.
        pool_timeout: Seconds to wait for a pooled connection.
        statement_timeout_ms: Server-side statement deadline (PostgreSQL only).
        **engine_kwargs: Passed through to ``create_engine``.
    """
    connect_args: dict[str, Any] = dict(engine_kwargs.pop("connect_args", {}))
    is_sqlite = url.startswith("sqlite")
    if url.startswith("postgresql") and statement_timeout_ms:
        connect_args.setdefault("options", f"-c statement_timeout={int(statement_timeout_ms)}")
    if is_sqlite:
        connect_args.setdefault("check_same_thread", False)
    elif pool_timeout is not None:
        engine_kwargs.setdefault("pool_timeout", pool_timeout)

    engine = create_engine(
        url,
        echo=echo,
        pool_pre_ping=not is_sqlite,
        connect_args=connect_args,
        **engine_kwargs,
    )
    if is_sqlite:
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_tables(engine: Engine) -> None:
    """Create all database tables."""
    # Ensure model modules are imported so that metadata is populated.
    import kocmoc.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_tables(engine: Engine) -> None:
    """Drop all database tables."""
    Base.metadata.drop_all(bind=engine)
