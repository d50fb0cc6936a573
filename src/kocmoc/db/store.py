"""Narrow store adapter over a relational engine.

Services talk to the database only through three primitives: ``execute``,
``query_one`` and ``query_many``. Statements are SQLAlchemy Core constructs,
so every value reaches the driver as a bound parameter. ``transaction()``
exposes the same primitives bound to one database transaction for operations
that must apply atomically.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from sqlalchemy.engine import Connection, Engine, Row
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    OperationalError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.sql import Executable

from kocmoc.core.errors import ConflictError, TransientError
from kocmoc.db.session import build_engine

logger = logging.getLogger(__name__)

Params = Mapping[str, Any] | None


@dataclass(frozen=True)
class ExecuteResult:
    """Outcome of a mutating statement."""

    inserted_id: Any | None
    rows_affected: int


@contextmanager
def _translate_errors() -> Iterator[None]:
    """Map engine faults onto the domain error taxonomy."""
    try:
        yield
    except IntegrityError as exc:
        raise ConflictError("Uniqueness constraint violated") from exc
    except (OperationalError, PoolTimeoutError) as exc:
        logger.warning("Store call failed transiently: %s", exc)
        raise TransientError("Storage temporarily unavailable, retry later") from exc
    except DBAPIError:
        logger.error("Unexpected store failure", exc_info=True)
        raise


class StoreTransaction:
    """Store primitives bound to a single open transaction."""

    def __init__(self, connection: Connection) -> None:
        self._connection = connection

    def execute(self, statement: Executable, params: Params = None) -> ExecuteResult:
        """Run a mutating statement and report the inserted id and affected rows."""
        with _translate_errors():
            result = self._connection.execute(statement, params)
        inserted_id = None
        if getattr(statement, "is_insert", False) and result.inserted_primary_key:
            inserted_id = result.inserted_primary_key[0]
        return ExecuteResult(inserted_id=inserted_id, rows_affected=result.rowcount)

    def query_one(self, statement: Executable, params: Params = None) -> Row[Any] | None:
        """Return the first row produced by ``statement`` or None."""
        with _translate_errors():
            return self._connection.execute(statement, params).first()

    def query_many(self, statement: Executable, params: Params = None) -> list[Row[Any]]:
        """Return every row produced by ``statement`` in order."""
        with _translate_errors():
            return list(self._connection.execute(statement, params).all())


class Store:
    """Owns the engine lifecycle and hands out transactions.

    The store is opened once at service start and closed at shutdown. Each
    top-level primitive runs in its own short transaction.
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        engine: Engine | None = None,
        echo: bool = False,
        pool_timeout: float | None = None,
        statement_timeout_ms: int | None = None,
    ) -> None:
        if url is None and engine is None:
            raise ValueError("Store requires a database URL or an engine")
        self._url = url
        self._engine = engine
        self._echo = echo
        self._pool_timeout = pool_timeout
        self._statement_timeout_ms = statement_timeout_ms

    @property
    def is_open(self) -> bool:
        """Return True once an engine is available."""
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        """Return the underlying engine, failing if the store is closed."""
        if self._engine is None:
            raise RuntimeError("Store is not open")
        return self._engine

    def open(self) -> Store:
        """Create the engine if one was not injected."""
        if self._engine is None:
            if self._url is None:
                raise RuntimeError("Store needs a database URL or an engine")
            self._engine = build_engine(
                self._url,
                echo=self._echo,
                pool_timeout=self._pool_timeout,
                statement_timeout_ms=self._statement_timeout_ms,
            )
            logger.info("Store opened for %s", self._engine.url.render_as_string(hide_password=True))
        return self

    def close(self) -> None:
        """Dispose of pooled connections."""
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Store closed")
            if self._url is not None:
                self._engine = None

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """Yield primitives bound to one transaction; commit on success, roll back on error."""
        with _translate_errors():
            with self.engine.begin() as connection:
                yield StoreTransaction(connection)

    def execute(self, statement: Executable, params: Params = None) -> ExecuteResult:
        """Run a mutating statement in its own transaction."""
        with self.transaction() as tx:
            return tx.execute(statement, params)

    def query_one(self, statement: Executable, params: Params = None) -> Row[Any] | None:
        """Return the first row of a read in its own transaction."""
        with self.transaction() as tx:
            return tx.query_one(statement, params)

    def query_many(self, statement: Executable, params: Params = None) -> list[Row[Any]]:
        """Return all rows of a read in its own transaction."""
        with self.transaction() as tx:
            return tx.query_many(statement, params)


# Anything exposing the three primitives; services accept either so callers can
# fold a step into a wider transaction.
Executor = Store | StoreTransaction
