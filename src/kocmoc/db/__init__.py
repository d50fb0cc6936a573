"""Database configuration and utilities."""

from .session import Base, build_engine, create_tables, drop_tables
from .store import ExecuteResult, Executor, Store, StoreTransaction

__all__ = [
    "Base",
    "ExecuteResult",
    "Executor",
    "Store",
    "StoreTransaction",
    "build_engine",
    "create_tables",
    "drop_tables",
]
