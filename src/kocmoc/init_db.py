"""Create (or recreate) the schema directly from the ORM models.

Intended for local SQLite development; deployed databases use Alembic.
"""
from __future__ import annotations

import argparse
import logging

from kocmoc.core.settings import settings
from kocmoc.db import build_engine, create_tables, drop_tables

logger = logging.getLogger(__name__)


def init_db(url: str, *, reset: bool = False) -> None:
    """Create every table for ``url``, dropping existing ones first when ``reset``."""
    engine = build_engine(url)
    try:
        if reset:
            drop_tables(engine)
        create_tables(engine)
    finally:
        engine.dispose()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--reset", action="store_true", help="Drop all tables before creating them")
    parser.add_argument("--url", default=None, help="Database URL (defaults to DATABASE_URL)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.log_level.upper())
    url = args.url or settings.effective_database_url
    init_db(url, reset=args.reset)
    logger.info("Database initialized")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
