"""
core/db.py -- Engine construction and transaction scope shared by every store.

Both auth/store.py and resources/store.py use SQLAlchemy Core against the same
DATABASE_URL. This module owns the two things they would otherwise duplicate:

  make_engine(): SQLite-specific connect args and per-connection WAL pragma.
  transaction(): one engine.begin() block per store operation, with driver
      OperationalError re-raised as StoreUnavailable so routes never see a
      raw database exception.

Layer rule: core/ is the kernel. No imports from api/, web/, auth/,
resources/, or cache/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import OperationalError

from core.errors import StoreUnavailable

logger = logging.getLogger("recipehub.db")


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an Engine for db_url. SQLite URLs get thread sharing and WAL."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        # TestClient and the Starlette threadpool hit the store from worker threads.
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


@contextmanager
def transaction(engine: Engine) -> Iterator[Connection]:
    """Run a block in a single transaction: commit on success, roll back on error.

    A request aborted mid-flight unwinds through here and rolls back, so a
    partially applied write is never visible to later reads.
    """
    try:
        with engine.begin() as conn:
            yield conn
    except OperationalError as exc:
        logger.warning("Database operation failed: %s", exc.__class__.__name__)
        raise StoreUnavailable() from exc


def now_iso() -> str:
    """Current UTC time as a fixed-width ISO 8601 string (sortable as text)."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")
