"""
core/database.py -- SQLAlchemy engine construction shared by every store.

Stores (auth/store.py, items/store.py) own their own schema and queries;
this module only decides how an engine is built for a given URL and how
reachability is probed for the health endpoint.

SQLite specifics:
  check_same_thread=False -- FastAPI runs sync handlers on a thread pool, so
      a pooled connection may be used from a thread other than its creator.
  WAL journal mode -- readers proceed without blocking during writes.

Layer rule: core/ is the kernel. No imports from api/, auth/, or items/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("keeper.db")


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL per connection; SQLite PRAGMAs are not inherited from the pool."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_store_engine(db_url: str) -> Engine:
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def check_db_connected(engine: Engine) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        return False


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# SQLite stores INTEGER keys as signed 64-bit; the driver raises OverflowError
# for anything wider, so such ids are treated as absent rather than queried.
MAX_ROW_ID = 2**63 - 1


def is_row_id(value: int) -> bool:
    """True when value can name a stored row (autoincrement ids start at 1)."""
    return 1 <= value <= MAX_ROW_ID
