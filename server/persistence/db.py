"""
Database connection pool and initialization.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, insert, inspect
from sqlalchemy.engine import Connection, Engine

from server.config import get_settings

from .schema import SEED_ROWS, TABLE_NAME, tbl_test

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_engine_lock = threading.Lock()
_migrate_lock = threading.Lock()


def _build_engine() -> Engine:
    url = get_settings().database_url()
    connect_args = {}
    if url.get_backend_name() == "sqlite":
        # Handlers run on the framework threadpool
        connect_args["check_same_thread"] = False
    logger.info("Creating connection pool for %s", url.render_as_string(hide_password=True))
    # Pool sizing and timeouts stay at library defaults
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


def get_engine() -> Engine:
    """Return the shared pooled engine. Creating it does not open a connection."""
    global _engine
    if _engine is None:
        with _engine_lock:
            if _engine is None:
                _engine = _build_engine()
    return _engine


def dispose_engine() -> None:
    """Close pooled connections. The next get_engine() builds a fresh pool."""
    global _engine
    with _engine_lock:
        if _engine is not None:
            _engine.dispose()
            _engine = None


@contextmanager
def get_connection() -> Generator[Connection, None, None]:
    """Yield a pooled connection, return it to the pool on exit."""
    conn = get_engine().connect()
    try:
        yield conn
    finally:
        conn.close()


def init_db(engine: Engine | None = None) -> bool:
    """
    Create tbl_test and seed it if the table does not exist yet.
    Returns True when the table was created, False when it was already there.
    Safe to call on every startup.
    Another process creating the table between the check and the CREATE makes
    the CREATE fail, so seeding never runs twice.
    """
    engine = engine or get_engine()
    with _migrate_lock, engine.begin() as conn:
        if inspect(conn).has_table(TABLE_NAME):
            logger.info("Table %s already exists, skipping migration", TABLE_NAME)
            return False
        tbl_test.create(conn)
        conn.execute(insert(tbl_test), [{"data": d} for d in SEED_ROWS])
    logger.info("Created table %s with %d seed rows", TABLE_NAME, len(SEED_ROWS))
    return True
