"""
Database Connection Management
PostgreSQL connections for installations that keep the local storage slot in a
database table instead of the data directory.
"""

import logging
from contextlib import contextmanager
from typing import Optional

import psycopg2
from psycopg2.extras import RealDictCursor

from yongu.config import config

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 5

KV_TABLE_DDL = """
    CREATE TABLE IF NOT EXISTS kv_store (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
"""


@contextmanager
def get_db_connection(dsn: Optional[str] = None):
    """
    One connection per slot operation. Commits when the block exits cleanly,
    rolls back and re-raises otherwise, always closes.

    Usage:
        with get_db_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT value FROM kv_store WHERE key = %s", ('yongu_db_v1',))
    """
    dsn = dsn or config.DATABASE_URL
    if not dsn:
        raise ValueError("DATABASE_URL is not set. Configure it in .env or use the local data directory.")

    conn = psycopg2.connect(dsn, connect_timeout=CONNECT_TIMEOUT_SECONDS)
    logger.debug("Opened slot database connection")
    try:
        yield conn
        conn.commit()
    except Exception as e:
        conn.rollback()
        logger.error(f"Slot transaction rolled back: {e}")
        raise
    finally:
        conn.close()


@contextmanager
def get_db_cursor(dict_cursor=True, dsn: Optional[str] = None):
    """Cursor on a fresh connection, with the kv_store table guaranteed to exist."""
    with get_db_connection(dsn) as conn:
        cur = conn.cursor(cursor_factory=RealDictCursor if dict_cursor else None)
        try:
            cur.execute(KV_TABLE_DDL)
            yield cur
        finally:
            cur.close()
