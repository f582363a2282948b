"""
Local Backend
Keeps the whole document in one fixed slot of a local key-value store.

There is no file to show the user, so load() is lenient: a missing slot and
a corrupt slot both come back as None. save() is strict: a rejected write
(quota exceeded, medium error) is raised as WriteFailedError.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import psycopg2

from yongu.db.connection import get_db_cursor
from yongu.engine.seed import new_document
from yongu.engine.validator import validate
from yongu.errors import QuotaExceededError, StorageUnavailableError, WriteFailedError
from yongu.logging_config import log_call
from yongu.models import Document

logger = logging.getLogger(__name__)

LOCAL_STORAGE_KEY = 'yongu_db_v1'


# =============================================================================
# KEY-VALUE STORES
# =============================================================================

class KeyValueStore(ABC):
    """String slots addressed by key, with a total size ceiling."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Raises QuotaExceededError when the value does not fit."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        ...


class DirectoryKeyValueStore(KeyValueStore):
    """One UTF-8 file per key under a per-installation data directory."""

    def __init__(self, root: Path, quota_bytes: int):
        self.root = Path(root)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.slot"

    def _used_by_others(self, key: str) -> int:
        if not self.root.exists():
            return 0
        own = self._path(key)
        return sum(p.stat().st_size for p in self.root.glob('*.slot') if p != own)

    def get_item(self, key):
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding='utf-8')

    def set_item(self, key, value):
        size = len(value.encode('utf-8'))
        used = self._used_by_others(key)
        if used + size > self.quota_bytes:
            raise QuotaExceededError(
                f"Local storage full: {used + size} bytes needed, quota is {self.quota_bytes}"
            )
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix('.tmp')
        tmp.write_text(value, encoding='utf-8')
        os.replace(tmp, path)

    def remove_item(self, key):
        path = self._path(key)
        if path.exists():
            path.unlink()


class PostgresKeyValueStore(KeyValueStore):
    """Slots kept in a kv_store table, for installations that already run PostgreSQL."""

    def __init__(self, quota_bytes: int):
        self.quota_bytes = quota_bytes

    def get_item(self, key):
        try:
            with get_db_cursor() as cur:
                cur.execute("SELECT value FROM kv_store WHERE key = %s", (key,))
                row = cur.fetchone()
        except (psycopg2.Error, ValueError) as e:
            raise StorageUnavailableError(f"Cannot read the storage database: {e}") from e
        return row['value'] if row else None

    def set_item(self, key, value):
        size = len(value.encode('utf-8'))
        with get_db_cursor() as cur:
            cur.execute("""
                SELECT COALESCE(SUM(OCTET_LENGTH(value)), 0) AS used
                FROM kv_store
                WHERE key <> %s
            """, (key,))
            used = cur.fetchone()['used']
            if used + size > self.quota_bytes:
                raise QuotaExceededError(
                    f"Local storage full: {used + size} bytes needed, quota is {self.quota_bytes}"
                )
            cur.execute("""
                INSERT INTO kv_store (key, value, updated_at)
                VALUES (%s, %s, NOW())
                ON CONFLICT (key) DO UPDATE
                SET value = EXCLUDED.value, updated_at = NOW()
            """, (key, value))

    def remove_item(self, key):
        with get_db_cursor() as cur:
            cur.execute("DELETE FROM kv_store WHERE key = %s", (key,))


# =============================================================================
# OPERATIONS
# =============================================================================

@log_call
def load(store: KeyValueStore) -> Optional[Document]:
    """
    Read the slot. Missing, unreadable or corrupt → None (caller decides
    whether to seed). StorageUnavailableError from the store propagates so
    an unreachable slot is never seeded over.
    """
    try:
        stored = store.get_item(LOCAL_STORAGE_KEY)
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Failed to read local storage: {e}")
        return None
    if not stored:
        return None
    try:
        return validate(json.loads(stored))
    except ValueError as e:
        logger.error(f"Local storage slot is corrupt: {e}")
        return None


@log_call
def save(store: KeyValueStore, document: Document) -> None:
    """Serialize compactly and overwrite the slot."""
    text = json.dumps(document.to_dict(), ensure_ascii=False, separators=(',', ':'))
    try:
        store.set_item(LOCAL_STORAGE_KEY, text)
    except QuotaExceededError:
        logger.error("Failed to save to local storage: quota exceeded")
        raise
    except Exception as e:
        logger.error(f"Failed to save to local storage: {e}")
        raise WriteFailedError(f"Local storage rejected the write: {e}") from e


@log_call
def load_or_seed(store: KeyValueStore) -> Document:
    """Stored document, or a freshly seeded one written to the slot on first use."""
    document = load(store)
    if document is None:
        document = new_document()
        save(store, document)
        logger.info("Local storage empty, seeded a new document")
    return document
