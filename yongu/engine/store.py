"""
Document Store - one interface over both persistence backends.

The backend is chosen once at startup (select_store) and handed to the
session controller, which never needs to know which one it is talking to.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from yongu.config import config
from yongu.engine import file_store, local_store
from yongu.engine.file_store import FileHandle, FilePicker, PathFilePicker
from yongu.engine.local_store import DirectoryKeyValueStore, KeyValueStore, PostgresKeyValueStore
from yongu.errors import WriteFailedError
from yongu.models import Document

logger = logging.getLogger(__name__)


class DocumentStore(ABC):
    """Materializes the document once, then accepts whole-document saves."""

    label = 'store'

    @abstractmethod
    def start(self) -> Document:
        ...

    @abstractmethod
    def save(self, document: Document) -> None:
        ...


class FileDocumentStore(DocumentStore):
    """File backend. Keeps the handle granted by the picker for later saves."""

    label = 'file'

    def __init__(self, picker: Optional[FilePicker], create: bool = False):
        self.picker = picker
        self.create = create
        self.handle: Optional[FileHandle] = None

    def start(self) -> Document:
        if self.create:
            document, self.handle = file_store.create_new(self.picker)
        else:
            document, self.handle = file_store.open_existing(self.picker)
        return document

    def save(self, document: Document) -> None:
        if self.handle is None:
            raise WriteFailedError("No file is open")
        file_store.save(self.handle, document)

    def __repr__(self):
        return f"FileDocumentStore({self.handle.path if self.handle else None})"


class LocalDocumentStore(DocumentStore):
    """Local backend. The slot key is fixed, so no handle is needed."""

    label = 'local'

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def start(self) -> Document:
        return local_store.load_or_seed(self.kv)

    def save(self, document: Document) -> None:
        local_store.save(self.kv, document)

    def __repr__(self):
        return f"LocalDocumentStore({type(self.kv).__name__})"


def default_key_value_store() -> KeyValueStore:
    """PostgreSQL when DATABASE_URL is configured, otherwise the data directory."""
    if config.DATABASE_URL:
        return PostgresKeyValueStore(config.LOCAL_STORAGE_QUOTA_BYTES)
    return DirectoryKeyValueStore(config.DATA_DIR, config.LOCAL_STORAGE_QUOTA_BYTES)


def select_store(
    file_path: Optional[str] = None,
    local: bool = False,
    picker: Optional[FilePicker] = None,
    use_picker: bool = False,
) -> DocumentStore:
    """
    Pick the backend for this run.

    local       → local slot
    file_path   → that file
    use_picker  → ask through the injected picker (None = platform without file access)
    otherwise   → YONGU_DB_FILE if configured, else the local slot
    """
    if local:
        store = LocalDocumentStore(default_key_value_store())
    elif file_path:
        store = FileDocumentStore(PathFilePicker(file_path))
    elif use_picker:
        store = FileDocumentStore(picker)
    elif config.DB_FILE:
        store = FileDocumentStore(PathFilePicker(config.DB_FILE))
    else:
        store = LocalDocumentStore(default_key_value_store())
    logger.debug(f"Selected {store!r}")
    return store
