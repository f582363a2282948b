"""
File Backend
Open, create and save the document through a user-chosen file.

Choosing the file is delegated to a FilePicker capability injected at
startup. No picker means the platform cannot offer file access at all
(UnsupportedPlatformError); a picker returning None means the user
dismissed it (UserCancelledError).
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from yongu.engine.seed import new_document
from yongu.engine.validator import validate
from yongu.errors import (
    InvalidFormatError, UnsupportedPlatformError, UserCancelledError, WriteFailedError,
)
from yongu.logging_config import log_call
from yongu.models import Document

logger = logging.getLogger(__name__)

FILE_DESCRIPTION = 'Yongu Data File'
ACCEPT: Dict[str, List[str]] = {'application/json': ['.json', '.yongu']}
SUGGESTED_NAME = 'yongu_clients.json'


# =============================================================================
# HANDLE + PICKER CAPABILITY
# =============================================================================

@dataclass(frozen=True)
class FileHandle:
    """A file the user granted access to."""
    path: Path

    @property
    def name(self) -> str:
        return self.path.name

    def read_text(self) -> str:
        return self.path.read_text(encoding='utf-8')

    def write_text(self, text: str) -> None:
        """Replace the whole file. Readers see either the old or the new contents."""
        tmp = self.path.with_suffix(self.path.suffix + '.tmp')
        try:
            tmp.write_text(text, encoding='utf-8')
            os.replace(tmp, self.path)
        finally:
            if tmp.exists():
                tmp.unlink()


def accepted_extensions(accept: Dict[str, List[str]] = ACCEPT) -> List[str]:
    return [ext for extensions in accept.values() for ext in extensions]


def is_accepted(path: Path, accept: Dict[str, List[str]] = ACCEPT) -> bool:
    return path.suffix.lower() in accepted_extensions(accept)


class FilePicker(ABC):
    """Platform capability for choosing files. Return None when the user cancels."""

    @abstractmethod
    def pick_open(self, description: str, accept: Dict[str, List[str]]) -> Optional[Path]:
        ...

    @abstractmethod
    def pick_save(self, suggested_name: str, description: str,
                  accept: Dict[str, List[str]]) -> Optional[Path]:
        ...


class PathFilePicker(FilePicker):
    """Picker that always answers with a path chosen up front (e.g. a --file option)."""

    def __init__(self, path):
        self.path = Path(path).expanduser()

    def _checked(self, accept: Dict[str, List[str]]) -> Path:
        if not is_accepted(self.path, accept):
            raise InvalidFormatError(
                f"{self.path.name} is not a {FILE_DESCRIPTION} "
                f"(expected {', '.join(accepted_extensions(accept))})"
            )
        return self.path

    def pick_open(self, description, accept):
        return self._checked(accept)

    def pick_save(self, suggested_name, description, accept):
        return self._checked(accept)


# =============================================================================
# OPERATIONS
# =============================================================================

def serialize(document: Document) -> str:
    """Pretty-printed JSON, 2-space indent."""
    return json.dumps(document.to_dict(), indent=2, ensure_ascii=False)


def _require(picker: Optional[FilePicker]) -> FilePicker:
    if picker is None:
        raise UnsupportedPlatformError(
            "File System not supported on this device. Please use local storage (--local)."
        )
    return picker


@log_call
def open_existing(picker: Optional[FilePicker]) -> Tuple[Document, FileHandle]:
    """
    Ask the user for an existing data file, read and validate it.

    Raises:
        UnsupportedPlatformError: no picker available (raised before prompting)
        UserCancelledError: picker dismissed
        InvalidFormatError: file unreadable or not JSON
    """
    picker = _require(picker)
    path = picker.pick_open(FILE_DESCRIPTION, ACCEPT)
    if path is None:
        raise UserCancelledError("Open cancelled")

    handle = FileHandle(Path(path))
    try:
        text = handle.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise InvalidFormatError(f"Could not read {handle.name}: {e}") from e

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidFormatError(
            f"{handle.name} is not valid JSON (line {e.lineno}, column {e.colno})"
        ) from e

    document = validate(raw)
    logger.info(f"Opened {handle.path} with {len(document.clients)} contacts")
    return document, handle


@log_call
def create_new(picker: Optional[FilePicker]) -> Tuple[Document, FileHandle]:
    """
    Ask the user where to create a data file, seed it and write it immediately
    so the file exists before any edit.
    """
    picker = _require(picker)
    path = picker.pick_save(SUGGESTED_NAME, FILE_DESCRIPTION, ACCEPT)
    if path is None:
        raise UserCancelledError("Create cancelled")

    handle = FileHandle(Path(path))
    document = new_document()
    save(handle, document)
    logger.info(f"Created {handle.path} with {len(document.clients)} demo contacts")
    return document, handle


@log_call
def save(handle: FileHandle, document: Document) -> None:
    """Overwrite the file with the full document. Raises WriteFailedError on any OS error."""
    try:
        handle.write_text(serialize(document))
    except OSError as e:
        raise WriteFailedError(f"Failed to save {handle.name}: {e}") from e
    logger.debug(f"Saved {len(document.clients)} contacts to {handle.path}")
