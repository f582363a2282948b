"""
Logging configuration for Yongu CRM.

Every module logs through logging.getLogger(__name__), so all records end up
under the single 'yongu' logger configured here.

  Log file : logs/yongu.log, rotated at 5 MB, 3 backups kept
  Level    : LOG_LEVEL env var, INFO when unset or unrecognised

The terminal stays clean for command output; diagnostics only go to the file.

Usage
-----
    from yongu.logging_config import configure_logging, log_call

    configure_logging()     # once per CLI invocation, repeat calls are no-ops

    @log_call
    def export_csv(clients):
        ...

Trace lines written by @log_call
--------------------------------
    2026-02-16 14:32:01 | DEBUG    | CALL export_csv | args=([Contact(...)])
    2026-02-16 14:32:01 | INFO     | OK   export_csv | 3ms
    2026-02-16 14:32:01 | ERROR    | FAIL open_existing | InvalidFormatError: not JSON | 1ms
"""

import functools
import logging
import logging.handlers
import os
import time
from pathlib import Path

ROOT_LOGGER = "yongu"

_LOG_DIR = Path(__file__).parent.parent / "logs"
_LOG_FILE = _LOG_DIR / "yongu.log"
_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_MAX_BYTES = 5 * 1024 * 1024
_BACKUP_COUNT = 3

# Documents and CSV payloads pass through traced functions whole
_MAX_ARG_REPR = 200

# HTTP client chatter from the AI backends
_QUIET_LOGGERS = ("urllib3", "httpx", "httpcore", "anthropic")


def _level_from_env() -> int:
    level = logging.getLevelName(os.environ.get("LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> logging.Logger:
    """Attach the rotating file handler to the yongu logger and return it."""
    logger = logging.getLogger(ROOT_LOGGER)
    if logger.handlers:
        return logger

    _LOG_DIR.mkdir(parents=True, exist_ok=True)
    logger.setLevel(_level_from_env())

    handler = logging.handlers.RotatingFileHandler(
        _LOG_FILE, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
    logger.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def _short_repr(value) -> str:
    text = repr(value)
    return text if len(text) <= _MAX_ARG_REPR else text[:_MAX_ARG_REPR] + "..."


def _describe_args(args, kwargs) -> str:
    parts = [_short_repr(a) for a in args]
    parts.extend(f"{key}={_short_repr(value)}" for key, value in kwargs.items())
    return ", ".join(parts) or "—"


def log_call(func):
    """
    Trace a function: DEBUG line on entry, INFO with elapsed time on return,
    ERROR with the exception type and message on failure. Exceptions propagate
    unchanged.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(ROOT_LOGGER)
        name = func.__name__
        logger.debug(f"CALL {name} | args=({_describe_args(args, kwargs)})")

        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as exc:
            elapsed = int((time.perf_counter() - start) * 1000)
            logger.error(f"FAIL {name} | {type(exc).__name__}: {exc} | {elapsed}ms")
            raise
        elapsed = int((time.perf_counter() - start) * 1000)
        logger.info(f"OK   {name} | {elapsed}ms")
        return result

    return wrapper
