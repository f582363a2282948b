"""
Error taxonomy for the persistence and interchange layer.

The validator never raises. Backends and the CSV codec fail loudly with one of
these distinct kinds so callers can tell "user aborted" apart from
"platform unsupported" and "file corrupt".
"""


class YonguError(Exception):
    """Base class for all Yongu CRM errors."""


class UnsupportedPlatformError(YonguError):
    """The storage capability (file picker) is not available. Switch backend."""


class UserCancelledError(YonguError):
    """The user dismissed a picker. Not a failure; show nothing."""


class InvalidFormatError(YonguError):
    """File content could not be read or parsed as JSON."""


class WriteFailedError(YonguError):
    """The storage medium rejected a write. Must be surfaced, never dropped."""


class QuotaExceededError(WriteFailedError):
    """A key-value store refused a value larger than its quota."""


class ImportEmptyError(YonguError):
    """CSV import produced zero usable rows."""


class SaveInProgressError(YonguError):
    """A save was requested while another save to the same store was running."""


class StorageUnavailableError(YonguError):
    """The local storage slot could not be reached (database down, bad DATABASE_URL)."""
