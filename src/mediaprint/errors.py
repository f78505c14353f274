"""Exception hierarchy for mediaprint.

Every error raised by the library derives from MediaprintError so callers can
catch the whole family at once. Item-scoped errors (EnumerationError,
ResolutionError) are caught by the scan orchestrator at the subtree/item
boundary and recorded in the scan progress; only FatalConnectError aborts a
scan.
"""

from typing import Optional


class MediaprintError(Exception):
    """Base exception for all mediaprint errors."""

    pass


class ValidationError(MediaprintError, ValueError):
    """Raised for client-caused input errors (bad hash, confidence, fields).

    Never retried. The fingerprint store performs no mutation when raising it.
    """

    pass


class NotFound(MediaprintError, LookupError):
    """Raised when a fingerprint lookup has no stored record."""

    def __init__(self, file_hash: str) -> None:
        """Initialize the error with the hash that was not found."""
        super().__init__(f"No fingerprint record for hash {file_hash}")
        self.file_hash = file_hash


class StorageError(MediaprintError):
    """Raised when the backing store (SQLite or remote service) is unavailable."""

    pass


class EnumerationError(MediaprintError):
    """Raised when a directory cannot be listed."""

    def __init__(self, path: str, reason: str) -> None:
        """Initialize the error with the offending directory path."""
        super().__init__(f"Failed to list directory {path}: {reason}")
        self.path = path
        self.reason = reason


class ResolutionError(MediaprintError):
    """Raised when the metadata search provider could not be queried."""

    def __init__(self, title: str, reason: Optional[str] = None) -> None:
        """Initialize the error with the title being resolved."""
        message = f"Failed to resolve title {title!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.title = title


class FatalConnectError(MediaprintError):
    """Raised when the initial connectivity check of a scan fails."""

    pass


class ScanInProgressError(MediaprintError):
    """Raised when a scan is started while another one is still active."""

    pass
