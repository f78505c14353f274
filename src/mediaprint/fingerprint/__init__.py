"""Shared fingerprint store: merge policy, SQLite store, backends and HTTP service."""

from mediaprint.fingerprint.base import FingerprintBackend
from mediaprint.fingerprint.client import FingerprintClient
from mediaprint.fingerprint.local import LocalFingerprintBackend
from mediaprint.fingerprint.merge import should_update
from mediaprint.fingerprint.store import FingerprintStore

__all__ = [
    "FingerprintBackend",
    "FingerprintClient",
    "FingerprintStore",
    "LocalFingerprintBackend",
    "should_update",
]
