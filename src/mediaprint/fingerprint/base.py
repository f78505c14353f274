"""Async fingerprint backend interface used by the scan orchestrator.

A backend is either a local FingerprintStore (fingerprint.local) or a remote
fingerprint service spoken to over HTTP (fingerprint.client). The orchestrator
only depends on this interface.
"""

import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from mediaprint.__about__ import __version__
from mediaprint.models.fingerprint import FingerprintRecord, SubmitOutcome


def default_submitter_tag() -> str:
    """Return an anonymous submitter tag for this client installation."""
    return f"mediaprint/{__version__}-{uuid.uuid4().hex[:8]}"


class FingerprintBackend(ABC):
    """Abstract base class for fingerprint lookups and submissions."""

    @abstractmethod
    async def lookup(self, file_hash: str) -> Optional[FingerprintRecord]:
        """Return the stored record for file_hash, or None on a miss.

        Raises:
            ValidationError: If the hash is malformed.
            StorageError: If the backend is unavailable.
        """
        raise NotImplementedError

    @abstractmethod
    async def submit(
        self, file_hash: str, media_data: Dict[str, Any], confidence: float
    ) -> SubmitOutcome:
        """Submit a hash -> metadata mapping.

        Raises:
            ValidationError: If the submission is rejected as invalid.
            StorageError: If the backend is unavailable.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release any resources held by the backend."""
        return None
