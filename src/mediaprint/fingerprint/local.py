"""Fingerprint backend over an in-process FingerprintStore.

SQLite calls block, so every store call runs in a worker thread.
"""

import asyncio
from typing import Any, Dict, Optional

from mediaprint.errors import NotFound
from mediaprint.fingerprint.base import FingerprintBackend, default_submitter_tag
from mediaprint.fingerprint.store import FingerprintStore
from mediaprint.models.fingerprint import FingerprintRecord, SubmitOutcome


class LocalFingerprintBackend(FingerprintBackend):
    """Adapter exposing a FingerprintStore through the async backend interface."""

    def __init__(
        self,
        store: FingerprintStore,
        submitter_tag: Optional[str] = None,
        *,
        owns_store: bool = False,
    ) -> None:
        self.store = store
        self.submitter_tag = submitter_tag or default_submitter_tag()
        self._owns_store = owns_store

    async def lookup(self, file_hash: str) -> Optional[FingerprintRecord]:
        try:
            return await asyncio.to_thread(self.store.lookup, file_hash)
        except NotFound:
            return None

    async def submit(
        self, file_hash: str, media_data: Dict[str, Any], confidence: float
    ) -> SubmitOutcome:
        return await asyncio.to_thread(
            self.store.submit,
            file_hash,
            media_data,
            confidence,
            self.submitter_tag,
            "local",
        )

    async def aclose(self) -> None:
        if self._owns_store:
            await asyncio.to_thread(self.store.close)
