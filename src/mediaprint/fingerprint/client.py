"""HTTP client for a remote fingerprint service.

Speaks the JSON contract served by fingerprint.server:
- GET /api/query-hash/{hash}: 200 hit, 404 miss, 400 malformed hash.
- POST /api/submit-hash: 201 created, 200 updated/acknowledged, 400 rejected.

Transport failures, 5xx responses and malformed reply bodies surface as
StorageError; 400 responses as ValidationError. Nothing is retried here.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
import pydantic

from mediaprint.errors import StorageError, ValidationError
from mediaprint.fingerprint.base import FingerprintBackend, default_submitter_tag
from mediaprint.fingerprint.merge import normalize_hash, validate_submission
from mediaprint.models.fingerprint import FingerprintRecord, SubmitAction, SubmitOutcome

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class FingerprintClient(FingerprintBackend):
    """Fingerprint backend talking to a remote service with httpx."""

    def __init__(
        self,
        base_url: str,
        submitter_tag: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.submitter_tag = submitter_tag or default_submitter_tag()
        self.timeout = timeout

    @property
    def headers(self) -> Dict[str, str]:
        return {"User-Agent": self.submitter_tag, "Content-Type": "application/json"}

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.request(method, url, headers=self.headers, **kwargs)
        except httpx.HTTPError as exc:
            raise StorageError(f"Fingerprint service unreachable at {url}: {exc}") from exc
        if resp.status_code >= 500:
            raise StorageError(
                f"Fingerprint service error {resp.status_code} for {method} {path}: "
                f"{_error_message(resp)}"
            )
        if resp.status_code == 400:
            raise ValidationError(_error_message(resp))
        return resp

    async def lookup(self, file_hash: str) -> Optional[FingerprintRecord]:
        normalized = normalize_hash(file_hash)
        resp = await self._request("GET", f"/api/query-hash/{normalized}")
        if resp.status_code == 404:
            return None
        _raise_unexpected(resp)
        data = _json_object(resp)
        if not data.get("matched"):
            return None
        stats = data.get("stats")
        if not isinstance(stats, dict):
            stats = {}
        last_updated = stats.get("lastUpdated") or datetime.now(timezone.utc)
        try:
            return FingerprintRecord(
                file_hash=data.get("fileHash", normalized),
                media_data=data["mediaData"],
                confidence=data["confidence"],
                submission_count=stats.get("submissionCount", 1),
                created_at=last_updated,
                last_updated=last_updated,
            )
        except (KeyError, pydantic.ValidationError) as exc:
            raise StorageError(f"Malformed lookup reply for {normalized}: {exc!r}") from exc

    async def submit(
        self, file_hash: str, media_data: Dict[str, Any], confidence: float
    ) -> SubmitOutcome:
        normalized, media_data, confidence = validate_submission(
            file_hash, media_data, confidence
        )
        payload = {"fileHash": normalized, "mediaData": media_data, "confidence": confidence}
        resp = await self._request("POST", "/api/submit-hash", json=payload)
        _raise_unexpected(resp)
        data = _json_object(resp)
        try:
            action = SubmitAction(data["action"])
        except (KeyError, ValueError) as exc:
            raise StorageError(f"Malformed submit reply for {normalized}: {exc!r}") from exc
        logger.debug("Remote submission for %s: %s", normalized, action.value)
        return SubmitOutcome(action=action)

    async def stats(self) -> Dict[str, Any]:
        """Fetch the raw statistics payload of the remote service."""
        resp = await self._request("GET", "/api/stats")
        _raise_unexpected(resp)
        return _json_object(resp).get("stats", {})

    async def health(self) -> bool:
        """Return True when the remote service reports itself healthy."""
        try:
            resp = await self._request("GET", "/health")
            return resp.status_code == 200 and _json_object(resp).get("status") == "healthy"
        except StorageError as exc:
            logger.warning("Fingerprint service health check failed: %s", exc)
            return False


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(data, dict):
        return str(data.get("message") or data.get("error") or data)
    return str(data)


def _raise_unexpected(resp: httpx.Response) -> None:
    if resp.status_code not in (200, 201):
        raise StorageError(
            f"Unexpected fingerprint service response {resp.status_code}: "
            f"{_error_message(resp)}"
        )


def _json_object(resp: httpx.Response) -> Dict[str, Any]:
    try:
        data = resp.json()
    except ValueError as exc:
        raise StorageError(f"Fingerprint service returned invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise StorageError(f"Fingerprint service returned {type(data).__name__}, not an object")
    return data
