"""FastAPI application serving the fingerprint store over HTTP+JSON.

Routes:
- GET  /api/query-hash/{file_hash}
- POST /api/submit-hash
- GET  /api/stats
- GET  /health

Every response carries permissive CORS headers (unhandled errors included, as a
JSON 500), any OPTIONS request is answered with an empty 200, and every request is logged with its status and duration.
Store calls block on SQLite, so route handlers are plain functions run in the
threadpool.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException

from mediaprint.__about__ import __version__
from mediaprint.errors import NotFound, StorageError, ValidationError
from mediaprint.fingerprint.merge import HASH_LENGTH
from mediaprint.fingerprint.store import FingerprintStore
from mediaprint.models.fingerprint import SubmitAction

LOGGER = logging.getLogger(__name__)

SERVICE_NAME = "mediaprint-fingerprint"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, User-Agent",
}

SUBMIT_MESSAGES = {
    SubmitAction.CREATED: "Hash data submitted successfully",
    SubmitAction.UPDATED: "Hash data updated successfully",
    SubmitAction.ACKNOWLEDGED: "Submission acknowledged, existing data retained",
}


class SubmitHashRequest(BaseModel):
    """Body of POST /api/submit-hash; values are validated by the store."""

    model_config = ConfigDict(populate_by_name=True)

    file_hash: Any = Field(default=None, alias="fileHash")
    media_data: Any = Field(default=None, alias="mediaData")
    confidence: Any = None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def client_ip(request: Request) -> str:
    """Best-known address of the caller, honouring proxy headers."""
    forwarded = request.headers.get("cf-connecting-ip")
    if forwarded:
        return forwarded
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def create_app(store: FingerprintStore) -> FastAPI:
    """Create a FastAPI application serving the given store."""

    app = FastAPI(title="mediaprint fingerprint service", version=__version__)
    app.state.store = store

    @app.middleware("http")
    async def cors_and_log(request: Request, call_next):  # type: ignore[override]
        start = time.perf_counter()
        response: Optional[Response] = None
        try:
            if request.method == "OPTIONS":
                response = Response(status_code=status.HTTP_200_OK)
            else:
                try:
                    response = await call_next(request)
                except Exception:
                    LOGGER.exception(
                        "Unhandled error for %s %s", request.method, request.url.path
                    )
                    response = JSONResponse(
                        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                        content={"error": "Internal server error"},
                    )
            response.headers.update(CORS_HEADERS)
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            status_code = response.status_code if response is not None else 500
            LOGGER.info(
                "%s %s -> %s (%.1f ms) ip=%s",
                request.method,
                request.url.path,
                status_code,
                duration_ms,
                client_ip(request),
            )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(_request: Request, exc: HTTPException):
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"error": detail})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request body"},
        )

    @app.get("/api/query-hash/{file_hash}")
    def query_hash(file_hash: str):
        if len(file_hash) != HASH_LENGTH:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"error": "Invalid hash format"},
            )
        try:
            record = store.lookup(file_hash)
        except ValidationError:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"error": "Invalid hash format"},
            )
        except NotFound:
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"matched": False, "fileHash": file_hash.lower()},
            )
        except StorageError as exc:
            LOGGER.error("Hash query failed for %s: %s", file_hash, exc)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": "Failed to query hash", "message": str(exc)},
            )
        return {
            "matched": True,
            "fileHash": record.file_hash,
            "mediaData": record.media_data,
            "confidence": record.confidence,
            "stats": {
                "submissionCount": record.submission_count,
                "lastUpdated": record.last_updated.isoformat(),
            },
        }

    @app.post("/api/submit-hash")
    def submit_hash(body: SubmitHashRequest, request: Request):
        try:
            outcome = store.submit(
                body.file_hash,
                body.media_data,
                body.confidence,
                submitter_tag=request.headers.get("user-agent") or "unknown",
                client_ip=client_ip(request),
            )
        except ValidationError as exc:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)}
            )
        except StorageError as exc:
            LOGGER.error("Hash submission failed: %s", exc)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": "Failed to submit hash data", "message": str(exc)},
            )
        status_code = (
            status.HTTP_201_CREATED
            if outcome.action == SubmitAction.CREATED
            else status.HTTP_200_OK
        )
        return JSONResponse(
            status_code=status_code,
            content={
                "success": True,
                "action": outcome.action.value,
                "message": SUBMIT_MESSAGES[outcome.action],
            },
        )

    @app.get("/api/stats")
    def get_stats():
        try:
            stats = store.stats()
        except StorageError as exc:
            LOGGER.error("Stats query failed: %s", exc)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": "Failed to get stats", "message": str(exc)},
            )
        return {
            "success": True,
            "stats": {
                "totalHashes": stats.total_hashes,
                "averageConfidence": stats.average_confidence,
                "totalSubmissions": stats.total_submissions,
                "totalQueries": stats.total_queries,
                "recentSubmissions": stats.recent_submissions,
                "topContributors": [
                    {
                        "submitterPrefix": bucket.submitter_prefix,
                        "contributionCount": bucket.contribution_count,
                    }
                    for bucket in stats.top_contributors
                ],
            },
            "lastUpdated": _now_iso(),
        }

    @app.get("/health")
    def health():
        return {"status": "healthy", "timestamp": _now_iso(), "service": SERVICE_NAME}

    return app
