"""Tests for the remote fingerprint service client."""

import httpx
import pytest

from mediaprint.errors import StorageError, ValidationError
from mediaprint.fingerprint.client import FingerprintClient
from mediaprint.models.fingerprint import SubmitAction

BASE_URL = "https://fp.example.test"
HASH = "0123456789abcdef0123456789abcdef"
MOVIE = {"title": "Inception", "kind": "movie"}


@pytest.fixture
def client() -> FingerprintClient:
    return FingerprintClient(f"{BASE_URL}/", submitter_tag="mediaprint/test")


@pytest.mark.asyncio
class TestFingerprintClient:
    async def test_lookup_hit(self, client, respx_mock) -> None:
        route = respx_mock.get(f"{BASE_URL}/api/query-hash/{HASH}").mock(
            return_value=httpx.Response(
                200,
                json={
                    "matched": True,
                    "fileHash": HASH,
                    "mediaData": MOVIE,
                    "confidence": 0.9,
                    "stats": {
                        "submissionCount": 4,
                        "lastUpdated": "2026-01-10T12:00:00+00:00",
                    },
                },
            )
        )

        record = await client.lookup(HASH.upper())

        assert record is not None
        assert record.media_data == MOVIE
        assert record.confidence == 0.9
        assert record.submission_count == 4
        assert record.last_updated.year == 2026
        assert route.calls.last.request.headers["User-Agent"] == "mediaprint/test"

    async def test_lookup_miss_returns_none(self, client, respx_mock) -> None:
        respx_mock.get(f"{BASE_URL}/api/query-hash/{HASH}").mock(
            return_value=httpx.Response(404, json={"matched": False, "fileHash": HASH})
        )

        assert await client.lookup(HASH) is None

    async def test_lookup_rejects_malformed_hash_locally(self, client) -> None:
        with pytest.raises(ValidationError):
            await client.lookup("nope")

    async def test_bad_request_raises_validation_error(self, client, respx_mock) -> None:
        respx_mock.get(f"{BASE_URL}/api/query-hash/{HASH}").mock(
            return_value=httpx.Response(400, json={"error": "Invalid hash format"})
        )

        with pytest.raises(ValidationError, match="Invalid hash format"):
            await client.lookup(HASH)

    async def test_server_error_raises_storage_error(self, client, respx_mock) -> None:
        respx_mock.get(f"{BASE_URL}/api/query-hash/{HASH}").mock(
            return_value=httpx.Response(500, json={"error": "Failed to query hash"})
        )

        with pytest.raises(StorageError):
            await client.lookup(HASH)

    async def test_transport_error_raises_storage_error(self, client, respx_mock) -> None:
        respx_mock.get(f"{BASE_URL}/api/query-hash/{HASH}").mock(
            side_effect=httpx.ConnectError("connection refused")
        )

        with pytest.raises(StorageError, match="unreachable"):
            await client.lookup(HASH)

    async def test_submit_posts_payload(self, client, respx_mock) -> None:
        route = respx_mock.post(f"{BASE_URL}/api/submit-hash").mock(
            return_value=httpx.Response(
                201,
                json={
                    "success": True,
                    "action": "created",
                    "message": "Hash data submitted successfully",
                },
            )
        )

        outcome = await client.submit(HASH.upper(), MOVIE, 0.9)

        assert outcome.action == SubmitAction.CREATED
        assert outcome.record is None
        sent = route.calls.last.request
        assert b'"fileHash":"0123456789abcdef0123456789abcdef"' in sent.content.replace(b" ", b"")

    async def test_submit_acknowledged(self, client, respx_mock) -> None:
        respx_mock.post(f"{BASE_URL}/api/submit-hash").mock(
            return_value=httpx.Response(
                200, json={"success": True, "action": "acknowledged", "message": "ok"}
            )
        )

        outcome = await client.submit(HASH, MOVIE, 0.8)

        assert outcome.action == SubmitAction.ACKNOWLEDGED

    async def test_submit_validates_before_sending(self, client, respx_mock) -> None:
        with pytest.raises(ValidationError):
            await client.submit(HASH, {"title": "Inception"}, 0.9)
        assert not respx_mock.calls

    async def test_stats_and_health(self, client, respx_mock) -> None:
        respx_mock.get(f"{BASE_URL}/api/stats").mock(
            return_value=httpx.Response(
                200, json={"success": True, "stats": {"totalHashes": 3}, "lastUpdated": "x"}
            )
        )
        respx_mock.get(f"{BASE_URL}/health").mock(
            return_value=httpx.Response(200, json={"status": "healthy"})
        )

        assert await client.stats() == {"totalHashes": 3}
        assert await client.health() is True

    async def test_health_reports_unreachable_service(self, client, respx_mock) -> None:
        respx_mock.get(f"{BASE_URL}/health").mock(side_effect=httpx.ConnectError("down"))

        assert await client.health() is False

    async def test_lookup_without_timestamps_uses_current_time(self, client, respx_mock) -> None:
        respx_mock.get(f"{BASE_URL}/api/query-hash/{HASH}").mock(
            return_value=httpx.Response(
                200, json={"matched": True, "mediaData": MOVIE, "confidence": 0.9}
            )
        )

        record = await client.lookup(HASH)

        assert record is not None
        assert record.file_hash == HASH
        assert record.submission_count == 1
        assert record.created_at == record.last_updated

    @pytest.mark.parametrize(
        "reply",
        [
            httpx.Response(200, json={"matched": True, "confidence": 0.9}),
            httpx.Response(200, json={"matched": True, "mediaData": MOVIE}),
            httpx.Response(
                200,
                json={
                    "matched": True,
                    "mediaData": MOVIE,
                    "confidence": 0.9,
                    "stats": {"lastUpdated": "yesterday"},
                },
            ),
            httpx.Response(200, text="<html>maintenance</html>"),
            httpx.Response(200, json=["matched"]),
        ],
        ids=["no-media-data", "no-confidence", "bad-timestamp", "not-json", "not-object"],
    )
    async def test_malformed_lookup_reply_raises_storage_error(
        self, client, respx_mock, reply
    ) -> None:
        respx_mock.get(f"{BASE_URL}/api/query-hash/{HASH}").mock(return_value=reply)

        with pytest.raises(StorageError):
            await client.lookup(HASH)

    @pytest.mark.parametrize(
        "reply",
        [
            httpx.Response(200, json={"success": True}),
            httpx.Response(200, json={"success": True, "action": "merged"}),
            httpx.Response(201, text="created"),
        ],
        ids=["no-action", "unknown-action", "not-json"],
    )
    async def test_malformed_submit_reply_raises_storage_error(
        self, client, respx_mock, reply
    ) -> None:
        respx_mock.post(f"{BASE_URL}/api/submit-hash").mock(return_value=reply)

        with pytest.raises(StorageError, match="submit reply|invalid JSON"):
            await client.submit(HASH, MOVIE, 0.9)

    async def test_health_with_non_json_body(self, client, respx_mock) -> None:
        respx_mock.get(f"{BASE_URL}/health").mock(return_value=httpx.Response(200, text="ok"))

        assert await client.health() is False
