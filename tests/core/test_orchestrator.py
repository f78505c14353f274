"""Tests for the scan orchestrator."""

import asyncio
import posixpath
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Union

import httpx
import pytest

from mediaprint.core.orchestrator import CANCELLED_MESSAGE, ScanOrchestrator
from mediaprint.core.title_resolver import TitleResolver
from mediaprint.errors import EnumerationError, ScanInProgressError, StorageError
from mediaprint.fingerprint.base import FingerprintBackend
from mediaprint.fingerprint.client import FingerprintClient
from mediaprint.fs.enumerator import DirectoryEntry, DirectoryEnumerator
from mediaprint.fs.hashing import identity_hash
from mediaprint.metadata.base import MetadataClient
from mediaprint.metadata.clients.tmdb import TMDBClient
from mediaprint.metadata.models import MediaMetadata
from mediaprint.models.core import MediaKind, ResolutionMethod, ScanCandidate
from mediaprint.models.fingerprint import FingerprintRecord, SubmitAction, SubmitOutcome
from mediaprint.models.scan import ScanOptions, ScanPhase, ScanProgress

ROOT = "/media"
INCEPTION_PATH = "/media/Movies/Inception (2010).mkv"
LOST_PATH = "/media/TV/Lost.S01E01.mkv"


def entry(name: str, is_directory: bool = False, size: int = 100) -> DirectoryEntry:
    return DirectoryEntry(name=name, is_directory=is_directory, size=size)


def default_tree() -> Dict[str, Union[List[DirectoryEntry], Exception]]:
    return {
        ROOT: [
            entry(".hidden", is_directory=True),
            entry("Broken", is_directory=True),
            entry("Movies", is_directory=True),
            entry("TV", is_directory=True),
            entry("notes.txt"),
        ],
        "/media/Movies": [entry("Inception (2010).mkv")],
        "/media/TV": [entry("Lost.S01E01.mkv"), entry(".Lost.S01E01.mkv")],
        "/media/Broken": EnumerationError("/media/Broken", "Permission denied"),
        "/media/.hidden": [entry("Secret (2001).mkv")],
    }


class FakeEnumerator(DirectoryEnumerator):
    def __init__(self, tree: Dict[str, Union[List[DirectoryEntry], Exception]]) -> None:
        self.tree = tree
        self.listed: List[str] = []

    async def list(self, path: str) -> List[DirectoryEntry]:
        self.listed.append(path)
        listing = self.tree.get(path)
        if listing is None:
            raise EnumerationError(path, "No such directory")
        if isinstance(listing, Exception):
            raise listing
        return list(listing)


class FakeBackend(FingerprintBackend):
    def __init__(self) -> None:
        self.records: Dict[str, FingerprintRecord] = {}
        self.submissions: List[tuple] = []
        self.fail_lookups = False

    async def lookup(self, file_hash: str) -> Optional[FingerprintRecord]:
        if self.fail_lookups:
            raise StorageError("service down")
        return self.records.get(file_hash)

    async def submit(self, file_hash: str, media_data: dict, confidence: float) -> SubmitOutcome:
        self.submissions.append((file_hash, media_data, confidence))
        return SubmitOutcome(action=SubmitAction.CREATED)


class FakeMetadataClient(MetadataClient):
    def __init__(
        self,
        responses: Dict[str, List[MediaMetadata]],
        on_search: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.responses = responses
        self.on_search = on_search
        self.calls: List[str] = []

    async def search(self, title: str, kind: MediaKind = MediaKind.UNKNOWN) -> list[MediaMetadata]:
        self.calls.append(title)
        if self.on_search is not None:
            self.on_search(title)
        return list(self.responses.get(title, []))


INCEPTION = MediaMetadata(
    title="Inception", kind=MediaKind.MOVIE, provider="fake", provider_id="27205", year=2010
)
LOST = MediaMetadata(
    title="Lost", kind=MediaKind.TV, provider="fake", provider_id="4607", year=2004
)


def candidate_hash(path: str, kind: MediaKind) -> str:
    name = posixpath.basename(path)
    return identity_hash(ScanCandidate(path=path, name=name, kind=kind, size_bytes=100))


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def client() -> FakeMetadataClient:
    return FakeMetadataClient({"Inception": [INCEPTION], "Lost": [LOST]})


def by_path(report) -> Dict[str, object]:
    return {result.candidate.path: result for result in report.results}


@pytest.mark.asyncio
class TestScanOrchestrator:
    async def test_failing_subdirectory_is_recorded_and_skipped(self, backend) -> None:
        enumerator = FakeEnumerator(default_tree())
        orchestrator = ScanOrchestrator(enumerator, backend)

        report = await orchestrator.scan(ROOT)

        assert report.progress.phase == ScanPhase.COMPLETED
        assert len(report.errors) == 1
        assert "/media/Broken" in report.errors[0]
        assert sorted(c.path for c in report.candidates) == [INCEPTION_PATH, LOST_PATH]
        assert "/media/.hidden" not in enumerator.listed
        assert not report.cancelled

    async def test_candidates_are_classified(self) -> None:
        orchestrator = ScanOrchestrator(FakeEnumerator(default_tree()))

        report = await orchestrator.scan(ROOT)

        kinds = {c.path: c.kind for c in report.candidates}
        assert kinds == {INCEPTION_PATH: MediaKind.MOVIE, LOST_PATH: MediaKind.TV}

    async def test_include_hidden(self) -> None:
        orchestrator = ScanOrchestrator(
            FakeEnumerator(default_tree()), options=ScanOptions(include_hidden=True)
        )

        report = await orchestrator.scan(ROOT)

        assert len(report.candidates) == 4

    async def test_hash_hit_skips_title_resolution(self, backend, client) -> None:
        inception_hash = candidate_hash(INCEPTION_PATH, MediaKind.MOVIE)
        now = datetime.now(timezone.utc)
        backend.records[inception_hash] = FingerprintRecord(
            file_hash=inception_hash,
            media_data={"title": "Inception", "kind": "movie", "year": 2010},
            confidence=0.97,
            created_at=now,
            last_updated=now,
        )
        orchestrator = ScanOrchestrator(
            FakeEnumerator(default_tree()), backend, TitleResolver(client)
        )

        report = await orchestrator.scan(ROOT)

        result = by_path(report)[INCEPTION_PATH]
        assert result.method == ResolutionMethod.HASH_EXACT
        assert result.confidence == 0.97
        assert result.file_hash == inception_hash
        assert not result.submitted
        assert "Inception" not in client.calls

    async def test_resolved_titles_are_submitted(self, backend, client) -> None:
        orchestrator = ScanOrchestrator(
            FakeEnumerator(default_tree()), backend, TitleResolver(client)
        )

        report = await orchestrator.scan(ROOT)

        results = by_path(report)
        inception = results[INCEPTION_PATH]
        assert inception.method == ResolutionMethod.TITLE_EXACT
        assert inception.confidence == 0.95
        assert inception.submitted
        lost = results[LOST_PATH]
        assert lost.confidence == 0.85
        assert lost.resolved_metadata["season"] == 1
        assert lost.resolved_metadata["episode"] == 1
        assert lost.resolved_metadata["kind"] == "tv"
        submitted = {file_hash: confidence for file_hash, _, confidence in backend.submissions}
        assert submitted == {
            candidate_hash(INCEPTION_PATH, MediaKind.MOVIE): 0.95,
            candidate_hash(LOST_PATH, MediaKind.TV): 0.85,
        }
        assert report.overall_progress == pytest.approx(1.0)
        assert report.scrape_progress.phase == ScanPhase.COMPLETED

    async def test_low_confidence_results_are_not_submitted(self, backend, client) -> None:
        orchestrator = ScanOrchestrator(
            FakeEnumerator(default_tree()),
            backend,
            TitleResolver(client),
            options=ScanOptions(min_submit_confidence=0.9),
        )

        report = await orchestrator.scan(ROOT)

        results = by_path(report)
        assert results[INCEPTION_PATH].submitted
        assert results[LOST_PATH].resolved
        assert not results[LOST_PATH].submitted
        assert len(backend.submissions) == 1

    async def test_submission_can_be_disabled(self, backend, client) -> None:
        orchestrator = ScanOrchestrator(
            FakeEnumerator(default_tree()),
            backend,
            TitleResolver(client),
            options=ScanOptions(submit_results=False),
        )

        report = await orchestrator.scan(ROOT)

        assert all(result.resolved for result in report.results)
        assert backend.submissions == []

    async def test_unresolved_without_resolver(self, backend) -> None:
        orchestrator = ScanOrchestrator(FakeEnumerator(default_tree()), backend)

        report = await orchestrator.scan(ROOT)

        assert all(r.method == ResolutionMethod.UNRESOLVED for r in report.results)
        assert report.scrape_progress.phase == ScanPhase.COMPLETED
        assert orchestrator.overall_progress() == pytest.approx(1.0)

    async def test_stop_during_resolution_prevents_submissions(self, backend) -> None:
        orchestrator: Optional[ScanOrchestrator] = None

        def stop(title: str) -> None:
            orchestrator.request_stop()

        client = FakeMetadataClient({"Inception": [INCEPTION], "Lost": [LOST]}, on_search=stop)
        orchestrator = ScanOrchestrator(
            FakeEnumerator(default_tree()), backend, TitleResolver(client)
        )

        report = await orchestrator.scan(ROOT)

        assert report.cancelled
        assert report.progress.phase == ScanPhase.ERROR
        assert CANCELLED_MESSAGE in report.errors
        assert backend.submissions == []
        assert orchestrator.stop_requested
        assert not orchestrator.is_scanning

    async def test_stop_during_discovery(self, backend) -> None:
        orchestrator: Optional[ScanOrchestrator] = None

        class StoppingEnumerator(FakeEnumerator):
            async def list(self, path: str) -> List[DirectoryEntry]:
                listing = await super().list(path)
                if path == "/media/Movies":
                    orchestrator.request_stop()
                return listing

        enumerator = StoppingEnumerator(default_tree())
        orchestrator = ScanOrchestrator(enumerator, backend)

        report = await orchestrator.scan(ROOT)

        assert report.cancelled
        assert report.errors[-1] == CANCELLED_MESSAGE
        assert report.results == []

    async def test_new_scan_clears_stop_request(self, backend) -> None:
        orchestrator = ScanOrchestrator(FakeEnumerator(default_tree()), backend)
        orchestrator.request_stop()

        report = await orchestrator.scan(ROOT)

        assert not report.cancelled
        assert report.progress.phase == ScanPhase.COMPLETED

    async def test_connect_failure_ends_in_error(self, backend) -> None:
        orchestrator = ScanOrchestrator(FakeEnumerator({}), backend)

        report = await orchestrator.scan("/missing")

        assert report.progress.phase == ScanPhase.ERROR
        assert len(report.errors) == 1
        assert "Cannot connect to /missing" in report.errors[0]
        assert not report.cancelled
        assert report.candidates == []

    async def test_second_concurrent_scan_is_rejected(self, backend) -> None:
        gate = asyncio.Event()

        class GatedEnumerator(FakeEnumerator):
            async def list(self, path: str) -> List[DirectoryEntry]:
                await gate.wait()
                return await super().list(path)

        orchestrator = ScanOrchestrator(GatedEnumerator(default_tree()), backend)
        task = asyncio.create_task(orchestrator.scan(ROOT))
        await asyncio.sleep(0)

        assert orchestrator.is_scanning
        with pytest.raises(ScanInProgressError):
            await orchestrator.scan(ROOT)

        gate.set()
        report = await task
        assert report.progress.phase == ScanPhase.COMPLETED
        assert not orchestrator.is_scanning

    async def test_independent_orchestrators_scan_concurrently(self, backend) -> None:
        first = ScanOrchestrator(FakeEnumerator(default_tree()), backend)
        second = ScanOrchestrator(FakeEnumerator(default_tree()), FakeBackend())

        reports = await asyncio.gather(first.scan(ROOT), second.scan(ROOT))

        assert [r.progress.phase for r in reports] == [ScanPhase.COMPLETED] * 2

    async def test_selected_folders(self, backend) -> None:
        enumerator = FakeEnumerator(default_tree())
        orchestrator = ScanOrchestrator(
            enumerator, backend, options=ScanOptions(selected_folders=["Movies"])
        )

        report = await orchestrator.scan(ROOT)

        assert [c.path for c in report.candidates] == [INCEPTION_PATH]
        assert "/media/TV" not in enumerator.listed
        assert report.errors == []

    async def test_hash_and_lookup_failures_are_recorded(self, backend, client) -> None:
        def broken_hasher(candidate: ScanCandidate) -> str:
            if candidate.path == LOST_PATH:
                raise OSError("read error")
            return identity_hash(candidate)

        backend.fail_lookups = True
        orchestrator = ScanOrchestrator(
            FakeEnumerator(default_tree()), backend, TitleResolver(client), hasher=broken_hasher
        )

        report = await orchestrator.scan(ROOT)

        assert report.progress.phase == ScanPhase.COMPLETED
        assert any(f"Failed to hash {LOST_PATH}" in e for e in report.errors)
        assert any("Fingerprint lookup failed" in e for e in report.errors)
        results = by_path(report)
        assert results[LOST_PATH].file_hash is None
        assert results[LOST_PATH].resolved
        assert not results[LOST_PATH].submitted
        assert results[INCEPTION_PATH].submitted

    async def test_progress_callback_sees_every_phase(self, backend, client) -> None:
        phases: List[ScanPhase] = []
        overall: List[float] = []

        def on_progress(snapshot: ScanProgress, progress: float) -> None:
            phases.append(snapshot.phase)
            overall.append(progress)

        orchestrator = ScanOrchestrator(
            FakeEnumerator(default_tree()),
            backend,
            TitleResolver(client),
            on_progress=on_progress,
        )

        await orchestrator.scan(ROOT)

        for phase in (
            ScanPhase.CONNECTING,
            ScanPhase.DISCOVERING,
            ScanPhase.PROCESSING,
            ScanPhase.SCRAPING,
            ScanPhase.COMPLETED,
        ):
            assert phase in phases
        assert all(0.0 <= value <= 1.0 for value in overall)
        assert overall[-1] == pytest.approx(1.0)

    async def test_malformed_fingerprint_replies_fail_only_their_file(self, respx_mock) -> None:
        service = "https://fp.example.test"
        respx_mock.get(url__startswith=f"{service}/api/query-hash/").mock(
            return_value=httpx.Response(200, json={"matched": True, "confidence": 0.9})
        )
        fingerprints = FingerprintClient(service, submitter_tag="mediaprint/test")
        orchestrator = ScanOrchestrator(FakeEnumerator(default_tree()), fingerprints)

        report = await orchestrator.scan(ROOT)

        assert report.progress.phase == ScanPhase.COMPLETED
        for path in (INCEPTION_PATH, LOST_PATH):
            assert len([e for e in report.errors if path in e]) == 1
        assert len(report.errors) == 3
        assert all(r.method == ResolutionMethod.UNRESOLVED for r in report.results)

    async def test_malformed_search_replies_fail_only_their_file(
        self, backend, respx_mock
    ) -> None:
        search = "https://api.themoviedb.org/3/search"
        respx_mock.get(f"{search}/movie").mock(
            return_value=httpx.Response(200, json=["unexpected"])
        )
        respx_mock.get(f"{search}/tv").mock(
            return_value=httpx.Response(
                200,
                json={"results": [{"name": "Lost"}, {"id": 4607, "name": "Lost"}]},
            )
        )
        resolver = TitleResolver(TMDBClient(api_key="dummy"))
        orchestrator = ScanOrchestrator(FakeEnumerator(default_tree()), backend, resolver)

        report = await orchestrator.scan(ROOT)

        assert report.progress.phase == ScanPhase.COMPLETED
        assert len([e for e in report.errors if INCEPTION_PATH in e]) == 1
        assert not [e for e in report.errors if LOST_PATH in e]
        results = by_path(report)
        assert not results[INCEPTION_PATH].resolved
        assert results[LOST_PATH].resolved_metadata["title"] == "Lost"
        assert results[LOST_PATH].submitted
