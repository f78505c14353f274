"""Scan orchestrator: discover, classify and resolve media files.

A scan walks a directory tree through a DirectoryEnumerator and resolves every
media file it finds through a fallback chain:

    fingerprint lookup -> filename parsing + title resolution -> unresolved

Phases: connecting -> discovering -> processing -> scraping -> completed,
with error reachable from any phase. Only a failed connectivity check (or an
unexpected top-level failure) ends a scan in error; per-directory and per-file
failures are recorded in the progress and the scan carries on.

Design:
- One asyncio task per scan. Sibling directories are listed concurrently,
  bounded by ``enumeration_workers``; hash lookups and title resolutions are
  bounded by ``max_workers`` (one provider request in flight per slot).
- Workers publish progress only through ProgressTracker.
- Cancellation is cooperative: the stop flag is checked at every directory
  and candidate boundary and right before each submission.
"""

import asyncio
import logging
import os
import threading
from typing import Callable, Dict, List, Optional

from mediaprint.core.classifier import classify
from mediaprint.core.filename import parse_filename
from mediaprint.core.progress import ProgressTracker, weighted_progress
from mediaprint.core.title_resolver import TitleResolver
from mediaprint.errors import (
    EnumerationError,
    FatalConnectError,
    MediaprintError,
    ResolutionError,
    ScanInProgressError,
)
from mediaprint.fingerprint.base import FingerprintBackend
from mediaprint.fs.enumerator import DirectoryEnumerator
from mediaprint.fs.hashing import Hasher, identity_hash
from mediaprint.models.core import MediaKind, ResolutionMethod, ResolutionResult, ScanCandidate
from mediaprint.models.scan import ScanOptions, ScanPhase, ScanProgress, ScanReport

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Scan cancelled"

ProgressCallback = Callable[[ScanProgress, float], None]


class _ScanCancelled(Exception):
    pass


class ScanOrchestrator:
    """Runs scans of one media source."""

    def __init__(
        self,
        enumerator: DirectoryEnumerator,
        fingerprints: Optional[FingerprintBackend] = None,
        resolver: Optional[TitleResolver] = None,
        hasher: Hasher = identity_hash,
        options: Optional[ScanOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
        classifier: Callable[[str, str], MediaKind] = classify,
    ) -> None:
        """Wire the orchestrator to its collaborators.

        Args:
            enumerator: Lists directories of the media source.
            fingerprints: Shared fingerprint backend; None disables lookups and
                submissions.
            resolver: Online title resolver; None leaves hash misses unresolved.
            hasher: Computes the fingerprint of a candidate (runs in a thread).
            options: Scan options; defaults to ScanOptions().
            on_progress: Called with a progress snapshot and the overall
                weighted progress whenever either changes.
            classifier: Maps (directory, file name) to a MediaKind.
        """
        self.enumerator = enumerator
        self.fingerprints = fingerprints
        self.resolver = resolver
        self.hasher = hasher
        self.options = options or ScanOptions()
        self.classifier = classifier
        self._on_progress = on_progress
        self._stop = threading.Event()
        self._scanning = False
        self._scan_tracker = ProgressTracker(self._publish)
        self._scrape_tracker: Optional[ProgressTracker] = None

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------
    @property
    def is_scanning(self) -> bool:
        return self._scanning

    @property
    def status(self) -> ScanProgress:
        """Snapshot of the current (or last) scan progress."""
        return self._scan_tracker.snapshot()

    @property
    def scrape_status(self) -> Optional[ScanProgress]:
        """Snapshot of the title-resolution progress, once it has started."""
        if self._scrape_tracker is None:
            return None
        return self._scrape_tracker.snapshot()

    def overall_progress(self) -> float:
        """Weighted completion of the current (or last) scan in [0, 1]."""
        return weighted_progress(self.status, self.scrape_status)

    def request_stop(self) -> None:
        """Ask the running scan to stop at the next boundary."""
        if self._scanning:
            logger.info("Stop requested for running scan")
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def _publish(self, snapshot: ScanProgress) -> None:
        if self._on_progress is not None:
            self._on_progress(snapshot, self.overall_progress())

    def _check_cancelled(self) -> None:
        if self._stop.is_set():
            raise _ScanCancelled()

    # ------------------------------------------------------------------
    # Scan
    # ------------------------------------------------------------------
    async def scan(self, root: str) -> ScanReport:
        """Run a full scan of root and return what it produced.

        Raises:
            ScanInProgressError: If a scan is already running.
        """
        if self._scanning:
            raise ScanInProgressError("A scan is already in progress")
        self._scanning = True
        self._stop.clear()
        self._scrape_tracker = None
        self._scan_tracker.reset()

        candidates: List[ScanCandidate] = []
        results: List[ResolutionResult] = []
        cancelled = False
        logger.info("Starting scan of %s", root)
        try:
            await self._connect(root)
            self._check_cancelled()
            candidates.extend(await self._discover(root))
            self._check_cancelled()
            results.extend(await self._process(candidates))
            self._check_cancelled()
            await self._scrape(results)
            self._check_cancelled()
            self._scan_tracker.set_phase(ScanPhase.COMPLETED)
        except _ScanCancelled:
            cancelled = True
            self._scan_tracker.record_error(CANCELLED_MESSAGE)
            self._scan_tracker.set_phase(ScanPhase.ERROR)
        except FatalConnectError as exc:
            self._scan_tracker.record_error(str(exc))
            self._scan_tracker.set_phase(ScanPhase.ERROR)
        except Exception as exc:
            logger.exception("Scan of %s failed", root)
            self._scan_tracker.record_error(f"Scan failed: {exc}")
            self._scan_tracker.set_phase(ScanPhase.ERROR)
        finally:
            self._scanning = False

        report = ScanReport(
            root=root,
            progress=self.status,
            scrape_progress=self.scrape_status,
            candidates=candidates,
            results=results,
            cancelled=cancelled,
            overall_progress=self.overall_progress(),
        )
        logger.info(
            "Scan of %s finished in phase %s: %d candidates, %d resolved, %d errors",
            root,
            report.progress.phase.value,
            len(candidates),
            sum(1 for result in results if result.resolved),
            len(report.errors),
        )
        return report

    async def _connect(self, root: str) -> None:
        try:
            await self.enumerator.ping(root)
        except (EnumerationError, OSError) as exc:
            raise FatalConnectError(f"Cannot connect to {root}: {exc}") from exc

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------
    async def _discover(self, root: str) -> List[ScanCandidate]:
        if self.options.selected_folders:
            roots = [self.enumerator.join(root, folder) for folder in self.options.selected_folders]
        else:
            roots = [root]
        self._scan_tracker.set_phase(ScanPhase.DISCOVERING, total=len(roots))
        semaphore = asyncio.Semaphore(max(1, self.options.enumeration_workers))
        groups = await asyncio.gather(*(self._walk(path, semaphore) for path in roots))
        candidates = [candidate for group in groups for candidate in group]
        logger.info("Discovered %d media files under %s", len(candidates), root)
        return candidates

    async def _walk(self, directory: str, semaphore: asyncio.Semaphore) -> List[ScanCandidate]:
        if self._stop.is_set():
            return []
        try:
            async with semaphore:
                entries = await self.enumerator.list(directory)
        except EnumerationError as exc:
            self._scan_tracker.record_error(str(exc))
            self._scan_tracker.advance(current_item=directory)
            return []
        except OSError as exc:
            self._scan_tracker.record_error(f"Failed to list directory {directory}: {exc}")
            self._scan_tracker.advance(current_item=directory)
            return []
        self._scan_tracker.advance(current_item=directory)

        candidates: List[ScanCandidate] = []
        subdirectories: List[str] = []
        for entry in entries:
            if not self.options.include_hidden and entry.name.startswith("."):
                continue
            child = self.enumerator.join(directory, entry.name)
            if entry.is_directory:
                subdirectories.append(child)
                continue
            extension = os.path.splitext(entry.name)[1].lower()
            if extension not in self.options.media_extensions:
                continue
            candidates.append(
                ScanCandidate(
                    path=child,
                    name=entry.name,
                    kind=self.classifier(directory, entry.name),
                    size_bytes=entry.size,
                    modified_time=entry.modified_time,
                )
            )

        self._scan_tracker.add_total(len(subdirectories))
        nested = await asyncio.gather(*(self._walk(sub, semaphore) for sub in subdirectories))
        for group in nested:
            candidates.extend(group)
        return candidates

    # ------------------------------------------------------------------
    # Fingerprint lookup
    # ------------------------------------------------------------------
    async def _process(self, candidates: List[ScanCandidate]) -> List[ResolutionResult]:
        self._scan_tracker.set_phase(ScanPhase.PROCESSING, total=len(candidates))
        semaphore = asyncio.Semaphore(max(1, self.options.max_workers))
        processed = await asyncio.gather(
            *(self._lookup(candidate, semaphore) for candidate in candidates)
        )
        return [result for result in processed if result is not None]

    async def _lookup(
        self, candidate: ScanCandidate, semaphore: asyncio.Semaphore
    ) -> Optional[ResolutionResult]:
        if self._stop.is_set():
            return None
        async with semaphore:
            if self._stop.is_set():
                return None
            result = ResolutionResult(candidate=candidate)
            try:
                result.file_hash = await asyncio.to_thread(self.hasher, candidate)
            except (OSError, ValueError, MediaprintError) as exc:
                self._scan_tracker.record_error(f"Failed to hash {candidate.path}: {exc}")
            if result.file_hash and self.fingerprints is not None:
                try:
                    record = await self.fingerprints.lookup(result.file_hash)
                except MediaprintError as exc:
                    self._scan_tracker.record_error(
                        f"Fingerprint lookup failed for {candidate.path} "
                        f"({result.file_hash}): {exc}"
                    )
                else:
                    if record is not None:
                        result.resolved_metadata = record.media_data
                        result.method = ResolutionMethod.HASH_EXACT
                        result.confidence = record.confidence
            self._scan_tracker.advance(current_item=candidate.path)
            return result

    # ------------------------------------------------------------------
    # Title resolution
    # ------------------------------------------------------------------
    async def _scrape(self, results: List[ResolutionResult]) -> None:
        pending = [result for result in results if not result.resolved]
        self._scan_tracker.set_phase(ScanPhase.SCRAPING)
        self._scrape_tracker = ProgressTracker(self._publish)
        self._scrape_tracker.reset(ScanPhase.SCRAPING)
        self._scrape_tracker.set_phase(ScanPhase.SCRAPING, total=len(pending))

        if self.resolver is None:
            self._scrape_tracker.set_phase(ScanPhase.COMPLETED, current=len(pending))
            return

        semaphore = asyncio.Semaphore(max(1, self.options.max_workers))
        await asyncio.gather(
            *(
                self._resolve(self.resolver, self._scrape_tracker, result, semaphore)
                for result in pending
            )
        )
        if not self._stop.is_set():
            self._scrape_tracker.set_phase(ScanPhase.COMPLETED)

    async def _resolve(
        self,
        resolver: TitleResolver,
        tracker: ProgressTracker,
        result: ResolutionResult,
        semaphore: asyncio.Semaphore,
    ) -> None:
        if self._stop.is_set():
            return
        async with semaphore:
            if self._stop.is_set():
                return
            candidate = result.candidate
            parsed = parse_filename(candidate.name)
            raw_title = parsed.title or os.path.splitext(candidate.name)[0]
            try:
                match = await resolver.resolve(
                    raw_title, parsed.year, candidate.kind, candidate.path
                )
            except ResolutionError as exc:
                self._scan_tracker.record_error(f"{candidate.path}: {exc}")
                match = None
            if match is not None:
                method, confidence = resolver.score(raw_title, parsed.year, match)
                metadata: Dict[str, object] = match.to_media_data()
                if parsed.season is not None:
                    metadata["season"] = parsed.season
                if parsed.episode is not None:
                    metadata["episode"] = parsed.episode
                result.resolved_metadata = metadata
                result.method = method
                result.confidence = confidence
                await self._submit(result)
            tracker.advance(current_item=candidate.path)

    async def _submit(self, result: ResolutionResult) -> None:
        if (
            not self.options.submit_results
            or self.fingerprints is None
            or result.file_hash is None
            or result.resolved_metadata is None
            or result.confidence < self.options.min_submit_confidence
        ):
            return
        if self._stop.is_set():
            return
        try:
            await self.fingerprints.submit(
                result.file_hash, result.resolved_metadata, result.confidence
            )
        except MediaprintError as exc:
            self._scan_tracker.record_error(
                f"Failed to submit fingerprint for {result.candidate.path}: {exc}"
            )
        else:
            result.submitted = True
