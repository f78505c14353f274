"""Progress tracking for scans.

ProgressTracker is the single synchronization point through which concurrent
scan workers publish progress; nothing else mutates a ScanProgress. Listeners
receive deep copies, so they can keep or inspect them freely.

Overall progress weights the scan pass (connect, discover, hash lookup) at 70%
and the scrape pass (title resolution) at 30%.
"""

import logging
import threading
import time
from typing import Callable, Optional

from mediaprint.models.scan import ScanPhase, ScanProgress

logger = logging.getLogger(__name__)

SCAN_WEIGHT = 0.7
SCRAPE_WEIGHT = 0.3

ProgressListener = Callable[[ScanProgress], None]


def phase_ratio(progress: Optional[ScanProgress]) -> float:
    """Completion ratio of one progress structure; 0 if it has not started."""
    if progress is None:
        return 0.0
    return progress.ratio


def weighted_progress(
    scan: Optional[ScanProgress], scrape: Optional[ScanProgress]
) -> float:
    """Overall completion in [0, 1] across the scan and scrape passes."""
    return SCAN_WEIGHT * phase_ratio(scan) + SCRAPE_WEIGHT * phase_ratio(scrape)


class ProgressTracker:
    """Mutex-guarded owner of one ScanProgress."""

    def __init__(self, listener: Optional[ProgressListener] = None) -> None:
        self._lock = threading.Lock()
        self._listener = listener
        self._progress = ScanProgress()
        self._phase_started = time.monotonic()

    def reset(self, phase: ScanPhase = ScanPhase.CONNECTING) -> None:
        """Replace the progress with a fresh structure in the given phase."""
        with self._lock:
            self._progress = ScanProgress(phase=phase)
            self._phase_started = time.monotonic()
            snapshot = self._progress.model_copy(deep=True)
        self._publish(snapshot)

    def set_phase(
        self,
        phase: ScanPhase,
        *,
        total: Optional[int] = None,
        current: Optional[int] = None,
    ) -> None:
        """Move to a new phase, optionally resetting the counters."""
        with self._lock:
            self._progress.phase = phase
            if total is not None:
                self._progress.total = total
                self._progress.current = 0 if current is None else current
                self._progress.estimated_time_remaining = None
                self._phase_started = time.monotonic()
            elif current is not None:
                self._progress.current = current
            if phase.terminal:
                self._progress.current_item = None
                self._progress.estimated_time_remaining = None
            snapshot = self._progress.model_copy(deep=True)
        self._publish(snapshot)

    def add_total(self, count: int) -> None:
        """Grow the total as more work is discovered."""
        if count <= 0:
            return
        with self._lock:
            self._progress.total += count
            snapshot = self._progress.model_copy(deep=True)
        self._publish(snapshot)

    def advance(self, count: int = 1, current_item: Optional[str] = None) -> None:
        """Mark items done and refresh the time estimate."""
        with self._lock:
            progress = self._progress
            progress.current += count
            if current_item is not None:
                progress.current_item = current_item
            if progress.current > 0 and progress.total >= progress.current:
                elapsed = time.monotonic() - self._phase_started
                per_item = elapsed / progress.current
                progress.estimated_time_remaining = per_item * (
                    progress.total - progress.current
                )
            snapshot = progress.model_copy(deep=True)
        self._publish(snapshot)

    def record_error(self, message: str) -> None:
        """Append an error message to the progress."""
        logger.warning(message)
        with self._lock:
            self._progress.errors.append(message)
            snapshot = self._progress.model_copy(deep=True)
        self._publish(snapshot)

    def snapshot(self) -> ScanProgress:
        """Return a copy of the current progress."""
        with self._lock:
            return self._progress.model_copy(deep=True)

    def _publish(self, snapshot: ScanProgress) -> None:
        if self._listener is None:
            return
        try:
            self._listener(snapshot)
        except Exception:
            logger.exception("Progress listener failed")
