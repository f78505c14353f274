"""Scan options, progress and report models.

This module defines the state owned by the scan orchestrator for one scan.
- ScanOptions parameterizes worker counts, extension filtering and submission.
- ScanProgress is the mutable per-phase progress structure; a fresh instance is
  created at every scan start.
- ScanReport is what the orchestrator hands back when a scan ends.

Design:
- ScanProgress is only mutated through core.progress.ProgressTracker, which
  serializes updates from concurrent workers.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Set

from pydantic import BaseModel, Field

from mediaprint.models.core import ResolutionResult, ScanCandidate

# Video containers recognised on media shares.
VIDEO_EXTENSIONS = {".mp4", ".mkv", ".avi", ".mov", ".wmv", ".m4v", ".ts", ".webm"}


class ScanPhase(str, Enum):
    """Phases of the scan state machine."""

    CONNECTING = "connecting"
    DISCOVERING = "discovering"
    PROCESSING = "processing"
    SCRAPING = "scraping"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def terminal(self: "ScanPhase") -> bool:
        """Whether no further transitions can happen from this phase."""
        return self in (ScanPhase.COMPLETED, ScanPhase.ERROR)


class ScanProgress(BaseModel):
    """Progress of one phase group of a scan."""

    phase: ScanPhase = ScanPhase.CONNECTING
    current: int = 0
    total: int = 0
    current_item: Optional[str] = None
    start_time: datetime = Field(default_factory=datetime.now)
    estimated_time_remaining: Optional[float] = None
    """Seconds left, extrapolated from the average time per item."""
    errors: List[str] = Field(default_factory=list)

    @property
    def ratio(self: "ScanProgress") -> float:
        """Fraction done in [0, 1]; 0 when the total is unknown."""
        if self.phase == ScanPhase.COMPLETED:
            return 1.0
        if self.total <= 0:
            return 0.0
        return min(1.0, self.current / self.total)


class ScanOptions(BaseModel):
    """Options for a scan."""

    max_workers: int = 3
    """Concurrent hash lookups and title resolutions (one search in flight per slot)."""

    enumeration_workers: int = 3
    """Concurrent directory listings of sibling sub-directories."""

    media_extensions: Set[str] = Field(default_factory=lambda: set(VIDEO_EXTENSIONS))
    include_hidden: bool = False

    selected_folders: List[str] = Field(default_factory=list)
    """Sub-folders of the root to scan; empty means the whole root."""

    submit_results: bool = True
    """Share successful title resolutions with the fingerprint store."""

    min_submit_confidence: float = 0.7
    """Resolutions below this confidence are kept locally but never shared."""


class ScanReport(BaseModel):
    """Everything a finished scan produced."""

    root: str
    progress: ScanProgress
    scrape_progress: Optional[ScanProgress] = None
    candidates: List[ScanCandidate] = Field(default_factory=list)
    results: List[ResolutionResult] = Field(default_factory=list)
    cancelled: bool = False
    overall_progress: float = 0.0

    @property
    def errors(self: "ScanReport") -> List[str]:
        """Errors recorded during the scan."""
        return self.progress.errors
