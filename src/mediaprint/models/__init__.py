"""Domain models for the mediaprint application."""

from mediaprint.models.core import (
    MediaKind,
    ResolutionMethod,
    ResolutionResult,
    ScanCandidate,
)
from mediaprint.models.fingerprint import (
    ContributorBucket,
    FingerprintRecord,
    StoreStats,
    SubmissionEvent,
    SubmitAction,
    SubmitOutcome,
)
from mediaprint.models.scan import ScanOptions, ScanPhase, ScanProgress, ScanReport

__all__ = [
    "ContributorBucket",
    "FingerprintRecord",
    "MediaKind",
    "ResolutionMethod",
    "ResolutionResult",
    "ScanCandidate",
    "ScanOptions",
    "ScanPhase",
    "ScanProgress",
    "ScanReport",
    "StoreStats",
    "SubmissionEvent",
    "SubmitAction",
    "SubmitOutcome",
]
