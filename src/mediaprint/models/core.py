"""Core domain models for mediaprint.

This module defines the transient data structures produced and consumed during
a single scan pass.
- MediaKind classifies a file as movie, TV or unknown.
- ScanCandidate is a discovered media file awaiting resolution.
- ResolutionResult attaches metadata (or the lack of it) to a candidate.

Neither candidates nor results are persisted; the caller (library index) takes
ownership of the results when a scan finishes.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class MediaKind(str, Enum):
    """Kind of media file.

    Used by the classifier, the title resolver and the metadata search client
    to pick the right provider endpoint.
    """

    MOVIE = "movie"
    TV = "tv"
    UNKNOWN = "unknown"


class ResolutionMethod(str, Enum):
    """How a candidate was resolved to metadata."""

    HASH_EXACT = "hash_exact"
    TITLE_EXACT = "title_exact"
    TITLE_FUZZY = "title_fuzzy"
    UNRESOLVED = "unresolved"


class ScanCandidate(BaseModel):
    """A locally discovered file classified as a potential movie or episode."""

    path: str
    """Full path of the file as understood by the directory enumerator."""

    name: str
    """File name (last path component)."""

    kind: MediaKind
    """Classifier verdict for the file."""

    size_bytes: int = 0
    """Size of the file in bytes (0 when the enumerator does not report it)."""

    modified_time: Optional[datetime] = None
    """Last modification time reported by the enumerator."""


class ResolutionResult(BaseModel):
    """Outcome of resolving one candidate during a scan."""

    candidate: ScanCandidate
    file_hash: Optional[str] = None
    """Fingerprint of the file, if hashing succeeded."""

    resolved_metadata: Optional[Dict[str, Any]] = None
    """Metadata attached to the candidate, or None when unresolved."""

    method: ResolutionMethod = ResolutionMethod.UNRESOLVED
    confidence: float = 0.0
    """Confidence in [0.5, 1.0] for resolved results, 0.0 when unresolved."""

    submitted: bool = Field(default=False)
    """Whether the resolution was shared back with the fingerprint store."""

    @property
    def resolved(self: "ResolutionResult") -> bool:
        """Whether the candidate has metadata attached."""
        return self.method != ResolutionMethod.UNRESOLVED
