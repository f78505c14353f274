"""Models for the shared fingerprint store.

FingerprintRecord is the durable best-known mapping of a file hash to media
metadata. SubmissionEvent is the append-only audit trail written for every
accepted submission, whatever the merge outcome.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SubmitAction(str, Enum):
    """Result of a submission against the fingerprint store."""

    CREATED = "created"
    UPDATED = "updated"
    ACKNOWLEDGED = "acknowledged"


class FingerprintRecord(BaseModel):
    """Best-known metadata for one file hash."""

    file_hash: str
    """32 lowercase hex characters; unique key."""

    media_data: Dict[str, Any]
    """Opaque metadata blob (title, kind, year, provider ids, ...)."""

    confidence: float
    """Confidence in [0.5, 1.0] that media_data identifies the file."""

    submission_count: int = 1
    query_count: int = 0
    created_at: datetime
    last_updated: datetime
    last_queried: Optional[datetime] = None
    last_submitter_tag: Optional[str] = None


class SubmissionEvent(BaseModel):
    """Immutable audit record of a single submission."""

    file_hash: str
    title: Optional[str] = None
    kind: Optional[str] = None
    confidence: float
    action: SubmitAction
    submitter_tag: str = "unknown"
    client_ip: str = "unknown"
    submitted_at: datetime


class SubmitOutcome(BaseModel):
    """Action taken for a submission and the record as committed."""

    action: SubmitAction
    record: Optional[FingerprintRecord] = None
    """Committed record; remote clients may not receive it."""


class ContributorBucket(BaseModel):
    """Submission count for a bucket of submitter tags."""

    submitter_prefix: str
    contribution_count: int


class StoreStats(BaseModel):
    """Aggregate statistics over the fingerprint store."""

    total_hashes: int = 0
    average_confidence: float = 0.0
    total_submissions: int = 0
    total_queries: int = 0
    recent_submissions: int = 0
    top_contributors: List[ContributorBucket] = Field(default_factory=list)
