"""Submission validation and merge policy for the fingerprint store.

The merge policy decides whether a new submission for an already-known hash
replaces the stored metadata:

    should_update = (Cn > Ce + 0.1) or (|Cn - Ce| < 0.1 and incoming fields > 3)

A duplicate low-effort submission cannot destabilize a good match, while a
clearly more confident or a comparably confident but richer submission
improves the shared record. Both comparisons are strict; a difference of
exactly 0.1 is never an update. Comparisons use plain float arithmetic.
"""

import re
from typing import Any, Dict, Tuple

from mediaprint.errors import ValidationError

HASH_PATTERN = re.compile(r"^[a-f0-9]{32}$", re.IGNORECASE)
HASH_LENGTH = 32

MIN_CONFIDENCE = 0.5
MAX_CONFIDENCE = 1.0

CONFIDENCE_MARGIN = 0.1
RICH_FIELD_THRESHOLD = 3


def normalize_hash(file_hash: Any) -> str:
    """Validate a file hash and return it lowercased.

    Raises:
        ValidationError: If the hash is not 32 hex characters.
    """
    if not isinstance(file_hash, str) or not HASH_PATTERN.match(file_hash):
        raise ValidationError(f"Invalid hash format: {file_hash!r}")
    return file_hash.lower()


def validate_confidence(confidence: Any) -> float:
    """Check that confidence is a number in [0.5, 1.0]."""
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise ValidationError(f"Invalid confidence value: {confidence!r}")
    if confidence < MIN_CONFIDENCE or confidence > MAX_CONFIDENCE:
        raise ValidationError(f"Invalid confidence value: {confidence!r}")
    return float(confidence)


def media_title_and_kind(media_data: Any) -> Tuple[str, str]:
    """Return the (title, kind) pair required of every submission.

    Older clients send the kind under ``type``; it is accepted as a fallback.
    """
    if not isinstance(media_data, dict):
        raise ValidationError("mediaData must be an object")
    title = media_data.get("title")
    kind = media_data.get("kind") or media_data.get("type")
    if not title or not isinstance(title, str):
        raise ValidationError("mediaData.title is required")
    if not kind or not isinstance(kind, str):
        raise ValidationError("mediaData.kind is required")
    return title, kind


def validate_submission(
    file_hash: Any, media_data: Any, confidence: Any
) -> Tuple[str, Dict[str, Any], float]:
    """Validate all submission inputs, returning normalized values."""
    normalized = normalize_hash(file_hash)
    value = validate_confidence(confidence)
    media_title_and_kind(media_data)
    return normalized, media_data, value


def populated_field_count(media_data: Dict[str, Any]) -> int:
    """Count metadata fields that carry a value."""
    return sum(1 for value in media_data.values() if value not in (None, "", [], {}))


def should_update(
    existing_confidence: float,
    incoming_confidence: float,
    incoming_media_data: Dict[str, Any],
) -> bool:
    """Apply the merge policy to an incoming submission."""
    if incoming_confidence > existing_confidence + CONFIDENCE_MARGIN:
        return True
    return (
        abs(incoming_confidence - existing_confidence) < CONFIDENCE_MARGIN
        and populated_field_count(incoming_media_data) > RICH_FIELD_THRESHOLD
    )
