"""Fingerprint hashing for media files.

Two hashes are used:
- content_hash: MD5 of the first 1 MiB of the file, for files readable locally.
- identity_hash: MD5 of "<path>:<size>", for files behind an enumerator that
  cannot stream content (network shares listed by an external tool).

Both produce 32 lowercase hex characters, the key format of the fingerprint
store. Hashers are synchronous; the orchestrator runs them in worker threads.
"""

import hashlib
from pathlib import Path
from typing import Callable, Union

from mediaprint.models.core import ScanCandidate

CONTENT_HASH_BYTES = 1024 * 1024

Hasher = Callable[[ScanCandidate], str]


def content_hash(path: Union[str, Path], limit: int = CONTENT_HASH_BYTES) -> str:
    """Compute the MD5 of the first ``limit`` bytes of a file.

    Raises:
        FileNotFoundError: If the file does not exist
        PermissionError: If the file cannot be read
        ValueError: If the path is not a file
    """
    if isinstance(path, str):
        path = Path(path)

    if not path.is_file():
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        raise ValueError(f"Path is not a file: {path}")

    hasher = hashlib.md5()
    with open(path, "rb") as f:
        hasher.update(f.read(limit))
    return hasher.hexdigest()


def identity_hash(candidate: ScanCandidate) -> str:
    """Hash a candidate by its path and size."""
    return hashlib.md5(f"{candidate.path}:{candidate.size_bytes}".encode("utf-8")).hexdigest()


def candidate_content_hash(candidate: ScanCandidate) -> str:
    """Hasher reading the candidate's content from the local filesystem."""
    return content_hash(candidate.path)
