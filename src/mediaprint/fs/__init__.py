"""Filesystem collaborators: directory enumeration and fingerprint hashing."""

from mediaprint.fs.enumerator import (
    CommandDirectoryEnumerator,
    DirectoryEntry,
    DirectoryEnumerator,
    LocalDirectoryEnumerator,
)
from mediaprint.fs.hashing import candidate_content_hash, content_hash, identity_hash

__all__ = [
    "CommandDirectoryEnumerator",
    "DirectoryEntry",
    "DirectoryEnumerator",
    "LocalDirectoryEnumerator",
    "candidate_content_hash",
    "content_hash",
    "identity_hash",
]
