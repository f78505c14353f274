"""SQLite-backed fingerprint store.

Durable mapping of file hash -> best-known media metadata, shared by many
independent clients.
- lookup() returns the stored record and bumps query counters (best effort).
- submit() validates, applies the merge policy and writes an audit event, all
  inside one BEGIN IMMEDIATE transaction so concurrent submitters for the same
  hash serialize instead of overwriting each other.
- stats() aggregates counters for the /api/stats endpoint.

Storage failures surface as StorageError and are not retried here; retrying is
the caller's decision. Audit-log failures are logged and swallowed so they
never fail the primary submission.
"""

import contextlib
import json
import logging
import sqlite3
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from mediaprint.errors import NotFound, StorageError
from mediaprint.fingerprint.merge import (
    media_title_and_kind,
    normalize_hash,
    should_update,
    validate_submission,
)
from mediaprint.models.fingerprint import (
    ContributorBucket,
    FingerprintRecord,
    StoreStats,
    SubmissionEvent,
    SubmitAction,
    SubmitOutcome,
)

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(days=7)
CONTRIBUTOR_PREFIX_LENGTH = 20
TOP_CONTRIBUTORS = 5

SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS hash_matches (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        file_hash TEXT UNIQUE NOT NULL,
        media_data TEXT NOT NULL,
        confidence REAL NOT NULL,
        submission_count INTEGER NOT NULL DEFAULT 1,
        query_count INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        last_updated TEXT NOT NULL,
        last_queried TEXT,
        last_submitter_tag TEXT
    );
    CREATE TABLE IF NOT EXISTS submission_history (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        file_hash TEXT NOT NULL,
        media_title TEXT,
        media_kind TEXT,
        confidence REAL,
        action TEXT NOT NULL,
        submitter_tag TEXT,
        client_ip TEXT,
        submitted_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_hash_matches_file_hash ON hash_matches(file_hash);
    CREATE INDEX IF NOT EXISTS idx_hash_matches_confidence ON hash_matches(confidence DESC);
    CREATE INDEX IF NOT EXISTS idx_submission_history_hash ON submission_history(file_hash);
    CREATE INDEX IF NOT EXISTS idx_submission_history_date ON submission_history(submitted_at);
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _row_to_record(row: sqlite3.Row) -> FingerprintRecord:
    return FingerprintRecord(
        file_hash=row["file_hash"],
        media_data=json.loads(row["media_data"]),
        confidence=row["confidence"],
        submission_count=row["submission_count"],
        query_count=row["query_count"],
        created_at=row["created_at"],
        last_updated=row["last_updated"],
        last_queried=row["last_queried"],
        last_submitter_tag=row["last_submitter_tag"],
    )


class FingerprintStore:
    """Fingerprint store over a single SQLite database.

    One connection is shared by all threads; a lock serializes access to it
    and BEGIN IMMEDIATE guards the read-modify-write of submit() against other
    processes using the same database file.
    """

    def __init__(
        self,
        db_path: Union[str, Path] = ":memory:",
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Open (and create if needed) the database at db_path.

        Args:
            db_path: SQLite database file, or ":memory:" for a private store.
            clock: Returns the current time; injectable for tests.

        Raises:
            StorageError: If the database cannot be opened or initialized.
        """
        self.db_path = str(db_path)
        self._clock = clock or _utcnow
        self._lock = threading.Lock()
        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                self.db_path,
                timeout=30,
                isolation_level=None,
                check_same_thread=False,
            )
            self._conn.row_factory = sqlite3.Row
            if self.db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.executescript(SCHEMA_SQL)
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Cannot open fingerprint store {self.db_path}: {exc}") from exc
        logger.debug("Opened fingerprint store at %s", self.db_path)

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "FingerprintStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        self.close()

    def _now(self) -> str:
        return self._clock().isoformat()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def lookup(self, file_hash: str) -> FingerprintRecord:
        """Return the stored record for file_hash.

        On a hit the query counter and last-queried time are updated; failing
        to do so is logged and does not fail the lookup.

        Raises:
            ValidationError: If the hash is malformed.
            NotFound: If no record exists.
            StorageError: If the database cannot be read.
        """
        normalized = normalize_hash(file_hash)
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT * FROM hash_matches WHERE file_hash = ?",
                    (normalized,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Lookup failed for hash {normalized}: {exc}") from exc
        if row is None:
            raise NotFound(normalized)
        record = _row_to_record(row)
        self._touch(normalized)
        return record

    def _touch(self, file_hash: str) -> None:
        try:
            with self._lock:
                self._conn.execute(
                    "UPDATE hash_matches SET query_count = query_count + 1, "
                    "last_queried = ? WHERE file_hash = ?",
                    (self._now(), file_hash),
                )
        except sqlite3.Error as exc:
            logger.warning("Failed to update query counters for %s: %s", file_hash, exc)

    # ------------------------------------------------------------------
    # Submit
    # ------------------------------------------------------------------
    def submit(
        self,
        file_hash: str,
        media_data: Dict[str, Any],
        confidence: float,
        submitter_tag: str = "unknown",
        client_ip: str = "unknown",
    ) -> SubmitOutcome:
        """Submit a hash -> metadata mapping and merge it into the store.

        Args:
            file_hash: 32 hex characters, any case.
            media_data: Metadata with at least ``title`` and ``kind``.
            confidence: Submitter's confidence in [0.5, 1.0].
            submitter_tag: Anonymous client identifier (User-Agent).
            client_ip: Submitter address, kept in the audit trail only.

        Returns:
            The action taken and the record as committed.

        Raises:
            ValidationError: If any input is invalid; nothing is written.
            StorageError: If the transaction fails.
        """
        normalized, media_data, confidence = validate_submission(
            file_hash, media_data, confidence
        )
        payload = json.dumps(media_data, ensure_ascii=False)
        now = self._now()
        with self._lock:
            try:
                self._conn.execute("BEGIN IMMEDIATE")
                try:
                    action = self._merge(
                        normalized, media_data, payload, confidence, submitter_tag, now
                    )
                    self._record_submission(
                        normalized, media_data, confidence, action, submitter_tag, client_ip, now
                    )
                    row = self._conn.execute(
                        "SELECT * FROM hash_matches WHERE file_hash = ?", (normalized,)
                    ).fetchone()
                    self._conn.execute("COMMIT")
                except BaseException:
                    with contextlib.suppress(sqlite3.Error):
                        self._conn.execute("ROLLBACK")
                    raise
            except sqlite3.Error as exc:
                raise StorageError(f"Submit failed for hash {normalized}: {exc}") from exc
        logger.info("Submission for %s: %s (confidence %.2f)", normalized, action.value, confidence)
        return SubmitOutcome(action=action, record=_row_to_record(row))

    def _merge(
        self,
        file_hash: str,
        media_data: Dict[str, Any],
        payload: str,
        confidence: float,
        submitter_tag: str,
        now: str,
    ) -> SubmitAction:
        existing = self._conn.execute(
            "SELECT confidence FROM hash_matches WHERE file_hash = ?", (file_hash,)
        ).fetchone()
        if existing is None:
            self._conn.execute(
                "INSERT INTO hash_matches (file_hash, media_data, confidence, "
                "submission_count, query_count, created_at, last_updated, "
                "last_submitter_tag) VALUES (?, ?, ?, 1, 0, ?, ?, ?)",
                (file_hash, payload, confidence, now, now, submitter_tag),
            )
            return SubmitAction.CREATED
        if should_update(existing["confidence"], confidence, media_data):
            self._conn.execute(
                "UPDATE hash_matches SET media_data = ?, confidence = ?, "
                "submission_count = submission_count + 1, last_updated = ?, "
                "last_submitter_tag = ? WHERE file_hash = ?",
                (payload, confidence, now, submitter_tag, file_hash),
            )
            return SubmitAction.UPDATED
        self._conn.execute(
            "UPDATE hash_matches SET submission_count = submission_count + 1 "
            "WHERE file_hash = ?",
            (file_hash,),
        )
        return SubmitAction.ACKNOWLEDGED

    def _record_submission(
        self,
        file_hash: str,
        media_data: Dict[str, Any],
        confidence: float,
        action: SubmitAction,
        submitter_tag: str,
        client_ip: str,
        now: str,
    ) -> None:
        title, kind = media_title_and_kind(media_data)
        try:
            self._conn.execute(
                "INSERT INTO submission_history (file_hash, media_title, media_kind, "
                "confidence, action, submitter_tag, client_ip, submitted_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (file_hash, title, kind, confidence, action.value, submitter_tag, client_ip, now),
            )
        except sqlite3.Error as exc:
            logger.error("Failed to record submission history for %s: %s", file_hash, exc)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def history(self, file_hash: str) -> List[SubmissionEvent]:
        """Return the audit trail for a hash, oldest first."""
        normalized = normalize_hash(file_hash)
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT * FROM submission_history WHERE file_hash = ? ORDER BY id",
                    (normalized,),
                ).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"History query failed for hash {normalized}: {exc}") from exc
        return [
            SubmissionEvent(
                file_hash=row["file_hash"],
                title=row["media_title"],
                kind=row["media_kind"],
                confidence=row["confidence"],
                action=SubmitAction(row["action"]),
                submitter_tag=row["submitter_tag"] or "unknown",
                client_ip=row["client_ip"] or "unknown",
                submitted_at=row["submitted_at"],
            )
            for row in rows
        ]

    def stats(self) -> StoreStats:
        """Aggregate counters over the whole store."""
        cutoff = (self._clock() - RECENT_WINDOW).isoformat()
        try:
            with self._lock:
                totals = self._conn.execute(
                    "SELECT COUNT(*) AS total_hashes, AVG(confidence) AS avg_confidence, "
                    "SUM(submission_count) AS total_submissions, "
                    "SUM(query_count) AS total_queries FROM hash_matches"
                ).fetchone()
                recent = self._conn.execute(
                    "SELECT COUNT(*) FROM submission_history WHERE submitted_at >= ?",
                    (cutoff,),
                ).fetchone()[0]
                contributors = self._conn.execute(
                    "SELECT substr(COALESCE(last_submitter_tag, 'unknown'), 1, ?) AS prefix, "
                    "COUNT(*) AS contribution_count FROM hash_matches "
                    "GROUP BY prefix ORDER BY contribution_count DESC, prefix LIMIT ?",
                    (CONTRIBUTOR_PREFIX_LENGTH, TOP_CONTRIBUTORS),
                ).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Stats query failed: {exc}") from exc
        return StoreStats(
            total_hashes=totals["total_hashes"],
            average_confidence=round(totals["avg_confidence"] or 0.0, 2),
            total_submissions=totals["total_submissions"] or 0,
            total_queries=totals["total_queries"] or 0,
            recent_submissions=recent,
            top_contributors=[
                ContributorBucket(
                    submitter_prefix=row["prefix"],
                    contribution_count=row["contribution_count"],
                )
                for row in contributors
            ],
        )
