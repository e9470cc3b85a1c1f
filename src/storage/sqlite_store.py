# src/storage/sqlite_store.py
"""
SQLite SubmissionStore.

Tables
------
submissions        id, status, claim_owner, claim_expires_at (epoch s), created_at, data (JSON row)
daily_kpis         UNIQUE(property_id, date), data
sentiment_topics   UNIQUE(property_id, date, platform, topic), data
jobs               id, submission_id, status, created_at, data

One connection per store, guarded by a lock; `:memory:` works for tests.
sqlite3 errors surface as PersistenceError.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path

from src.core.errors import PersistenceError
from src.schemas.labels import SubmissionStatus
from src.schemas.models import DailyKPI, Job, SentimentTopicFact, Submission, utcnow

from .base import SubmissionStore

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS submissions (
        id TEXT PRIMARY KEY,
        status TEXT NOT NULL,
        claim_owner TEXT,
        claim_expires_at REAL,
        created_at TEXT NOT NULL,
        data TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_submissions_status ON submissions(status, created_at)",
    """
    CREATE TABLE IF NOT EXISTS daily_kpis (
        property_id TEXT NOT NULL,
        date TEXT NOT NULL,
        data TEXT NOT NULL,
        UNIQUE(property_id, date)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sentiment_topics (
        property_id TEXT NOT NULL,
        date TEXT NOT NULL,
        platform TEXT NOT NULL,
        topic TEXT NOT NULL,
        data TEXT NOT NULL,
        UNIQUE(property_id, date, platform, topic)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS jobs (
        id TEXT PRIMARY KEY,
        submission_id TEXT NOT NULL,
        status TEXT NOT NULL,
        created_at TEXT NOT NULL,
        data TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_jobs_status ON jobs(status, created_at)",
)


def _ts(value: datetime | None) -> float | None:
    return value.timestamp() if value is not None else None


class SqliteStore(SubmissionStore):
    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self._path = str(db_path)
        if self._path != ":memory:":
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(self._path, check_same_thread=False)
            with self._conn:
                for stmt in _SCHEMA:
                    self._conn.execute(stmt)
        except sqlite3.Error as exc:
            raise PersistenceError(f"cannot open database {self._path}: {exc}") from exc
        logger.info("Database ensured at %s", self._path)

    @contextmanager
    def _tx(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                with self._conn:
                    yield self._conn
            except sqlite3.Error as exc:
                raise PersistenceError(f"sqlite error: {exc}") from exc

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ---------- submissions ----------
    def create_submission(self, submission: Submission) -> Submission:
        try:
            with self._tx() as conn:
                conn.execute(
                    "INSERT INTO submissions (id, status, claim_owner, claim_expires_at, created_at, data)"
                    " VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        submission.id,
                        submission.status.value,
                        submission.claim_owner,
                        _ts(submission.claim_expires_at),
                        submission.created_at.isoformat(),
                        submission.model_dump_json(),
                    ),
                )
        except PersistenceError as exc:
            raise PersistenceError(f"cannot create submission {submission.id}: {exc}") from exc
        return submission

    def _load(self, conn: sqlite3.Connection, submission_id: str) -> Submission | None:
        row = conn.execute("SELECT data FROM submissions WHERE id = ?", (submission_id,)).fetchone()
        return Submission.model_validate_json(row[0]) if row else None

    def get_submission(self, submission_id: str) -> Submission | None:
        with self._tx() as conn:
            return self._load(conn, submission_id)

    def save_submission(self, submission: Submission) -> Submission:
        stored = submission.model_copy(update={"updated_at": utcnow()})
        with self._tx() as conn:
            cur = conn.execute(
                "UPDATE submissions SET status = ?, claim_owner = ?, claim_expires_at = ?, data = ? WHERE id = ?",
                (
                    stored.status.value,
                    stored.claim_owner,
                    _ts(stored.claim_expires_at),
                    stored.model_dump_json(),
                    stored.id,
                ),
            )
            if cur.rowcount != 1:
                raise PersistenceError(f"submission {stored.id} not found")
        return stored

    def list_submissions(
        self,
        statuses: Sequence[SubmissionStatus] | None = None,
        limit: int | None = None,
    ) -> list[Submission]:
        sql = "SELECT data FROM submissions"
        params: list[object] = []
        if statuses is not None:
            if not statuses:
                return []
            sql += f" WHERE status IN ({', '.join('?' for _ in statuses)})"
            params.extend(s.value for s in statuses)
        sql += " ORDER BY created_at"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        with self._tx() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [Submission.model_validate_json(r[0]) for r in rows]

    def try_claim(self, submission_id: str, owner: str, expires_at: datetime, now: datetime) -> bool:
        with self._tx() as conn:
            cur = conn.execute(
                "UPDATE submissions SET claim_owner = ?, claim_expires_at = ?"
                " WHERE id = ? AND (claim_owner IS NULL OR claim_owner = ? OR claim_expires_at <= ?)",
                (owner, expires_at.timestamp(), submission_id, owner, now.timestamp()),
            )
            if cur.rowcount != 1:
                if self._load(conn, submission_id) is None:
                    raise PersistenceError(f"submission {submission_id} not found")
                return False
            sub = self._load(conn, submission_id)
            if sub is None:
                raise PersistenceError(f"submission {submission_id} vanished while being claimed")
            claimed = sub.model_copy(update={"claim_owner": owner, "claim_expires_at": expires_at})
            conn.execute("UPDATE submissions SET data = ? WHERE id = ?", (claimed.model_dump_json(), submission_id))
        return True

    def release_claim(self, submission_id: str, owner: str) -> None:
        with self._tx() as conn:
            sub = self._load(conn, submission_id)
            if sub is None or sub.claim_owner != owner:
                return
            released = sub.model_copy(update={"claim_owner": None, "claim_expires_at": None})
            conn.execute(
                "UPDATE submissions SET claim_owner = NULL, claim_expires_at = NULL, data = ? WHERE id = ?",
                (released.model_dump_json(), submission_id),
            )

    # ---------- facts ----------
    def append_daily_kpi(self, row: DailyKPI) -> bool:
        with self._tx() as conn:
            cur = conn.execute(
                "INSERT OR IGNORE INTO daily_kpis (property_id, date, data) VALUES (?, ?, ?)",
                (row.property_id, row.date.isoformat(), row.model_dump_json()),
            )
            return cur.rowcount == 1

    def list_daily_kpis(self, property_id: str, start: date, end: date) -> list[DailyKPI]:
        with self._tx() as conn:
            rows = conn.execute(
                "SELECT data FROM daily_kpis WHERE property_id = ? AND date BETWEEN ? AND ? ORDER BY date",
                (property_id, start.isoformat(), end.isoformat()),
            ).fetchall()
        return [DailyKPI.model_validate_json(r[0]) for r in rows]

    def append_sentiment_topics(self, rows: Sequence[SentimentTopicFact]) -> int:
        inserted = 0
        with self._tx() as conn:
            for r in rows:
                cur = conn.execute(
                    "INSERT OR IGNORE INTO sentiment_topics (property_id, date, platform, topic, data)"
                    " VALUES (?, ?, ?, ?, ?)",
                    (r.property_id, r.date.isoformat(), r.platform, r.topic, r.model_dump_json()),
                )
                inserted += cur.rowcount
        return inserted

    def list_sentiment_topics(self, property_id: str, start: date, end: date) -> list[SentimentTopicFact]:
        with self._tx() as conn:
            rows = conn.execute(
                "SELECT data FROM sentiment_topics WHERE property_id = ? AND date BETWEEN ? AND ?"
                " ORDER BY date, topic",
                (property_id, start.isoformat(), end.isoformat()),
            ).fetchall()
        return [SentimentTopicFact.model_validate_json(r[0]) for r in rows]

    # ---------- jobs ----------
    def enqueue_job(self, job: Job) -> Job:
        with self._tx() as conn:
            conn.execute(
                "INSERT INTO jobs (id, submission_id, status, created_at, data) VALUES (?, ?, ?, ?, ?)",
                (job.id, job.submission_id, job.status, job.created_at.isoformat(), job.model_dump_json()),
            )
        return job

    def claim_next_job(self) -> Job | None:
        with self._tx() as conn:
            row = conn.execute(
                "SELECT data FROM jobs WHERE status = 'pending' ORDER BY created_at, rowid LIMIT 1"
            ).fetchone()
            if row is None:
                return None
            job = Job.model_validate_json(row[0])
            running = job.model_copy(update={"status": "running", "updated_at": utcnow()})
            cur = conn.execute(
                "UPDATE jobs SET status = 'running', data = ? WHERE id = ? AND status = 'pending'",
                (running.model_dump_json(), job.id),
            )
            return running if cur.rowcount == 1 else None

    def save_job(self, job: Job) -> Job:
        stored = job.model_copy(update={"updated_at": utcnow()})
        with self._tx() as conn:
            conn.execute(
                "UPDATE jobs SET status = ?, data = ? WHERE id = ?",
                (stored.status, stored.model_dump_json(), stored.id),
            )
        return stored

    def list_jobs(self, submission_id: str | None = None) -> list[Job]:
        sql = "SELECT data FROM jobs"
        params: tuple[object, ...] = ()
        if submission_id is not None:
            sql += " WHERE submission_id = ?"
            params = (submission_id,)
        with self._tx() as conn:
            rows = conn.execute(sql + " ORDER BY created_at, rowid", params).fetchall()
        return [Job.model_validate_json(r[0]) for r in rows]


__all__ = ["SqliteStore"]
