# src/storage/base.py
"""
Persistent store contract

Purpose
-------
Row-level create/read/update for submissions, append-only fact rows (daily
KPIs, sentiment topics) and the downstream job queue. No multi-row
transactions are assumed.

Design
------
- Submissions are written whole (last write wins); `try_claim` is the only
  conditional write and is atomic per row.
- Implementations raise `PersistenceError` for storage failures.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime
from typing import Protocol

from src.schemas.labels import SubmissionStatus
from src.schemas.models import DailyKPI, Job, SentimentTopicFact, Submission


class SubmissionStore(Protocol):
    # ---------- submissions ----------
    def create_submission(self, submission: Submission) -> Submission: ...

    def get_submission(self, submission_id: str) -> Submission | None: ...

    def save_submission(self, submission: Submission) -> Submission: ...

    def list_submissions(
        self,
        statuses: Sequence[SubmissionStatus] | None = None,
        limit: int | None = None,
    ) -> list[Submission]: ...

    def try_claim(self, submission_id: str, owner: str, expires_at: datetime, now: datetime) -> bool:
        """Set the claim when unclaimed, expired, or already held by `owner`. True on success."""
        ...

    def release_claim(self, submission_id: str, owner: str) -> None: ...

    # ---------- facts ----------
    def append_daily_kpi(self, row: DailyKPI) -> bool:
        """Insert unless a row for (property_id, date) exists. True when inserted."""
        ...

    def list_daily_kpis(self, property_id: str, start: date, end: date) -> list[DailyKPI]: ...

    def append_sentiment_topics(self, rows: Sequence[SentimentTopicFact]) -> int:
        """Insert rows not yet stored for (property_id, date, platform, topic). Returns the insert count."""
        ...

    def list_sentiment_topics(self, property_id: str, start: date, end: date) -> list[SentimentTopicFact]: ...

    # ---------- jobs ----------
    def enqueue_job(self, job: Job) -> Job: ...

    def claim_next_job(self) -> Job | None:
        """Atomically move the oldest pending job to running and return it."""
        ...

    def save_job(self, job: Job) -> Job: ...

    def list_jobs(self, submission_id: str | None = None) -> list[Job]: ...


__all__ = ["SubmissionStore"]
