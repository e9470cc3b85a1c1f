# src/storage/memory.py
"""In-process SubmissionStore used by tests and single-process runs."""

from __future__ import annotations

import threading
from collections.abc import Sequence
from datetime import date, datetime

from src.core.errors import PersistenceError
from src.schemas.labels import SubmissionStatus
from src.schemas.models import DailyKPI, Job, SentimentTopicFact, Submission, utcnow

from .base import SubmissionStore


class InMemoryStore(SubmissionStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._submissions: dict[str, Submission] = {}
        self._kpis: dict[tuple[str, date], DailyKPI] = {}
        self._topics: dict[tuple[str, date, str, str], SentimentTopicFact] = {}
        self._jobs: dict[str, Job] = {}

    # ---------- submissions ----------
    def create_submission(self, submission: Submission) -> Submission:
        with self._lock:
            if submission.id in self._submissions:
                raise PersistenceError(f"submission {submission.id} already exists")
            self._submissions[submission.id] = submission.model_copy(deep=True)
        return submission

    def get_submission(self, submission_id: str) -> Submission | None:
        with self._lock:
            sub = self._submissions.get(submission_id)
            return sub.model_copy(deep=True) if sub else None

    def save_submission(self, submission: Submission) -> Submission:
        stored = submission.model_copy(update={"updated_at": utcnow()}, deep=True)
        with self._lock:
            if submission.id not in self._submissions:
                raise PersistenceError(f"submission {submission.id} not found")
            self._submissions[submission.id] = stored
        return stored.model_copy(deep=True)

    def list_submissions(
        self,
        statuses: Sequence[SubmissionStatus] | None = None,
        limit: int | None = None,
    ) -> list[Submission]:
        with self._lock:
            subs = sorted(self._submissions.values(), key=lambda s: s.created_at)
        if statuses is not None:
            wanted = set(statuses)
            subs = [s for s in subs if s.status in wanted]
        if limit is not None:
            subs = subs[:limit]
        return [s.model_copy(deep=True) for s in subs]

    def try_claim(self, submission_id: str, owner: str, expires_at: datetime, now: datetime) -> bool:
        with self._lock:
            sub = self._submissions.get(submission_id)
            if sub is None:
                raise PersistenceError(f"submission {submission_id} not found")
            held = sub.claim_owner is not None and sub.claim_owner != owner
            if held and (sub.claim_expires_at is None or sub.claim_expires_at > now):
                return False
            self._submissions[submission_id] = sub.model_copy(
                update={"claim_owner": owner, "claim_expires_at": expires_at}
            )
            return True

    def release_claim(self, submission_id: str, owner: str) -> None:
        with self._lock:
            sub = self._submissions.get(submission_id)
            if sub is not None and sub.claim_owner == owner:
                self._submissions[submission_id] = sub.model_copy(
                    update={"claim_owner": None, "claim_expires_at": None}
                )

    # ---------- facts ----------
    def append_daily_kpi(self, row: DailyKPI) -> bool:
        key = (row.property_id, row.date)
        with self._lock:
            if key in self._kpis:
                return False
            self._kpis[key] = row
            return True

    def list_daily_kpis(self, property_id: str, start: date, end: date) -> list[DailyKPI]:
        with self._lock:
            rows = [r for (pid, d), r in self._kpis.items() if pid == property_id and start <= d <= end]
        return sorted(rows, key=lambda r: r.date)

    def append_sentiment_topics(self, rows: Sequence[SentimentTopicFact]) -> int:
        inserted = 0
        with self._lock:
            for r in rows:
                key = (r.property_id, r.date, r.platform, r.topic)
                if key not in self._topics:
                    self._topics[key] = r
                    inserted += 1
        return inserted

    def list_sentiment_topics(self, property_id: str, start: date, end: date) -> list[SentimentTopicFact]:
        with self._lock:
            rows = [r for r in self._topics.values() if r.property_id == property_id and start <= r.date <= end]
        return sorted(rows, key=lambda r: (r.date, r.topic))

    # ---------- jobs ----------
    def enqueue_job(self, job: Job) -> Job:
        with self._lock:
            self._jobs[job.id] = job.model_copy()
        return job

    def claim_next_job(self) -> Job | None:
        with self._lock:
            pending = sorted((j for j in self._jobs.values() if j.status == "pending"), key=lambda j: j.created_at)
            if not pending:
                return None
            job = pending[0].model_copy(update={"status": "running", "updated_at": utcnow()})
            self._jobs[job.id] = job
            return job.model_copy()

    def save_job(self, job: Job) -> Job:
        stored = job.model_copy(update={"updated_at": utcnow()})
        with self._lock:
            self._jobs[job.id] = stored
        return stored.model_copy()

    def list_jobs(self, submission_id: str | None = None) -> list[Job]:
        with self._lock:
            jobs = sorted(self._jobs.values(), key=lambda j: j.created_at)
        return [j.model_copy() for j in jobs if submission_id is None or j.submission_id == submission_id]


__all__ = ["InMemoryStore"]
