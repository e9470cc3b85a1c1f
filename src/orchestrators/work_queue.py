# src/orchestrators/work_queue.py
"""
Downstream work queue

Purpose
-------
After a submission completes, report assembly and KPI/sentiment ingestion run
as durable jobs (`jobs` in the store) so the caller of `run()` never waits on
them and a failure here never touches the submission's analysis outcome.

Design
------
- `enqueue_downstream(submission_id)` adds one `report` and one `kpi` job.
- `drain()` claims pending jobs one at a time and runs the handler for its kind.
- A failing job is re-queued until `max_attempts`, then marked `failed`.
  Failures are logged at WARNING and recorded on the job, never raised.
- The report job drives the submission's `report_status`
  (`queued → ready | failed`); re-running it overwrites the same file.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import date, datetime
from pathlib import Path

from src.analytics.kpi import build_daily_kpi, validate_daily_kpis
from src.analytics.sentiment import topic_facts_from_reviews
from src.market.intelligence import CompSource, market_insight_for, market_property_from
from src.reports.generator import write_report
from src.schemas.labels import ReportStatus, SubmissionStatus
from src.schemas.models import Job, JobKind, Submission, utcnow
from src.storage.base import SubmissionStore

logger = logging.getLogger(__name__)

JOB_KINDS: tuple[JobKind, ...] = ("report", "kpi")


class JobError(RuntimeError):
    """A downstream job could not complete (recorded on the job, not surfaced)."""


class WorkQueue:
    def __init__(
        self,
        store: SubmissionStore,
        *,
        reports_dir: str | Path = "reports",
        max_attempts: int = 3,
        comp_source: CompSource | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.reports_dir = Path(reports_dir)
        self.max_attempts = max_attempts
        self.comp_source = comp_source
        self._clock = clock

    # ---------- producer ----------
    def enqueue_downstream(self, submission_id: str) -> list[Job]:
        jobs = []
        for kind in JOB_KINDS:
            job = Job(id=uuid.uuid4().hex, submission_id=submission_id, kind=kind, created_at=self._clock())
            jobs.append(self.store.enqueue_job(job))
        logger.info("submission %s: queued %s", submission_id, ", ".join(JOB_KINDS))
        return jobs

    # ---------- consumer ----------
    def drain(self, limit: int | None = None) -> list[Job]:
        """Run pending jobs (re-queued ones included) until none remain or `limit` runs happened."""
        finished: list[Job] = []
        while limit is None or len(finished) < limit:
            job = self.store.claim_next_job()
            if job is None:
                break
            finished.append(self.run_job(job))
        return finished

    def run_job(self, job: Job) -> Job:
        attempts = job.attempts + 1
        try:
            self._handle(job)
        except Exception as exc:  # noqa: BLE001
            final = attempts >= self.max_attempts
            logger.warning(
                "job %s (%s, submission %s) failed on attempt %d/%d: %s",
                job.id, job.kind, job.submission_id, attempts, self.max_attempts, exc,
            )
            if final and job.kind == "report":
                self._mark_report(job.submission_id, ReportStatus.failed)
            return self.store.save_job(
                job.model_copy(
                    update={"status": "failed" if final else "pending", "attempts": attempts, "last_error": str(exc)}
                )
            )
        return self.store.save_job(job.model_copy(update={"status": "done", "attempts": attempts, "last_error": None}))

    def _handle(self, job: Job) -> None:
        submission = self.store.get_submission(job.submission_id)
        if submission is None:
            raise JobError(f"submission {job.submission_id} not found")
        if submission.status != SubmissionStatus.completed:
            raise JobError(f"submission {submission.id} is {submission.status.value}, not completed")
        if job.kind == "report":
            self._run_report(submission)
        elif job.kind == "kpi":
            self._run_kpi(submission)
        else:
            raise JobError(f"unknown job kind {job.kind!r}")

    # ---------- handlers ----------
    def _run_report(self, submission: Submission) -> None:
        market = None
        if self.comp_source is not None and submission.property_data is not None:
            prop = market_property_from(submission.property_data, id=submission.id)
            market = market_insight_for(prop, self.comp_source, now=self._clock())
        path = write_report(self.reports_dir / f"{submission.id}.md", submission, market=market)
        # Fresh row; only the report fields change here.
        current = self.store.get_submission(submission.id) or submission
        self.store.save_submission(
            current.model_copy(update={"report_status": ReportStatus.ready, "report_path": str(path)})
        )
        logger.info("submission %s: report written to %s", submission.id, path)

    def _run_kpi(self, submission: Submission) -> None:
        day: date = self._clock().date()
        row = build_daily_kpi(submission, day)
        if row is None:
            raise JobError(f"submission {submission.id} has no property data for KPI ingestion")
        problems = validate_daily_kpis([row])
        if problems:
            raise JobError("; ".join(problems))
        inserted = self.store.append_daily_kpi(row)

        reviews = submission.property_data.reviews if submission.property_data else []
        facts = topic_facts_from_reviews(submission.id, day, reviews, platform=submission.platform.value)
        topics = self.store.append_sentiment_topics(facts) if facts else 0
        logger.info(
            "submission %s: KPI row %s, %d sentiment topic rows",
            submission.id, "stored" if inserted else "already present", topics,
        )

    def _mark_report(self, submission_id: str, status: ReportStatus) -> None:
        submission = self.store.get_submission(submission_id)
        if submission is None:
            return
        self.store.save_submission(submission.model_copy(update={"report_status": status}))


__all__ = ["JOB_KINDS", "JobError", "WorkQueue"]
