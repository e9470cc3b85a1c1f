# src/orchestrators/pipeline.py
"""
Diagnostic pipeline orchestrator

Purpose
-------
Drive one submission through the staged state machine:

    pending → processing → (scraping_retry)* → analyzing → completed
                         ↘ pending_manual_review ↔ manual_review_requested

Stages
------
1) Degraded-URL check (shortened/share links) → manual review, no retrieval.
2) Retrieval with a fixed attempt cap and fixed delay (tenacity); each failed
   attempt is persisted (`retry_count`, last error) before the next one.
3) Adapt + normalize the payload, then the data-quality gate (never retried).
4) Analysis (one call, parsed as JSON), deterministic Health Score, `completed`.
5) Report and KPI/sentiment jobs are queued; the caller never waits on them.

Design
------
- Every public method returns a PipelineResponse; failures land on the row as
  message + ReasonCode. Only `create_submission` raises (bad input, storage).
- A lease claim (owner id + expiry) is taken before `processing` and renewed
  before `analyzing`; a lost claim stops the run without touching the row.
- Transitions are checked against ALLOWED_TRANSITIONS and logged at INFO.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import urlparse

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from src.core.errors import (
    ClaimConflictError,
    DataQualityError,
    InputRejectedError,
    InvalidTransitionError,
    PersistenceError,
    PipelineError,
    TransientProviderError,
)
from src.core.normalize import normalize_payload, summarize_data_quality, validate_scraped_data
from src.core.scoring import score_property
from src.core.telemetry import TelemetryEmitter
from src.inputs.settings import PipelineSettings
from src.market.intelligence import CompSource, market_insight_for, market_property_from
from src.orchestrators.work_queue import WorkQueue
from src.schemas.labels import (
    ALLOWED_TRANSITIONS,
    MANUAL_REVIEW_STATUSES,
    Platform,
    ReasonCode,
    ReportStatus,
    SubmissionStatus,
    is_degraded_url,
)
from src.schemas.models import (
    DataQuality,
    MarketInsight,
    PipelineResponse,
    ProcessedPropertyData,
    Submission,
    SubmissionRequest,
    utcnow,
)
from src.storage.base import SubmissionStore
from src.tools.analysis import AnalysisProvider, build_analysis_prompt, run_analysis
from src.tools.scraping import ScrapingProvider, fetch_listing

logger = logging.getLogger(__name__)

MANUAL_REVIEW_MESSAGE = "We need to process your submission manually. Our team will review it soon."
COMPLETED_MESSAGE = "Analysis completed successfully."
NOT_FOUND_MESSAGE = "Submission not found."
IN_PROGRESS_MESSAGE = "Submission is already being processed."

DEGRADED_URL_MESSAGES: Mapping[Platform, str] = {
    Platform.booking: "Share URLs from Booking.com are not supported. Please use the complete property URL.",
    Platform.airbnb: "Short links from Airbnb are not supported. Please use the complete property URL.",
}

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

RUNNABLE_STATUSES = frozenset({SubmissionStatus.pending, SubmissionStatus.manual_review_requested})
REPROCESSABLE_STATUSES = (
    SubmissionStatus.pending_manual_review,
    SubmissionStatus.manual_review_requested,
    SubmissionStatus.failed,
)


def _check_quality(data: ProcessedPropertyData) -> None:
    if not validate_scraped_data(data):
        raise DataQualityError("Insufficient data quality: scraped data is missing essential information.")


class DiagnosticPipeline:
    def __init__(
        self,
        store: SubmissionStore,
        scraper: ScrapingProvider,
        analyzer: AnalysisProvider,
        settings: PipelineSettings,
        *,
        telemetry: TelemetryEmitter | None = None,
        comp_source: CompSource | None = None,
        work_queue: WorkQueue | None = None,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.scraper = scraper
        self.analyzer = analyzer
        self.settings = settings
        self.telemetry = telemetry or TelemetryEmitter(settings.telemetry_consent)
        self.comp_source = comp_source
        self.work_queue = work_queue or WorkQueue(
            store,
            reports_dir=settings.reports_dir,
            max_attempts=settings.job_max_attempts,
            comp_source=comp_source,
            clock=clock,
        )
        self._clock = clock
        self._sleep = sleep

    # =========================
    # Creation
    # =========================

    def create_submission(self, request: SubmissionRequest | Mapping[str, Any]) -> Submission:
        """
        Validate and persist a new submission.

        Raises InputRejectedError for malformed input and PersistenceError when
        the row cannot be stored. Known shortened links are stored directly in
        `pending_manual_review` with reason `incompatible_url`.
        """
        if not isinstance(request, SubmissionRequest):
            try:
                request = SubmissionRequest.model_validate(request)
            except ValueError as exc:
                raise InputRejectedError(f"invalid submission request: {exc}") from exc

        if not request.name:
            raise InputRejectedError("name is required")
        if not EMAIL_RE.match(request.email):
            raise InputRejectedError(f"invalid email address: {request.email!r}")
        platform = Platform.parse(request.platform)
        if platform is None:
            raise InputRejectedError(f"unsupported platform: {request.platform!r}")
        parsed = urlparse(request.property_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InputRejectedError(f"invalid property URL: {request.property_url!r}")

        now = self._clock()
        submission = Submission(
            id=uuid.uuid4().hex,
            name=request.name,
            email=request.email,
            property_url=request.property_url,
            platform=platform,
            created_at=now,
            updated_at=now,
        )
        if is_degraded_url(platform, submission.property_url):
            submission = submission.model_copy(
                update={
                    "status": SubmissionStatus.pending_manual_review,
                    "error_reason": ReasonCode.incompatible_url,
                    "error_message": DEGRADED_URL_MESSAGES.get(platform, MANUAL_REVIEW_MESSAGE),
                }
            )

        stored = self.store.create_submission(submission)
        logger.info("submission %s created (%s, %s)", stored.id, platform.value, stored.status.value)
        self.telemetry.emit("submission_created", submission_id=stored.id, platform=platform.value)
        return stored

    # =========================
    # Run
    # =========================

    def run(self, submission_id: str) -> PipelineResponse:
        """Process one submission end to end. Never raises."""
        started = time.monotonic()
        owner = uuid.uuid4().hex
        claimed = False
        try:
            sub = self.store.get_submission(submission_id)
            if sub is None:
                return PipelineResponse(success=False, submission_id=submission_id, message=NOT_FOUND_MESSAGE)
            if sub.status not in RUNNABLE_STATUSES:
                return self._describe(sub)

            sub = self._claim(submission_id, owner)
            claimed = True
            # status may have moved between the read and the claim
            if sub.status not in RUNNABLE_STATUSES:
                response = self._describe(sub)
            else:
                response = self._run_claimed(sub, owner)
        except ClaimConflictError as exc:
            logger.info("submission %s: %s", submission_id, exc)
            response = self._describe_id(submission_id, message=IN_PROGRESS_MESSAGE)
        except Exception as exc:  # noqa: BLE001
            logger.exception("submission %s: unexpected error", submission_id)
            response = self._fail_unexpected(submission_id, exc)
        finally:
            if claimed:
                self._release(submission_id, owner)

        response = response.model_copy(update={"processing_time_s": round(time.monotonic() - started, 3)})
        self.telemetry.emit(
            "pipeline_finished",
            submission_id=submission_id,
            status=response.status.value if response.status else None,
            reason=response.error_reason.value if response.error_reason else None,
            processing_time_s=response.processing_time_s,
        )
        return response

    def _run_claimed(self, sub: Submission, owner: str) -> PipelineResponse:
        # 1) Shortened/share links never reach the provider
        if is_degraded_url(sub.platform, sub.property_url):
            sub = self._to_manual_review(
                sub,
                ReasonCode.incompatible_url,
                DEGRADED_URL_MESSAGES.get(sub.platform, MANUAL_REVIEW_MESSAGE),
            )
            return self._manual_review_response(sub)

        sub = self._transition(sub, SubmissionStatus.processing)

        # 2) Retrieval
        try:
            payload, sub = self._scrape(sub)
        except TransientProviderError as exc:
            sub = self._current(sub)
            sub = self._to_manual_review(sub, ReasonCode.provider_failure, f"Scraping failed: {exc.message}")
            return self._manual_review_response(sub)

        # 3) Normalization + quality gate
        data = normalize_payload(sub.platform.value, payload)
        quality = summarize_data_quality(data)
        sub = self._save(sub.model_copy(update={"raw_payload": payload, "property_data": data}))
        try:
            _check_quality(data)
        except DataQualityError as exc:
            sub = self._to_manual_review(sub, exc.reason, exc.message)
            return self._manual_review_response(sub, data_quality=quality)

        # 4) Analysis
        sub = self._claim(sub.id, owner)
        sub = self._transition(sub, SubmissionStatus.analyzing)
        market = self._market_insight(sub)
        market_rate = None if market is None or market.is_default else market.average_daily_rate
        health = score_property(data, market_rate=market_rate)
        try:
            analysis = run_analysis(self.analyzer, build_analysis_prompt(data, health, market))
        except PipelineError as exc:
            logger.warning("submission %s: analysis failed: %s", sub.id, exc.message)
            sub = self._to_manual_review(sub, ReasonCode.analysis_failure, f"Analysis failed: {exc.message}")
            return self._manual_review_response(sub, data_quality=quality)

        sub = self._transition(
            sub,
            SubmissionStatus.completed,
            analysis_result=analysis,
            health_score=health,
            error_message=None,
            error_reason=None,
            report_status=ReportStatus.queued,
        )

        # 5) Downstream hand-off
        try:
            self.work_queue.enqueue_downstream(sub.id)
        except PersistenceError as exc:
            logger.warning("submission %s: could not queue downstream jobs: %s", sub.id, exc)

        return PipelineResponse(
            submission_id=sub.id,
            status=sub.status,
            message=COMPLETED_MESSAGE,
            data_quality=quality,
            analysis_result=analysis,
            health_score=health,
        )

    def _scrape(self, sub: Submission) -> tuple[dict[str, Any], Submission]:
        """Retrieve the listing; raises TransientProviderError once attempts are exhausted."""
        retrying = Retrying(
            stop=stop_after_attempt(self.settings.max_scrape_attempts),
            wait=wait_fixed(self.settings.retry_delay_s),
            retry=retry_if_exception_type(TransientProviderError),
            sleep=self._sleep,
            reraise=True,
        )
        current = sub
        for attempt in retrying:
            with attempt:
                try:
                    payload = fetch_listing(self.scraper, current.property_url, current.platform)
                except TransientProviderError as exc:
                    number = attempt.retry_state.attempt_number
                    logger.warning(
                        "submission %s: scrape attempt %d/%d failed: %s",
                        current.id, number, self.settings.max_scrape_attempts, exc.message,
                    )
                    current = self._transition(
                        current,
                        SubmissionStatus.scraping_retry,
                        retry_count=number,
                        error_message=exc.message,
                        error_reason=exc.reason,
                    )
                    raise
        return payload, current

    def _market_insight(self, sub: Submission) -> MarketInsight | None:
        if self.comp_source is None or sub.property_data is None:
            return None
        prop = market_property_from(sub.property_data, id=sub.id)
        return market_insight_for(prop, self.comp_source, now=self._clock())

    # =========================
    # Status & manual review
    # =========================

    def check_status(self, submission_id: str) -> PipelineResponse:
        try:
            return self._describe_id(submission_id)
        except PipelineError as exc:
            logger.warning("submission %s: status lookup failed: %s", submission_id, exc)
            return PipelineResponse(
                success=False, submission_id=submission_id, message=exc.message, error_reason=exc.reason
            )

    def request_manual_review(self, submission_id: str) -> PipelineResponse:
        """Promote `pending_manual_review` to `manual_review_requested`."""
        try:
            sub = self.store.get_submission(submission_id)
            if sub is None:
                return PipelineResponse(success=False, submission_id=submission_id, message=NOT_FOUND_MESSAGE)
            sub = self._transition(sub, SubmissionStatus.manual_review_requested)
        except PipelineError as exc:
            logger.warning("submission %s: manual review request rejected: %s", submission_id, exc)
            return self._describe_id(submission_id, success=False, message=exc.message)
        return self._manual_review_response(sub, message="Manual review requested.")

    def reprocess(self, submission_id: str) -> PipelineResponse:
        """Reset retry/error state to `pending` and run again."""
        owner = uuid.uuid4().hex
        try:
            sub = self.store.get_submission(submission_id)
            if sub is None:
                return PipelineResponse(success=False, submission_id=submission_id, message=NOT_FOUND_MESSAGE)
            sub = self._claim(submission_id, owner)
            try:
                if sub.status != SubmissionStatus.pending and sub.status not in REPROCESSABLE_STATUSES:
                    raise InvalidTransitionError(
                        f"submission {submission_id}: {sub.status.value} cannot be reprocessed"
                    )
                reset = {"retry_count": 0, "error_message": None, "error_reason": None}
                if sub.status == SubmissionStatus.pending:
                    self._save(sub.model_copy(update=reset))
                else:
                    self._transition(sub, SubmissionStatus.pending, **reset)
            finally:
                self._release(submission_id, owner)
        except ClaimConflictError:
            return self._describe_id(submission_id, message=IN_PROGRESS_MESSAGE)
        except PipelineError as exc:
            logger.warning("submission %s: reprocess rejected: %s", submission_id, exc)
            return self._describe_id(submission_id, success=False, message=exc.message)
        return self.run(submission_id)

    def reprocess_all_pending(self, limit: int = 10) -> list[PipelineResponse]:
        """Batch `reprocess` over stuck submissions (manual review and failed), oldest first."""
        stuck = self.store.list_submissions(REPROCESSABLE_STATUSES, limit=limit)
        logger.info("reprocessing %d stuck submissions", len(stuck))
        return [self.reprocess(s.id) for s in stuck]

    # =========================
    # Helpers
    # =========================

    def _claim(self, submission_id: str, owner: str) -> Submission:
        now = self._clock()
        expires = now + timedelta(seconds=self.settings.claim_ttl_s)
        if not self.store.try_claim(submission_id, owner, expires, now):
            raise ClaimConflictError(f"submission {submission_id} is claimed by another worker")
        sub = self.store.get_submission(submission_id)
        if sub is None:
            raise PersistenceError(f"submission {submission_id} not found")
        return sub

    def _release(self, submission_id: str, owner: str) -> None:
        try:
            self.store.release_claim(submission_id, owner)
        except PersistenceError as exc:
            logger.warning("submission %s: could not release claim: %s", submission_id, exc)

    def _current(self, sub: Submission) -> Submission:
        return self.store.get_submission(sub.id) or sub

    def _save(self, sub: Submission) -> Submission:
        return self.store.save_submission(sub)

    def _transition(self, sub: Submission, status: SubmissionStatus, **updates: Any) -> Submission:
        if status not in ALLOWED_TRANSITIONS.get(sub.status, frozenset()):
            raise InvalidTransitionError(
                f"submission {sub.id}: {sub.status.value} -> {status.value} is not allowed"
            )
        stored = self._save(sub.model_copy(update={"status": status, **updates}))
        logger.info("submission %s: %s -> %s", sub.id, sub.status.value, status.value)
        self.telemetry.emit("status_changed", submission_id=sub.id, from_status=sub.status.value, to_status=status.value)
        return stored

    def _to_manual_review(self, sub: Submission, reason: ReasonCode, message: str) -> Submission:
        return self._transition(
            sub,
            SubmissionStatus.pending_manual_review,
            error_reason=reason,
            error_message=message,
        )

    def _fail_unexpected(self, submission_id: str, exc: Exception) -> PipelineResponse:
        reason = exc.reason if isinstance(exc, PipelineError) else ReasonCode.unexpected_error
        message = exc.message if isinstance(exc, PipelineError) else f"Unexpected error: {exc}"
        try:
            sub = self.store.get_submission(submission_id)
            if sub is None:
                return PipelineResponse(success=False, submission_id=submission_id, message=NOT_FOUND_MESSAGE)
            if SubmissionStatus.pending_manual_review in ALLOWED_TRANSITIONS.get(sub.status, frozenset()):
                sub = self._to_manual_review(sub, reason, message)
            else:
                sub = self._save(sub.model_copy(update={"error_reason": reason, "error_message": message}))
        except Exception:  # noqa: BLE001
            logger.exception("submission %s: could not record failure", submission_id)
            return PipelineResponse(submission_id=submission_id, message=message, error_reason=reason)
        return self._manual_review_response(sub)

    def _manual_review_response(
        self,
        sub: Submission,
        *,
        data_quality: DataQuality | None = None,
        message: str = MANUAL_REVIEW_MESSAGE,
    ) -> PipelineResponse:
        return PipelineResponse(
            submission_id=sub.id,
            status=sub.status,
            message=message,
            error_reason=sub.error_reason,
            data_quality=data_quality,
        )

    def _describe_id(self, submission_id: str, *, success: bool = True, message: str | None = None) -> PipelineResponse:
        sub = self.store.get_submission(submission_id)
        if sub is None:
            return PipelineResponse(success=False, submission_id=submission_id, message=NOT_FOUND_MESSAGE)
        response = self._describe(sub)
        return response.model_copy(update={"success": success, "message": message or response.message})

    def _describe(self, sub: Submission) -> PipelineResponse:
        """Best-known outcome of a submission, without side effects."""
        data_quality = summarize_data_quality(sub.property_data) if sub.property_data else None
        if sub.status == SubmissionStatus.completed:
            return PipelineResponse(
                submission_id=sub.id,
                status=sub.status,
                message=COMPLETED_MESSAGE,
                data_quality=data_quality,
                analysis_result=sub.analysis_result,
                health_score=sub.health_score,
            )
        if sub.status in MANUAL_REVIEW_STATUSES:
            return self._manual_review_response(sub, data_quality=data_quality)
        if sub.status == SubmissionStatus.failed:
            message = sub.error_message or "Processing failed."
        else:
            message = f"Submission is {sub.status.value}."
        return PipelineResponse(
            submission_id=sub.id,
            status=sub.status,
            message=message,
            error_reason=sub.error_reason,
            data_quality=data_quality,
        )


__all__ = [
    "MANUAL_REVIEW_MESSAGE",
    "DEGRADED_URL_MESSAGES",
    "REPROCESSABLE_STATUSES",
    "DiagnosticPipeline",
]
