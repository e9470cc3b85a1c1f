# tests/integration/test_pipeline.py
"""
Pipeline state machine, end to end (mock providers, fixed clock, no sleeping)

Covers
------
- Creation validation and shortened-link short-circuit.
- Retrieval retries (attempt cap, fixed delay, persisted retry state).
- Quality gate and analysis failures landing in manual review.
- Completion with downstream report/KPI jobs.
- Claims, manual review requests and reprocessing.
"""

import pytest
import requests

from src.core.errors import InputRejectedError
from src.core.telemetry import TelemetryEmitter
from src.orchestrators.pipeline import (
    DEGRADED_URL_MESSAGES,
    MANUAL_REVIEW_MESSAGE,
)
from src.schemas.labels import Platform, ReasonCode, ReportStatus, SubmissionStatus
from src.storage import InMemoryStore
from src.tools.analysis import SAMPLE_ANALYSIS, MockAnalysisProvider
from src.tools.scraping import MockScrapingProvider
from tests.utils import (
    AIRBNB_SHORT_URL,
    BOOKING_SHARE_URL,
    BOOKING_URL,
    EMPTY_LISTING,
    FIXED_DAY,
    FIXED_NOW,
    make_submission_request,
)

pytestmark = pytest.mark.integration


# ---------- creation ----------


@pytest.mark.parametrize(
    "overrides",
    [
        {"email": "not-an-email"},
        {"platform": "tripadvisor"},
        {"property_url": "ftp://www.airbnb.com/rooms/1"},
        {"property_url": "airbnb.com/rooms/1"},
        {"name": "   "},
    ],
)
def test_create_rejects_bad_requests(pipeline_factory, overrides):
    with pytest.raises(InputRejectedError):
        pipeline_factory().create_submission(make_submission_request(**overrides))


def test_create_accepts_mappings_and_mixed_case_platform(pipeline_factory, memory_store):
    pipe = pipeline_factory()
    sub = pipe.create_submission({**make_submission_request().model_dump(), "platform": "AirBnB"})
    assert sub.platform == Platform.airbnb
    assert sub.status == SubmissionStatus.pending
    assert memory_store.get_submission(sub.id) is not None

    with pytest.raises(InputRejectedError):
        pipe.create_submission({"name": "Ana"})


@pytest.mark.parametrize(
    "url, platform",
    [(BOOKING_SHARE_URL, "booking"), (AIRBNB_SHORT_URL, "airbnb")],
)
def test_shortened_links_go_straight_to_manual_review(pipeline_factory, url, platform):
    scraper = MockScrapingProvider()
    pipe = pipeline_factory(scraper=scraper)
    sub = pipe.create_submission(make_submission_request(property_url=url, platform=platform))

    assert sub.status == SubmissionStatus.pending_manual_review
    assert sub.error_reason == ReasonCode.incompatible_url
    assert sub.error_message == DEGRADED_URL_MESSAGES[Platform(platform)]

    resp = pipe.run(sub.id)
    assert resp.success is True
    assert resp.status == SubmissionStatus.pending_manual_review
    assert resp.error_reason == ReasonCode.incompatible_url
    assert scraper.calls == []


# ---------- happy path ----------


def test_run_completes_and_hands_off_downstream_work(pipeline_factory, memory_store, settings, tmp_path):
    analyzer = MockAnalysisProvider()
    pipe = pipeline_factory(analyzer=analyzer)
    sub = pipe.create_submission(make_submission_request())

    resp = pipe.run(sub.id)
    assert resp.success is True
    assert resp.status == SubmissionStatus.completed
    assert resp.message == "Analysis completed successfully."
    assert resp.analysis_result == SAMPLE_ANALYSIS
    assert resp.health_score is not None and 0 <= resp.health_score.total <= 100
    assert resp.data_quality is not None and resp.data_quality.photo_count == 12
    assert resp.processing_time_s is not None
    assert "Casa Azul Beach Apartment" in analyzer.prompts[0]

    stored = memory_store.get_submission(sub.id)
    assert stored.status == SubmissionStatus.completed
    assert stored.retry_count == 0
    assert stored.error_reason is None
    assert stored.report_status == ReportStatus.queued
    assert stored.claim_owner is None
    assert stored.raw_payload["property_name"] == "Casa Azul Beach Apartment"
    assert {j.kind for j in memory_store.list_jobs(sub.id)} == {"report", "kpi"}

    done = pipe.work_queue.drain()
    assert [j.status for j in done] == ["done", "done"]

    stored = memory_store.get_submission(sub.id)
    assert stored.report_status == ReportStatus.ready
    report = tmp_path / "reports" / f"{sub.id}.md"
    assert stored.report_path == str(report)
    assert report.read_text(encoding="utf-8").startswith("# Listing Diagnostic – Casa Azul Beach Apartment")

    assert len(memory_store.list_daily_kpis(sub.id, FIXED_DAY, FIXED_DAY)) == 1
    topics = {f.topic for f in memory_store.list_sentiment_topics(sub.id, FIXED_DAY, FIXED_DAY)}
    assert {"location", "cleanliness", "value"} <= topics


def test_completed_submission_is_not_rerun(pipeline_factory):
    scraper = MockScrapingProvider()
    pipe = pipeline_factory(scraper=scraper)
    sub = pipe.create_submission(make_submission_request())
    pipe.run(sub.id)

    again = pipe.run(sub.id)
    assert again.status == SubmissionStatus.completed
    assert again.analysis_result == SAMPLE_ANALYSIS
    assert len(scraper.calls) == 1


def test_run_unknown_submission(pipeline_factory):
    resp = pipeline_factory().run("does-not-exist")
    assert resp.success is False
    assert resp.message == "Submission not found."


def test_run_on_sqlite_store(pipeline_factory, sqlite_store):
    pipe = pipeline_factory(store=sqlite_store)
    sub = pipe.create_submission(make_submission_request(property_url=BOOKING_URL, platform="booking"))
    assert pipe.run(sub.id).status == SubmissionStatus.completed
    assert [j.status for j in pipe.work_queue.drain()] == ["done", "done"]
    assert sqlite_store.get_submission(sub.id).report_status == ReportStatus.ready


# ---------- retrieval retries ----------


@pytest.mark.parametrize("raise_errors", [False, True])
def test_exhausted_retries_go_to_manual_review(pipeline_factory, memory_store, sleeps, raise_errors):
    scraper = MockScrapingProvider(fail_times=5, raise_errors=raise_errors)
    pipe = pipeline_factory(scraper=scraper)
    sub = pipe.create_submission(make_submission_request())

    resp = pipe.run(sub.id)
    assert resp.success is True
    assert resp.status == SubmissionStatus.pending_manual_review
    assert resp.error_reason == ReasonCode.provider_failure
    assert resp.message == MANUAL_REVIEW_MESSAGE

    assert len(scraper.calls) == 2
    assert sleeps == [0.0]
    stored = memory_store.get_submission(sub.id)
    assert stored.retry_count == 2
    assert stored.error_message.startswith("Scraping failed:")
    assert stored.claim_owner is None


class _GarbageScraper:
    def __init__(self):
        self.calls = []

    def scrape(self, url, platform):
        self.calls.append((url, platform))
        raise ValueError("provider returned garbage")


def test_scraper_value_errors_are_retried_as_provider_failures(pipeline_factory, memory_store, sleeps):
    scraper = _GarbageScraper()
    pipe = pipeline_factory(scraper=scraper)
    sub = pipe.create_submission(make_submission_request())

    resp = pipe.run(sub.id)
    assert resp.status == SubmissionStatus.pending_manual_review
    assert resp.error_reason == ReasonCode.provider_failure
    assert len(scraper.calls) == 2
    assert sleeps == [0.0]
    stored = memory_store.get_submission(sub.id)
    assert stored.retry_count == 2
    assert "provider returned garbage" in stored.error_message


def test_retry_then_success(pipeline_factory, memory_store, sleeps):
    scraper = MockScrapingProvider(fail_times=2)
    pipe = pipeline_factory(scraper=scraper, max_scrape_attempts=3, retry_delay_s=1.5)
    sub = pipe.create_submission(make_submission_request())

    resp = pipe.run(sub.id)
    assert resp.status == SubmissionStatus.completed
    assert len(scraper.calls) == 3
    assert sleeps == [1.5, 1.5]
    stored = memory_store.get_submission(sub.id)
    assert stored.retry_count == 2
    assert stored.error_message is None


# ---------- quality gate & analysis ----------


def test_quality_gate_failure(pipeline_factory, memory_store):
    analyzer = MockAnalysisProvider()
    pipe = pipeline_factory(scraper=MockScrapingProvider(EMPTY_LISTING), analyzer=analyzer)
    sub = pipe.create_submission(make_submission_request())

    resp = pipe.run(sub.id)
    assert resp.status == SubmissionStatus.pending_manual_review
    assert resp.error_reason == ReasonCode.insufficient_data_quality
    assert resp.data_quality is not None and resp.data_quality.has_name is False
    assert analyzer.prompts == []

    stored = memory_store.get_submission(sub.id)
    assert stored.error_message.startswith("Insufficient data quality")
    assert stored.raw_payload == EMPTY_LISTING
    assert memory_store.list_jobs(sub.id) == []


@pytest.mark.parametrize(
    "analyzer",
    [
        MockAnalysisProvider(response="Sorry, I cannot produce JSON today."),
        MockAnalysisProvider(response="```json\n[1, 2, 3]\n```"),
        MockAnalysisProvider(error=requests.Timeout("model timed out")),
    ],
)
def test_analysis_failures_go_to_manual_review(pipeline_factory, memory_store, analyzer):
    pipe = pipeline_factory(analyzer=analyzer)
    sub = pipe.create_submission(make_submission_request())

    resp = pipe.run(sub.id)
    assert resp.status == SubmissionStatus.pending_manual_review
    assert resp.error_reason == ReasonCode.analysis_failure
    assert resp.data_quality is not None and resp.data_quality.has_name is True
    # analysis is attempted once
    assert len(analyzer.prompts) == 1

    stored = memory_store.get_submission(sub.id)
    assert stored.error_message.startswith("Analysis failed:")
    assert stored.property_data is not None
    assert stored.health_score is None
    assert memory_store.list_jobs(sub.id) == []


def test_unexpected_errors_are_recorded(pipeline_factory, memory_store, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("scoring exploded")

    monkeypatch.setattr("src.orchestrators.pipeline.score_property", boom)
    pipe = pipeline_factory()
    sub = pipe.create_submission(make_submission_request())

    resp = pipe.run(sub.id)
    assert resp.status == SubmissionStatus.pending_manual_review
    assert resp.error_reason == ReasonCode.unexpected_error
    stored = memory_store.get_submission(sub.id)
    assert stored.error_message == "Unexpected error: scoring exploded"
    assert stored.claim_owner is None


# ---------- claims ----------


def test_claimed_submission_is_left_alone(pipeline_factory, memory_store):
    from datetime import timedelta

    scraper = MockScrapingProvider()
    pipe = pipeline_factory(scraper=scraper)
    sub = pipe.create_submission(make_submission_request())
    assert memory_store.try_claim(sub.id, "other-worker", FIXED_NOW + timedelta(hours=1), FIXED_NOW)

    resp = pipe.run(sub.id)
    assert resp.success is True
    assert resp.message == "Submission is already being processed."
    assert resp.status == SubmissionStatus.pending
    assert scraper.calls == []
    assert memory_store.get_submission(sub.id).claim_owner == "other-worker"


class _RacingStore(InMemoryStore):
    """Marks a row completed right before handing out the next claim on it."""

    def __init__(self):
        super().__init__()
        self.complete_on_claim = False

    def try_claim(self, submission_id, owner, expires_at, now):
        if self.complete_on_claim:
            self.complete_on_claim = False
            sub = self.get_submission(submission_id)
            self.save_submission(sub.model_copy(update={"status": SubmissionStatus.completed}))
        return super().try_claim(submission_id, owner, expires_at, now)


def test_run_leaves_rows_finished_by_another_worker_alone(pipeline_factory):
    store = _RacingStore()
    scraper = MockScrapingProvider()
    pipe = pipeline_factory(scraper=scraper, store=store)
    sub = pipe.create_submission(make_submission_request())
    store.complete_on_claim = True

    resp = pipe.run(sub.id)
    assert resp.status == SubmissionStatus.completed
    assert resp.error_reason is None
    assert scraper.calls == []
    stored = store.get_submission(sub.id)
    assert stored.status == SubmissionStatus.completed
    assert stored.error_reason is None
    assert stored.claim_owner is None


def test_reprocess_leaves_rows_finished_by_another_worker_alone(pipeline_factory):
    store = _RacingStore()
    scraper = MockScrapingProvider()
    pipe = pipeline_factory(scraper=scraper, store=store)
    sub = pipe.create_submission(make_submission_request(property_url=BOOKING_SHARE_URL, platform="booking"))
    assert sub.status == SubmissionStatus.pending_manual_review
    store.complete_on_claim = True

    resp = pipe.reprocess(sub.id)
    assert resp.success is False
    assert resp.status == SubmissionStatus.completed
    assert scraper.calls == []
    stored = store.get_submission(sub.id)
    assert stored.status == SubmissionStatus.completed
    assert stored.claim_owner is None


# ---------- manual review & reprocessing ----------


def test_request_manual_review(pipeline_factory, memory_store):
    pipe = pipeline_factory(scraper=MockScrapingProvider(fail_times=5))
    sub = pipe.create_submission(make_submission_request())

    rejected = pipe.request_manual_review(sub.id)
    assert rejected.success is False
    assert rejected.status == SubmissionStatus.pending

    pipe.run(sub.id)
    resp = pipe.request_manual_review(sub.id)
    assert resp.success is True
    assert resp.status == SubmissionStatus.manual_review_requested
    assert resp.message == "Manual review requested."
    assert pipe.check_status(sub.id).status == SubmissionStatus.manual_review_requested


def test_requested_review_of_a_short_link_stays_in_manual_review(pipeline_factory):
    scraper = MockScrapingProvider()
    pipe = pipeline_factory(scraper=scraper)
    sub = pipe.create_submission(make_submission_request(property_url=BOOKING_SHARE_URL, platform="booking"))
    pipe.request_manual_review(sub.id)

    resp = pipe.run(sub.id)
    assert resp.status == SubmissionStatus.pending_manual_review
    assert resp.error_reason == ReasonCode.incompatible_url
    assert scraper.calls == []


def test_reprocess_resets_and_reruns(pipeline_factory, memory_store):
    # fails both attempts of the first run, succeeds on the third call overall
    scraper = MockScrapingProvider(fail_times=2)
    pipe = pipeline_factory(scraper=scraper)
    sub = pipe.create_submission(make_submission_request())
    assert pipe.run(sub.id).status == SubmissionStatus.pending_manual_review

    resp = pipe.reprocess(sub.id)
    assert resp.status == SubmissionStatus.completed
    stored = memory_store.get_submission(sub.id)
    assert stored.retry_count == 0
    assert stored.error_reason is None
    assert len(scraper.calls) == 3


def test_reprocess_rejects_completed_and_unknown(pipeline_factory):
    pipe = pipeline_factory()
    sub = pipe.create_submission(make_submission_request())
    pipe.run(sub.id)

    resp = pipe.reprocess(sub.id)
    assert resp.success is False
    assert resp.status == SubmissionStatus.completed
    assert pipe.reprocess("missing").success is False


def test_reprocess_all_pending_only_touches_stuck_submissions(pipeline_factory):
    pipe = pipeline_factory()
    stuck = [
        pipe.create_submission(make_submission_request(property_url=BOOKING_SHARE_URL, platform="booking")),
        pipe.create_submission(make_submission_request(property_url=AIRBNB_SHORT_URL, platform="airbnb")),
    ]
    fresh = pipe.create_submission(make_submission_request())

    responses = pipe.reprocess_all_pending()
    assert {r.submission_id for r in responses} == {s.id for s in stuck}
    assert all(r.status == SubmissionStatus.pending_manual_review for r in responses)
    assert pipe.check_status(fresh.id).status == SubmissionStatus.pending

    assert len(pipe.reprocess_all_pending(limit=1)) == 1


# ---------- telemetry ----------


def test_telemetry_events_without_personal_data(pipeline_factory):
    events = []
    pipe = pipeline_factory(telemetry=TelemetryEmitter(True, sink=events.append))
    sub = pipe.create_submission(make_submission_request())
    pipe.run(sub.id)

    names = [e["event"] for e in events]
    assert names[0] == "submission_created"
    assert names[-1] == "pipeline_finished"
    assert names.count("status_changed") == 3  # processing, analyzing, completed
    assert events[-1]["status"] == "completed"
    assert all("ana@example.com" not in str(e) for e in events)
