# src/analytics/kpi.py
"""
KPI aggregation over DailyKPI fact rows.

Public API
----------
percent_change(current, previous) -> float        (0 when previous is 0)
summarize_kpis(rows) -> KPISummary
compare_kpis(current, previous) -> KPITrends
build_kpi_report(source, property_id, start, end, *, compare=True) -> KPIReport
build_daily_kpi(submission, day) -> DailyKPI | None
validate_daily_kpis(rows) -> list[str]
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from typing import Protocol

from src.schemas.labels import SubmissionStatus
from src.schemas.models import DailyKPI, KPIReport, KPISummary, KPITrends, Submission

# Ingestion heuristics for listings without booking data
ANCILLARY_REVENUE_RATE = 0.05
DIRECT_BOOKING_SHARE = 0.2
GUESTS_PER_BOOKING = 2
DEFAULT_INGEST_RATING = 4.0
DEFAULT_INGEST_PRICE = 100.0


class KPIFactSource(Protocol):
    def list_daily_kpis(self, property_id: str, start: date, end: date) -> list[DailyKPI]: ...


# =========================
# Summaries & trends
# =========================


def percent_change(current: float, previous: float) -> float:
    """(current - previous) / previous x 100, or 0 when there is no comparable base."""
    if not previous or not math.isfinite(previous) or not math.isfinite(current):
        return 0.0
    return round((current - previous) / previous * 100.0, 2)


def summarize_kpis(rows: Sequence[DailyKPI]) -> KPISummary:
    if not rows:
        return KPISummary()
    n = len(rows)
    return KPISummary(
        total_revenue=round(sum(r.total_revenue for r in rows), 2),
        total_bookings=sum(r.bookings for r in rows),
        total_rooms_sold=sum(r.rooms_sold for r in rows),
        total_rooms_available=sum(r.rooms_available for r in rows),
        avg_occupancy=round(sum(r.occupancy_rate for r in rows) / n, 2),
        avg_adr=round(sum(r.adr for r in rows) / n, 2),
        avg_revpar=round(sum(r.revpar for r in rows) / n, 2),
        period_days=n,
    )


def compare_kpis(current: KPISummary, previous: KPISummary) -> KPITrends:
    return KPITrends(
        revenue_change=percent_change(current.total_revenue, previous.total_revenue),
        occupancy_change=percent_change(current.avg_occupancy, previous.avg_occupancy),
        adr_change=percent_change(current.avg_adr, previous.avg_adr),
        revpar_change=percent_change(current.avg_revpar, previous.avg_revpar),
        bookings_change=percent_change(current.total_bookings, previous.total_bookings),
    )


def build_kpi_report(
    source: KPIFactSource,
    property_id: str,
    start: date,
    end: date,
    *,
    compare: bool = True,
) -> KPIReport:
    """
    Summarize [start, end] (inclusive). With `compare`, trends are computed
    against the period of equal length that ends the day before `start`.
    """
    if end < start:
        raise ValueError("end must be on or after start")
    rows = sorted(source.list_daily_kpis(property_id, start, end), key=lambda r: r.date)
    summary = summarize_kpis(rows)

    trends: KPITrends | None = None
    if compare:
        span = (end - start).days + 1
        prev_end = start - timedelta(days=1)
        prev_start = prev_end - timedelta(days=span - 1)
        previous = summarize_kpis(source.list_daily_kpis(property_id, prev_start, prev_end))
        trends = compare_kpis(summary, previous)

    return KPIReport(property_id=property_id, start=start, end=end, summary=summary, trends=trends, rows=rows)


# =========================
# Ingestion from completed submissions
# =========================


def estimate_daily_occupancy(rating: float, review_count: int) -> float:
    """Fraction of nights sold, from rating and review volume (clamped to [0.1, 1.0])."""
    occ = 0.5
    if rating >= 4.5:
        occ += 0.2
    elif rating >= 4.0:
        occ += 0.1
    elif rating < 3.5:
        occ -= 0.1

    if review_count > 50:
        occ += 0.1
    elif review_count > 20:
        occ += 0.05

    return min(max(occ, 0.1), 1.0)


def build_daily_kpi(submission: Submission, day: date) -> DailyKPI | None:
    """Derive one KPI fact for a completed submission (single-unit listing); None otherwise."""
    if submission.status != SubmissionStatus.completed or submission.property_data is None:
        return None

    perf = submission.property_data.performance
    rating = perf.rating or DEFAULT_INGEST_RATING
    price = submission.property_data.pricing.base_price or DEFAULT_INGEST_PRICE

    rooms_available = 1
    rooms_sold = int(math.floor(estimate_daily_occupancy(rating, perf.review_count) * rooms_available + 0.5))
    room_revenue = round(rooms_sold * price, 2)

    return DailyKPI(
        property_id=submission.id,
        date=day,
        total_revenue=round(room_revenue * (1 + ANCILLARY_REVENUE_RATE), 2),
        room_revenue=room_revenue,
        bookings=rooms_sold,
        rooms_sold=rooms_sold,
        rooms_available=rooms_available,
        occupancy_rate=rooms_sold / rooms_available * 100.0,
        adr=round(room_revenue / rooms_sold, 2) if rooms_sold else 0.0,
        revpar=round(room_revenue / rooms_available, 2),
        guests=rooms_sold * GUESTS_PER_BOOKING,
        direct_booking_share=DIRECT_BOOKING_SHARE,
    )


def validate_daily_kpis(rows: Iterable[DailyKPI]) -> list[str]:
    """Return human-readable problems; empty when every row is consistent."""
    errors: list[str] = []
    for r in rows:
        if not r.property_id:
            errors.append("Missing property_id")
        if r.rooms_sold > r.rooms_available:
            errors.append(f"{r.property_id}: rooms_sold ({r.rooms_sold}) > rooms_available ({r.rooms_available})")
        if r.room_revenue < 0:
            errors.append(f"{r.property_id}: negative room_revenue")
        if r.total_revenue < r.room_revenue:
            errors.append(f"{r.property_id}: total_revenue < room_revenue")
    return errors


__all__ = [
    "KPIFactSource",
    "percent_change",
    "summarize_kpis",
    "compare_kpis",
    "build_kpi_report",
    "estimate_daily_occupancy",
    "build_daily_kpi",
    "validate_daily_kpis",
]
