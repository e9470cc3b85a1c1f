# src/schemas/models.py

from __future__ import annotations

import datetime as dt
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.schemas.labels import (
    PLACEHOLDER_LOCATION,
    PLACEHOLDER_NAME,
    HealthCategory,
    MarketSaturation,
    Platform,
    ReasonCode,
    ReportStatus,
    SentimentCategory,
    SentimentTrendDirection,
    SubmissionStatus,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =========================
# Adapter output
# =========================


class IntermediateProperty(BaseModel):
    """
    Source-independent shape produced by the adapter layer.

    Values keep their source form (price strings, amenity maps, photo objects,
    ratings on the platform's own scale). The normalization engine owns the
    conversion into `ProcessedPropertyData`.
    """

    model_config = ConfigDict(frozen=True)

    platform: str = Field("generic", description="Platform label as received (any case).")
    name: str = Field(PLACEHOLDER_NAME, description="Listing title, or the placeholder when missing.")
    location: str = Field(PLACEHOLDER_LOCATION, description="Free-form location, or the placeholder when missing.")
    property_type: str | None = Field(None, description="Source property type label.")
    description: str | None = Field(None, description="Listing description text.")
    rating: float | None = Field(None, description="Rating on the source scale (see rating_scale).")
    rating_scale: Literal[5, 10, 100] = Field(5, description="Declared rating scale of the source value.")
    review_count: int | None = Field(None, description="Number of reviews reported by the source.")
    amenities: Any = Field(None, description="Raw amenities value (list of str, list of objects, or flag map).")
    photos: Any = Field(None, description="Raw photos value (list of URLs or objects with url/src).")
    price: Any = Field(None, description="Raw nightly price (number or currency string).")
    cleaning_fee: Any = Field(None, description="Raw cleaning fee (number or currency string).")
    additional_fees: dict[str, Any] = Field(default_factory=dict, description="Raw named fees.")
    check_in: str | None = None
    check_out: str | None = None
    cancellation_policy: str | None = None
    house_rules: list[str] = Field(default_factory=list)
    reviews: list[str] = Field(default_factory=list, description="Recent review texts.")
    bedrooms: int | None = None
    max_guests: int | None = None
    occupancy_rate: float | None = Field(None, description="Explicit occupancy percentage when the source provides one.")
    available_days: int | None = Field(None, description="Available (unbooked) days in the availability window.")
    total_days: int | None = Field(None, description="Length of the availability window in days.")
    raw_data: dict[str, Any] = Field(default_factory=dict, description="The payload the adapter consumed.")
    error: str | None = Field(None, description="Set when the adapter hit an internal parse error.")


# =========================
# Canonical property model
# =========================


class BasicInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(PLACEHOLDER_NAME, min_length=1)
    location: str = Field(PLACEHOLDER_LOCATION, min_length=1)
    property_type: str = Field("Property", description="Human-readable property type.")
    description: str = Field("", description="Listing description; empty when unknown.")


class Performance(BaseModel):
    model_config = ConfigDict(frozen=True)

    rating: float = Field(0.0, ge=0, le=5, description="Rating on the common 5-point scale.")
    review_count: int = Field(0, ge=0)
    occupancy_rate: float = Field(0.0, ge=0, le=100, description="Occupancy in percent (0-100).")
    average_daily_rate: float | None = Field(None, ge=0, description="Nightly rate in listing currency.")


class Pricing(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_price: float | None = Field(None, ge=0, description="Nightly base price; None when no price was found.")
    cleaning_fee: float | None = Field(None, ge=0)
    additional_fees: dict[str, float] = Field(default_factory=dict, description="Named extra fees.")
    discounts: dict[str, float] = Field(default_factory=dict, description="Named discounts (e.g., weekly: 0.1).")


class Policies(BaseModel):
    model_config = ConfigDict(frozen=True)

    check_in: str | None = None
    check_out: str | None = None
    cancellation_policy: str | None = None
    house_rules: list[str] = Field(default_factory=list)


class ProcessedPropertyData(BaseModel):
    """
    Canonical, platform-independent listing snapshot.
    `basic_info.name` and `basic_info.location` always hold a value; missing
    source data yields the explicit placeholders.
    """

    model_config = ConfigDict(frozen=True)

    platform: str = Field("generic", description="Lower-cased platform the data was normalized from.")
    basic_info: BasicInfo = Field(default_factory=BasicInfo)
    performance: Performance = Field(default_factory=Performance)
    amenities: list[str] = Field(default_factory=list, description="Distinct amenity names in source order.")
    photos: list[str] = Field(default_factory=list, description="Ordered photo URLs.")
    pricing: Pricing = Field(default_factory=Pricing)
    policies: Policies = Field(default_factory=Policies)
    bedrooms: int | None = Field(None, ge=0)
    max_guests: int | None = Field(None, ge=0)
    reviews: list[str] = Field(default_factory=list, description="Recent review texts carried for analysis.")
    raw_data: dict[str, Any] = Field(default_factory=dict)


class DataQuality(BaseModel):
    """Field-presence summary reported back to the caller of a pipeline run."""

    model_config = ConfigDict(frozen=True)

    has_name: bool = False
    has_location: bool = False
    has_rating: bool = False
    has_reviews: bool = False
    has_amenities: bool = False
    has_description: bool = False
    photo_count: int = 0


# =========================
# Health Score
# =========================


class HealthBreakdown(BaseModel):
    """Six weighted components; each value is capped at its weight."""

    model_config = ConfigDict(frozen=True)

    classificacao: float = Field(..., ge=0, le=25, description="Guest rating share (rating/5 x 25).")
    presenca_digital: float = Field(..., ge=0, le=20, description="Photos, description and review volume.")
    performance_financeira: float = Field(..., ge=0, le=20, description="Price competitiveness x 20.")
    infraestrutura: float = Field(..., ge=0, le=12, description="Rating tier proxy for infrastructure.")
    experiencia_hospede: float = Field(..., ge=0, le=8, description="Listing completeness proxy for guest experience.")
    gestao_reputacao: float = Field(..., ge=0, le=8, description="Review volume tier.")

    def values(self) -> list[float]:
        return [
            self.classificacao,
            self.presenca_digital,
            self.performance_financeira,
            self.infraestrutura,
            self.experiencia_hospede,
            self.gestao_reputacao,
        ]


class HealthScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = Field(..., ge=0, le=100)
    breakdown: HealthBreakdown
    category: HealthCategory


# =========================
# Market intelligence
# =========================


class MarketProperty(BaseModel):
    """A property as seen by the market estimator (subject listing or comparable)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str | None = None
    name: str | None = None
    property_type: str | None = Field(None, description="e.g., entire_place, house, apartment, hotel, private_room.")
    guest_capacity: int = Field(2, ge=0)
    bedrooms: int = Field(0, ge=0)
    amenities: list[str] = Field(default_factory=list)
    photo_count: int = Field(0, ge=0)
    price: float | None = Field(None, ge=0, description="Observed nightly price, when known.")
    occupancy_rate: float | None = Field(None, ge=0, le=100, description="Observed occupancy percent, when known.")
    last_analyzed_at: datetime | None = None


class SeasonalTrends(BaseModel):
    model_config = ConfigDict(frozen=True)

    spring: float
    summer: float
    fall: float
    winter: float


class PriceRecommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    suggested: float
    min: float
    max: float
    reasoning: str


class MarketInsight(BaseModel):
    model_config = ConfigDict(frozen=True)

    average_daily_rate: float
    occupancy_rate: float
    competitor_count: int
    market_saturation: MarketSaturation
    seasonal_trends: SeasonalTrends
    price_recommendation: PriceRecommendation
    is_default: bool = Field(False, description="True when the fixed fallback insight was returned.")


class CompetitorAnalysis(BaseModel):
    """How one comparable stacks up against the subject listing (from the competitor's side)."""

    model_config = ConfigDict(frozen=True)

    competitor: MarketProperty
    estimated_rate: float
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)


# =========================
# KPI facts & summaries
# =========================


class DailyKPI(BaseModel):
    """One property-day of hospitality KPIs. Append-only."""

    model_config = ConfigDict(frozen=True)

    property_id: str
    date: dt.date
    total_revenue: float = Field(0.0, description="Room plus ancillary revenue.")
    room_revenue: float = 0.0
    bookings: int = 0
    rooms_sold: int = 0
    rooms_available: int = 0
    occupancy_rate: float = Field(0.0, description="Percent (0-100).")
    adr: float = Field(0.0, description="Average daily rate.")
    revpar: float = Field(0.0, description="Revenue per available room.")
    guests: int = 0
    direct_booking_share: float = Field(0.0, ge=0, le=1)


class KPISummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_revenue: float = 0.0
    total_bookings: int = 0
    total_rooms_sold: int = 0
    total_rooms_available: int = 0
    avg_occupancy: float = 0.0
    avg_adr: float = 0.0
    avg_revpar: float = 0.0
    period_days: int = 0


class KPITrends(BaseModel):
    """Percent change of the current period against the comparison period."""

    model_config = ConfigDict(frozen=True)

    revenue_change: float = 0.0
    occupancy_change: float = 0.0
    adr_change: float = 0.0
    revpar_change: float = 0.0
    bookings_change: float = 0.0


class KPIReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    property_id: str
    start: dt.date
    end: dt.date
    summary: KPISummary
    trends: KPITrends | None = None
    rows: list[DailyKPI] = Field(default_factory=list)


# =========================
# Sentiment facts & summaries
# =========================


class SentimentTopicFact(BaseModel):
    """One topic-level sentiment reading per property, day and platform. Append-only."""

    model_config = ConfigDict(frozen=True)

    property_id: str
    date: dt.date
    platform: str = "all"
    topic: str
    sentiment_score: float = Field(..., ge=-1, le=1)
    mention_count: int = Field(1, ge=0)
    sample_snippets: list[str] = Field(default_factory=list)


class TopicScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    topic: str
    score: float
    mentions: int
    category: SentimentCategory


class SentimentSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall_score: float = 0.0
    overall_category: SentimentCategory = SentimentCategory.neutral
    positive_mentions: int = 0
    neutral_mentions: int = 0
    negative_mentions: int = 0
    topic_scores: dict[str, TopicScore] = Field(default_factory=dict)


class SentimentInsights(BaseModel):
    model_config = ConfigDict(frozen=True)

    top_positive_aspects: list[TopicScore] = Field(default_factory=list)
    areas_for_improvement: list[TopicScore] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    overall_health: SentimentCategory = SentimentCategory.neutral
    requires_immediate_attention: bool = False


class SentimentTrendPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: dt.date
    score: float
    positive_mentions: int = 0
    neutral_mentions: int = 0
    negative_mentions: int = 0


class TopicTrend(BaseModel):
    model_config = ConfigDict(frozen=True)

    topic: str
    score: float
    mentions: int
    category: SentimentCategory
    direction: SentimentTrendDirection = SentimentTrendDirection.stable
    previous_score: float | None = None


class SentimentComparison(BaseModel):
    model_config = ConfigDict(frozen=True)

    current: float
    previous: float
    change: float
    direction: SentimentTrendDirection


class TextSentiment(BaseModel):
    """Keyword-based score for a single review text."""

    model_config = ConfigDict(frozen=True)

    score: float = Field(..., ge=-1, le=1)
    category: SentimentCategory
    topics: list[str] = Field(default_factory=list)


# =========================
# Submission lifecycle
# =========================


class SubmissionRequest(BaseModel):
    """Inbound request to diagnose a listing."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., description="Requester name.")
    email: str = Field(..., description="Requester email address.")
    property_url: str = Field(..., description="Full listing URL.")
    platform: str = Field(..., description="Listing platform (booking/airbnb/vrbo/agoda/expedia/hotels).")

    @field_validator("name", "email", "property_url", "platform", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


class Submission(BaseModel):
    """
    Root entity of a diagnostic run. Mutated only through orchestrator
    transitions; stores persist whole rows.
    """

    id: str
    name: str
    email: str
    property_url: str
    platform: Platform
    status: SubmissionStatus = SubmissionStatus.pending
    retry_count: int = Field(0, ge=0)
    error_message: str | None = None
    error_reason: ReasonCode | None = None
    raw_payload: dict[str, Any] | None = None
    property_data: ProcessedPropertyData | None = None
    analysis_result: dict[str, Any] | None = None
    health_score: HealthScore | None = None
    report_path: str | None = None
    report_status: ReportStatus = ReportStatus.none
    claim_owner: str | None = None
    claim_expires_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class PipelineResponse(BaseModel):
    """What every entry point returns; failures are described, never raised."""

    success: bool = True
    submission_id: str | None = None
    status: SubmissionStatus | None = None
    message: str = ""
    error_reason: ReasonCode | None = None
    processing_time_s: float | None = None
    data_quality: DataQuality | None = None
    analysis_result: dict[str, Any] | None = None
    health_score: HealthScore | None = None


JobKind = Literal["report", "kpi"]
JobStatus = Literal["pending", "running", "done", "failed"]


class Job(BaseModel):
    """Durable downstream task handed off after a submission completes."""

    id: str
    submission_id: str
    kind: JobKind
    status: JobStatus = "pending"
    attempts: int = Field(0, ge=0)
    last_error: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


__all__ = [
    "utcnow",
    "IntermediateProperty",
    "BasicInfo",
    "Performance",
    "Pricing",
    "Policies",
    "ProcessedPropertyData",
    "DataQuality",
    "HealthBreakdown",
    "HealthScore",
    "MarketProperty",
    "SeasonalTrends",
    "PriceRecommendation",
    "MarketInsight",
    "CompetitorAnalysis",
    "DailyKPI",
    "KPISummary",
    "KPITrends",
    "KPIReport",
    "SentimentTopicFact",
    "TopicScore",
    "SentimentSummary",
    "SentimentInsights",
    "SentimentTrendPoint",
    "TopicTrend",
    "SentimentComparison",
    "TextSentiment",
    "SubmissionRequest",
    "Submission",
    "PipelineResponse",
    "JobKind",
    "JobStatus",
    "Job",
]
