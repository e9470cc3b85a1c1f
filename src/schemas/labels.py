# src/schemas/labels.py
from __future__ import annotations

import re
from collections.abc import Mapping
from enum import Enum
from re import Pattern

# =========================
# Canonical label enums
# =========================


class Platform(str, Enum):
    booking = "booking"
    airbnb = "airbnb"
    vrbo = "vrbo"
    agoda = "agoda"
    expedia = "expedia"
    hotels = "hotels"

    @classmethod
    def parse(cls, value: str | Platform | None) -> Platform | None:
        """Case-insensitive lookup; returns None for unknown platforms."""
        if isinstance(value, Platform):
            return value
        if not value:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class SubmissionStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    scraping_retry = "scraping_retry"
    analyzing = "analyzing"
    completed = "completed"
    failed = "failed"
    pending_manual_review = "pending_manual_review"
    manual_review_requested = "manual_review_requested"


class ReasonCode(str, Enum):
    """
    Machine-checkable cause written next to every human-readable error message.
    """

    incompatible_url = "incompatible_url"
    provider_failure = "provider_failure"
    insufficient_data_quality = "insufficient_data_quality"
    analysis_failure = "analysis_failure"
    persistence_failure = "persistence_failure"
    unexpected_error = "unexpected_error"


class ReportStatus(str, Enum):
    none = "none"
    queued = "queued"
    ready = "ready"
    failed = "failed"


class HealthCategory(str, Enum):
    excellent = "excellent"
    good = "good"
    medium = "medium"
    critical = "critical"


class MarketSaturation(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class SentimentCategory(str, Enum):
    positive = "positive"
    neutral = "neutral"
    negative = "negative"


class SentimentTrendDirection(str, Enum):
    improving = "improving"
    stable = "stable"
    declining = "declining"


class ReviewTopic(str, Enum):
    cleanliness = "cleanliness"
    location = "location"
    value = "value"
    amenities = "amenities"
    communication = "communication"
    check_in = "check-in"
    accuracy = "accuracy"


# =========================
# Status groups
# =========================

MANUAL_REVIEW_STATUSES: frozenset[SubmissionStatus] = frozenset(
    {
        SubmissionStatus.pending_manual_review,
        SubmissionStatus.manual_review_requested,
    }
)

# Allowed edges of the submission state machine.
ALLOWED_TRANSITIONS: Mapping[SubmissionStatus, frozenset[SubmissionStatus]] = {
    SubmissionStatus.pending: frozenset(
        {SubmissionStatus.processing, SubmissionStatus.pending_manual_review, SubmissionStatus.failed}
    ),
    SubmissionStatus.processing: frozenset(
        {
            SubmissionStatus.scraping_retry,
            SubmissionStatus.analyzing,
            SubmissionStatus.pending_manual_review,
            SubmissionStatus.failed,
        }
    ),
    SubmissionStatus.scraping_retry: frozenset(
        {
            SubmissionStatus.scraping_retry,
            SubmissionStatus.analyzing,
            SubmissionStatus.pending_manual_review,
            SubmissionStatus.failed,
        }
    ),
    SubmissionStatus.analyzing: frozenset(
        {SubmissionStatus.completed, SubmissionStatus.pending_manual_review, SubmissionStatus.failed}
    ),
    SubmissionStatus.pending_manual_review: frozenset(
        {SubmissionStatus.manual_review_requested, SubmissionStatus.pending}
    ),
    SubmissionStatus.manual_review_requested: frozenset(
        {SubmissionStatus.processing, SubmissionStatus.pending_manual_review, SubmissionStatus.pending}
    ),
    SubmissionStatus.failed: frozenset({SubmissionStatus.pending}),
    SubmissionStatus.completed: frozenset(),
}

# =========================
# Placeholders
# =========================

PLACEHOLDER_NAME = "Unknown Property"
PLACEHOLDER_LOCATION = "Unknown Location"
PLACEHOLDER_VALUES: frozenset[str] = frozenset({PLACEHOLDER_NAME, PLACEHOLDER_LOCATION})

# =========================
# URL patterns rejected before retrieval
# =========================

# Shortened/share links that the scraping provider cannot resolve to a listing page.
DEGRADED_URL_PATTERNS: Mapping[Platform, tuple[Pattern[str], ...]] = {
    Platform.booking: (re.compile(r"booking\.com/share-", re.IGNORECASE),),
    Platform.airbnb: (re.compile(r"(?:^|//)(?:www\.)?abnb\.me/", re.IGNORECASE),),
}


def is_degraded_url(platform: Platform | str | None, url: str) -> bool:
    """True if `url` matches a known shortened-link pattern (any platform when unknown)."""
    plat = Platform.parse(platform) if not isinstance(platform, Platform) else platform
    groups = [DEGRADED_URL_PATTERNS.get(plat, ())] if plat else list(DEGRADED_URL_PATTERNS.values())
    return any(p.search(url or "") for group in groups for p in group)


# =========================
# Review topics
# =========================

TOPIC_KEYWORDS: Mapping[ReviewTopic, tuple[str, ...]] = {
    ReviewTopic.cleanliness: ("clean", "dirty", "tidy", "spotless", "hygiene", "limpo", "sujo", "higiene"),
    ReviewTopic.location: ("location", "situated", "neighborhood", "area", "nearby", "localização", "bairro", "perto"),
    ReviewTopic.value: ("value", "price", "worth", "expensive", "cheap", "afford", "valor", "preço", "caro", "barato"),
    ReviewTopic.amenities: ("amenities", "facilities", "wifi", "pool", "parking", "kitchen", "comodidades", "cozinha"),
    ReviewTopic.communication: ("communication", "host", "responsive", "helpful", "replied", "comunicação", "anfitrião"),
    ReviewTopic.check_in: ("check-in", "check in", "checkin", "arrival", "key", "chegada", "chave"),
    ReviewTopic.accuracy: ("accurate", "description", "photos", "expected", "as described", "descrição", "fotos"),
}

TOPIC_REMEDIATION: Mapping[ReviewTopic, str] = {
    ReviewTopic.cleanliness: "Implement stricter cleaning protocols and quality checks",
    ReviewTopic.communication: "Improve response time and communication templates for guests",
    ReviewTopic.value: "Review pricing strategy and add value-added amenities",
    ReviewTopic.location: "Provide better directions and local area information",
    ReviewTopic.amenities: "Upgrade or add amenities based on guest feedback",
    ReviewTopic.check_in: "Streamline check-in process and provide clearer instructions",
    ReviewTopic.accuracy: "Update property description and photos to match reality",
}


def parse_topic(value: str) -> ReviewTopic | None:
    """Map free-form topic names ("Check-in", "check_in", "CLEANLINESS") to ReviewTopic."""
    key = re.sub(r"[\s_]+", "-", (value or "").strip().lower())
    for topic in ReviewTopic:
        if topic.value == key or topic.value.replace("-", "") == key.replace("-", ""):
            return topic
    return None


__all__ = [
    "Platform",
    "SubmissionStatus",
    "ReasonCode",
    "ReportStatus",
    "HealthCategory",
    "MarketSaturation",
    "SentimentCategory",
    "SentimentTrendDirection",
    "ReviewTopic",
    "MANUAL_REVIEW_STATUSES",
    "ALLOWED_TRANSITIONS",
    "PLACEHOLDER_NAME",
    "PLACEHOLDER_LOCATION",
    "PLACEHOLDER_VALUES",
    "DEGRADED_URL_PATTERNS",
    "is_degraded_url",
    "TOPIC_KEYWORDS",
    "TOPIC_REMEDIATION",
    "parse_topic",
]
