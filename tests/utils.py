# tests/utils.py
"""
Single source of truth for test data, factories, and canonical payloads.
Update values here to cascade across the test suite.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any

from src.core.normalize import normalize_payload
from src.inputs.settings import PipelineSettings
from src.schemas.models import (
    DailyKPI,
    MarketProperty,
    ProcessedPropertyData,
    SentimentTopicFact,
    SubmissionRequest,
)

# -----------------------------
# Global defaults (edit once)
# -----------------------------

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
FIXED_DAY = FIXED_NOW.date()

AIRBNB_URL = "https://www.airbnb.com/rooms/12345678"
BOOKING_URL = "https://www.booking.com/hotel/br/casa-azul.html"
BOOKING_SHARE_URL = "https://www.booking.com/Share-AbC123"
AIRBNB_SHORT_URL = "https://abnb.me/xYz987"

DEFAULT_LISTING: dict[str, Any] = {
    "property_name": "Casa Azul Beach Apartment",
    "location": "Florianópolis, Brazil",
    "rating": 4.8,
    "review_count": 127,
    "price_per_night": "R$ 450",
    "property_type": "Entire apartment",
    "amenities": ["Wifi", "Kitchen", "Pool"],
    "description": "Bright two-bedroom apartment 50 m from the beach.",
    "recent_reviews": [
        "Amazing location and very clean, host was helpful.",
        "Great value, check-in was easy.",
    ],
    "images": [f"https://img.example.com/casa-azul/{i}.jpg" for i in range(1, 7)],
    "bedrooms": 2,
    "max_guests": 4,
}

# Retrieval "succeeded" but nothing usable came back.
EMPTY_LISTING: dict[str, Any] = {
    "property_name": "",
    "location": None,
    "rating": 0,
    "review_count": 0,
    "amenities": [],
}

# -----------------------------
# Payload factories
# -----------------------------


def make_listing_payload(**overrides: Any) -> dict[str, Any]:
    payload = dict(DEFAULT_LISTING)
    payload.update(overrides)
    return payload


def make_booking_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "hotel_name": "Hotel Mar Azul",
        "address": "Rua das Flores 10, Florianópolis",
        "review_score": 8.6,
        "reviews_count": 342,
        "rate": "€100,50",
        "facilities": [{"name": "Free WiFi"}, {"name": "Parking"}, {"title": "Pool"}],
        "photos": [{"url": "https://img.example.com/h/1.jpg"}, {"src": "https://img.example.com/h/2.jpg"}],
        "hotel_description": "Seafront hotel.",
        "checkin": "14:00",
        "checkout": "11:00",
    }
    payload.update(overrides)
    return payload


def make_airbnb_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "name": "Loft in Lapa",
        "city": "Rio de Janeiro",
        "country": "Brazil",
        "review_scores_rating": 96,
        "number_of_reviews": 58,
        "price": "$125.50",
        "room_type": "Entire home/apt",
        "summary": "Loft near the arches.",
        "amenities": {"wifi": True, "kitchen": True, "pool": False},
        "picture_urls": ["https://img.example.com/a/1.jpg"],
        "service_fee": "$12",
        "occupancy_tax": 5,
    }
    payload.update(overrides)
    return payload


def make_vrbo_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "headline": "Lake Cabin",
        "location": "Gramado, Brazil",
        "averageRating": 4.6,
        "reviewCount": 22,
        "nightlyRate": 300,
        "cleaningFee": "80",
        "propertyType": "Cabin",
        "amenities": ["Fireplace", "Kitchen"],
        "checkInTime": "15:00",
        "houseRules": "No smoking\nNo parties",
    }
    payload.update(overrides)
    return payload


def make_processed(platform: str = "airbnb", **overrides: Any) -> ProcessedPropertyData:
    return normalize_payload(platform, make_listing_payload(**overrides))


# -----------------------------
# Request / settings factories
# -----------------------------


def make_submission_request(**overrides: Any) -> SubmissionRequest:
    data = {
        "name": "Ana Souza",
        "email": "ana@example.com",
        "property_url": AIRBNB_URL,
        "platform": "airbnb",
    }
    data.update(overrides)
    return SubmissionRequest(**data)


def make_settings(**overrides: Any) -> PipelineSettings:
    data: dict[str, Any] = {
        "scrape_provider": "mock",
        "analysis_provider": "mock",
        "retry_delay_s": 0,
        "database_path": ":memory:",
        "reports_dir": "reports",
        "telemetry_consent": False,
    }
    data.update(overrides)
    return PipelineSettings(**data)


# -----------------------------
# Fact factories
# -----------------------------


def make_daily_kpi(property_id: str = "p1", day: date = FIXED_DAY, **overrides: Any) -> DailyKPI:
    data: dict[str, Any] = {
        "property_id": property_id,
        "date": day,
        "total_revenue": 210.0,
        "room_revenue": 200.0,
        "bookings": 1,
        "rooms_sold": 1,
        "rooms_available": 1,
        "occupancy_rate": 100.0,
        "adr": 200.0,
        "revpar": 200.0,
        "guests": 2,
        "direct_booking_share": 0.2,
    }
    data.update(overrides)
    return DailyKPI(**data)


def make_kpi_series(property_id: str, start: date, days: int, **overrides: Any) -> list[DailyKPI]:
    return [make_daily_kpi(property_id, start + timedelta(days=i), **overrides) for i in range(days)]


def make_topic_fact(
    topic: str,
    score: float,
    *,
    property_id: str = "p1",
    day: date = FIXED_DAY,
    mentions: int = 1,
    platform: str = "all",
) -> SentimentTopicFact:
    return SentimentTopicFact(
        property_id=property_id,
        date=day,
        platform=platform,
        topic=topic,
        sentiment_score=score,
        mention_count=mentions,
    )


def make_market_property(**overrides: Any) -> MarketProperty:
    data: dict[str, Any] = {
        "id": "subject",
        "name": "Subject",
        "property_type": "apartment",
        "guest_capacity": 2,
        "bedrooms": 0,
        "amenities": [],
        "photo_count": 0,
    }
    data.update(overrides)
    return MarketProperty(**data)
