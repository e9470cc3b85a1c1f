# src/market/intelligence.py
"""
Market Intelligence Estimator

Purpose
-------
Benchmark a listing against its comp set: estimated market rate, occupancy,
saturation, seasonal rates and a price recommendation with a min/max band.

Design
------
- `estimate_rate` is a deterministic rule table (type factor, capacity,
  bedrooms, premium amenities).
- `analyze_market` never raises. Any failure while reading the comp set
  (including a failing `CompSource`) returns `default_market_insight()`.
- Values in the insight are rounded to whole currency units / percents.

Public API
----------
estimate_rate(prop) -> int
analyze_market(prop, comp_set, *, now=None) -> MarketInsight
market_insight_for(prop, source, *, limit=20, now=None) -> MarketInsight
generate_competitor_analysis(prop, comps) -> list[CompetitorAnalysis]
market_property_from(data, *, id=None) -> MarketProperty
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone
from statistics import fmean
from typing import Protocol

from src.schemas.labels import MarketSaturation
from src.schemas.models import (
    CompetitorAnalysis,
    MarketInsight,
    MarketProperty,
    PriceRecommendation,
    ProcessedPropertyData,
    SeasonalTrends,
)

logger = logging.getLogger(__name__)

# =========================
# Rule tables
# =========================

BASE_RATE = 80.0

PROPERTY_TYPE_FACTORS: Mapping[str, float] = {
    "entire_place": 1.2,
    "house": 1.3,
    "apartment": 1.0,
    "hotel": 0.9,
    "private_room": 0.7,
    "shared_room": 0.4,
}

PREMIUM_AMENITIES: tuple[str, ...] = ("pool", "wifi", "kitchen", "parking", "air_conditioning")

SEASONAL_MULTIPLIERS: Mapping[str, float] = {
    "spring": 0.9,
    "summer": 1.2,
    "fall": 0.95,
    "winter": 0.85,
}

NO_COMPS_RATE = 100.0
NO_DATA_OCCUPANCY = 70.0
MAX_QUALITY_MULTIPLIER = 1.5
PRICE_BAND = (0.8, 1.3)
RECENT_ANALYSIS_WINDOW = timedelta(days=30)
TOP_COMPETITORS = 5
LIMITED_PHOTOS = 5


def _key(label: str | None) -> str:
    return (label or "").strip().lower().replace("-", "_").replace(" ", "_")


def default_market_insight() -> MarketInsight:
    """Fixed fallback used whenever market data cannot be read."""
    return MarketInsight(
        average_daily_rate=120,
        occupancy_rate=65,
        competitor_count=5,
        market_saturation=MarketSaturation.medium,
        seasonal_trends=SeasonalTrends(spring=110, summer=140, fall=115, winter=100),
        price_recommendation=PriceRecommendation(
            suggested=125,
            min=100,
            max=160,
            reasoning="Based on general market trends for similar properties.",
        ),
        is_default=True,
    )


class CompSource(Protocol):
    def find_comparables(self, prop: MarketProperty, limit: int) -> list[MarketProperty]: ...


# =========================
# Estimation
# =========================


def estimate_rate(prop: MarketProperty) -> int:
    rate = BASE_RATE * PROPERTY_TYPE_FACTORS.get(_key(prop.property_type), 1.0)
    if prop.guest_capacity > 2:
        rate += (prop.guest_capacity - 2) * 15
    rate += prop.bedrooms * 20

    amenity_keys = [_key(a) for a in prop.amenities]
    rate += 10 * sum(1 for premium in PREMIUM_AMENITIES if any(premium in a for a in amenity_keys))
    return int(rate + 0.5)


def _saturation(count: int) -> MarketSaturation:
    if count > 15:
        return MarketSaturation.high
    if count > 8:
        return MarketSaturation.medium
    return MarketSaturation.low


def _quality_multiplier(prop: MarketProperty, now: datetime) -> float:
    mult = 1.0
    if prop.photo_count > 10:
        mult += 0.1
    if prop.photo_count > 20:
        mult += 0.05
    n_amenities = len(prop.amenities)
    if n_amenities > 10:
        mult += 0.15
    if n_amenities > 20:
        mult += 0.1
    if prop.last_analyzed_at is not None:
        last = prop.last_analyzed_at
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        if now - last <= RECENT_ANALYSIS_WINDOW:
            mult += 0.05
    return min(mult, MAX_QUALITY_MULTIPLIER)


def analyze_market(
    prop: MarketProperty,
    comp_set: Iterable[MarketProperty] | None,
    *,
    now: datetime | None = None,
) -> MarketInsight:
    now = now or datetime.now(timezone.utc)
    try:
        comps = list(comp_set or [])
        rates = [estimate_rate(c) for c in comps]
        avg_rate = round(fmean(rates)) if rates else NO_COMPS_RATE
        occupancies = [c.occupancy_rate for c in comps if c.occupancy_rate]
        occupancy = round(fmean(occupancies)) if occupancies else NO_DATA_OCCUPANCY

        mult = _quality_multiplier(prop, now)
        suggested = round(avg_rate * mult)
        lo, hi = PRICE_BAND
        positioning = "higher" if mult > 1.0 else "competitively"

        return MarketInsight(
            average_daily_rate=avg_rate,
            occupancy_rate=occupancy,
            competitor_count=len(comps),
            market_saturation=_saturation(len(comps)),
            seasonal_trends=SeasonalTrends(**{k: round(avg_rate * m) for k, m in SEASONAL_MULTIPLIERS.items()}),
            price_recommendation=PriceRecommendation(
                suggested=suggested,
                min=round(suggested * lo),
                max=round(suggested * hi),
                reasoning=(
                    f"Based on {len(comps)} similar properties in the area, "
                    f"your property could be priced {positioning}."
                ),
            ),
        )
    except Exception as exc:  # noqa: BLE001
        logger.warning("market analysis failed, using default insight: %s", exc)
        return default_market_insight()


def market_insight_for(
    prop: MarketProperty,
    source: CompSource,
    *,
    limit: int = 20,
    now: datetime | None = None,
) -> MarketInsight:
    """Fetch comparables from `source` and analyze; source failures yield the default insight."""
    try:
        comps = source.find_comparables(prop, limit)
    except Exception as exc:  # noqa: BLE001
        logger.warning("comparable lookup failed, using default insight: %s", exc)
        return default_market_insight()
    return analyze_market(prop, comps, now=now)


# =========================
# Competitor analysis
# =========================


def _analyze_competitor(prop: MarketProperty, my_rate: float, comp: MarketProperty) -> CompetitorAnalysis:
    their_rate = estimate_rate(comp)
    strengths: list[str] = []
    weaknesses: list[str] = []

    if their_rate < my_rate:
        strengths.append("Lower pricing")
    if len(comp.amenities) > len(prop.amenities):
        strengths.append("More amenities")
    if comp.bedrooms and prop.bedrooms and comp.bedrooms > prop.bedrooms:
        strengths.append("More bedrooms")

    if their_rate > my_rate:
        weaknesses.append("Higher pricing")
    if len(comp.amenities) < len(prop.amenities):
        weaknesses.append("Fewer amenities")
    if comp.photo_count < LIMITED_PHOTOS:
        weaknesses.append("Limited photos")

    return CompetitorAnalysis(competitor=comp, estimated_rate=their_rate, strengths=strengths, weaknesses=weaknesses)


def generate_competitor_analysis(prop: MarketProperty, comps: Iterable[MarketProperty]) -> list[CompetitorAnalysis]:
    """Compare the first five comparables against `prop`, in the order given."""
    my_rate = estimate_rate(prop)
    return [_analyze_competitor(prop, my_rate, c) for c in list(comps)[:TOP_COMPETITORS]]


# =========================
# Canonical → market view
# =========================


def market_property_from(data: ProcessedPropertyData, *, id: str | None = None) -> MarketProperty:
    return MarketProperty(
        id=id,
        name=data.basic_info.name,
        property_type=data.basic_info.property_type,
        guest_capacity=data.max_guests if data.max_guests is not None else 2,
        bedrooms=data.bedrooms or 0,
        amenities=list(data.amenities),
        photo_count=len(data.photos),
        price=data.pricing.base_price,
        occupancy_rate=data.performance.occupancy_rate,
    )


class StaticCompSource:
    """CompSource over a fixed list (tests, offline runs)."""

    def __init__(self, comps: Iterable[MarketProperty]) -> None:
        self._comps = list(comps)

    def find_comparables(self, prop: MarketProperty, limit: int) -> list[MarketProperty]:
        return [c for c in self._comps if c.id is None or c.id != prop.id][:limit]


__all__ = [
    "BASE_RATE",
    "PROPERTY_TYPE_FACTORS",
    "PREMIUM_AMENITIES",
    "SEASONAL_MULTIPLIERS",
    "CompSource",
    "StaticCompSource",
    "default_market_insight",
    "estimate_rate",
    "analyze_market",
    "market_insight_for",
    "generate_competitor_analysis",
    "market_property_from",
]
