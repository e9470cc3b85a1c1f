# src/core/scoring/health.py
"""
Health Score: composite 0-100 listing quality score.

Six components with fixed weight ceilings:

| component              | formula                                              | cap |
|------------------------|------------------------------------------------------|-----|
| classificacao          | rating/5 x 25                                        | 25  |
| presenca_digital       | photos 10 + description 5 + min(reviews/10, 5)       | 20  |
| performance_financeira | price_competitiveness x 20                           | 20  |
| infraestrutura         | 12 if rating ≥ 4, 8 if ≥ 3, else 4                   | 12  |
| experiencia_hospede    | 8 if photos and description, else 5                  | 8   |
| gestao_reputacao       | 8 if reviews > 10, 6 if > 5, else 3                  | 8   |

Components are rounded to 2 decimals and `total` is the half-up rounding of
their sum, so the rounded breakdown always adds up to the total.
"""

from __future__ import annotations

import math

from src.schemas.labels import HealthCategory
from src.schemas.models import HealthBreakdown, HealthScore, ProcessedPropertyData

HEALTH_WEIGHTS: dict[str, float] = {
    "classificacao": 25.0,
    "presenca_digital": 20.0,
    "performance_financeira": 20.0,
    "infraestrutura": 12.0,
    "experiencia_hospede": 8.0,
    "gestao_reputacao": 8.0,
}

# (min total, category), checked top-down
CATEGORY_THRESHOLDS: tuple[tuple[int, HealthCategory], ...] = (
    (85, HealthCategory.excellent),
    (70, HealthCategory.good),
    (50, HealthCategory.medium),
)

NEUTRAL_PRICE_COMPETITIVENESS = 0.5


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def categorize_health(total: int) -> HealthCategory:
    for floor, category in CATEGORY_THRESHOLDS:
        if total >= floor:
            return category
    return HealthCategory.critical


def calculate_health_score(
    rating: float,
    review_count: int,
    has_photos: bool,
    has_description: bool,
    price_competitiveness: float,
) -> HealthScore:
    """Pure; inputs outside their domain are clamped (rating to [0,5], competitiveness to [0,1])."""
    rating = _clamp(float(rating or 0.0), 0.0, 5.0)
    reviews = max(int(review_count or 0), 0)
    pc = _clamp(float(price_competitiveness or 0.0), 0.0, 1.0)

    raw = {
        "classificacao": rating / 5.0 * 25.0,
        "presenca_digital": (10.0 if has_photos else 0.0) + (5.0 if has_description else 0.0) + min(reviews / 10.0, 5.0),
        "performance_financeira": pc * 20.0,
        "infraestrutura": 12.0 if rating >= 4 else 8.0 if rating >= 3 else 4.0,
        "experiencia_hospede": 8.0 if (has_photos and has_description) else 5.0,
        "gestao_reputacao": 8.0 if reviews > 10 else 6.0 if reviews > 5 else 3.0,
    }
    capped = {k: round(min(v, HEALTH_WEIGHTS[k]), 2) for k, v in raw.items()}
    breakdown = HealthBreakdown(**capped)

    total = int(_clamp(_round_half_up(sum(breakdown.values())), 0, 100))
    return HealthScore(total=total, breakdown=breakdown, category=categorize_health(total))


def price_competitiveness(base_price: float | None, market_rate: float | None) -> float:
    """
    1.0 when the listing price equals the market rate, falling linearly with the
    relative gap (0 at a 100% gap). Neutral 0.5 when either side is unknown.
    """
    if not base_price or not market_rate or base_price <= 0 or market_rate <= 0:
        return NEUTRAL_PRICE_COMPETITIVENESS
    return round(_clamp(1.0 - abs(base_price - market_rate) / market_rate, 0.0, 1.0), 4)


def score_property(data: ProcessedPropertyData, market_rate: float | None = None) -> HealthScore:
    """Health Score for a canonical listing, optionally benchmarked against a market rate."""
    return calculate_health_score(
        rating=data.performance.rating,
        review_count=data.performance.review_count,
        has_photos=bool(data.photos),
        has_description=bool(data.basic_info.description.strip()),
        price_competitiveness=price_competitiveness(data.pricing.base_price, market_rate),
    )


__all__ = [
    "HEALTH_WEIGHTS",
    "CATEGORY_THRESHOLDS",
    "categorize_health",
    "calculate_health_score",
    "price_competitiveness",
    "score_property",
]
