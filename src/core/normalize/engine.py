# src/core/normalize/engine.py
"""
Normalization Engine

Purpose
-------
Convert an `IntermediateProperty` into the canonical `ProcessedPropertyData`.

Design
------
- Dispatch is case-insensitive on the platform label; unknown platforms use
  the generic normalizer.
- Platform normalizers differ only in their fallback property type; all
  heuristics live in `extractors`.
- Pure: the same intermediate input always yields an identical result.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from functools import partial
from typing import Any

from src.schemas.labels import PLACEHOLDER_LOCATION, PLACEHOLDER_NAME, Platform
from src.schemas.models import (
    BasicInfo,
    IntermediateProperty,
    Performance,
    Policies,
    Pricing,
    ProcessedPropertyData,
)

from .extractors import (
    estimate_occupancy,
    extract_amenities,
    extract_photos,
    extract_price,
    normalize_rating,
)

GENERIC = "generic"

_DISCOUNT_KEYS = ("weekly_discount", "monthly_discount", "early_bird_discount", "last_minute_discount")


def _discounts(raw: Mapping[str, Any]) -> dict[str, float]:
    out: dict[str, float] = {}
    block = raw.get("discounts")
    if isinstance(block, Mapping):
        for k, v in block.items():
            val = extract_price(v)
            if val is not None:
                out[str(k)] = val
    for key in _DISCOUNT_KEYS:
        val = extract_price(raw.get(key))
        if val is not None:
            out[key.removesuffix("_discount")] = val
    return out


def _build(item: IntermediateProperty, *, platform: str, default_type: str) -> ProcessedPropertyData:
    rating = normalize_rating(item.rating, item.rating_scale)
    review_count = max(item.review_count or 0, 0)
    base_price = extract_price(item.price)
    if base_price is not None and base_price < 0:
        base_price = None

    occupancy = estimate_occupancy(
        review_count,
        item.rating,
        occupancy_rate=item.occupancy_rate,
        available_days=item.available_days,
        total_days=item.total_days,
    )

    fees = {k: v for k, v in ((k, extract_price(v)) for k, v in item.additional_fees.items()) if v is not None and v >= 0}
    cleaning_fee = extract_price(item.cleaning_fee)

    return ProcessedPropertyData(
        platform=platform,
        basic_info=BasicInfo(
            name=(item.name or "").strip() or PLACEHOLDER_NAME,
            location=(item.location or "").strip() or PLACEHOLDER_LOCATION,
            property_type=item.property_type or default_type,
            description=item.description or "",
        ),
        performance=Performance(
            rating=rating,
            review_count=review_count,
            occupancy_rate=occupancy,
            average_daily_rate=base_price,
        ),
        amenities=extract_amenities(item.amenities),
        photos=extract_photos(item.photos),
        pricing=Pricing(
            base_price=base_price,
            cleaning_fee=cleaning_fee if cleaning_fee is not None and cleaning_fee >= 0 else None,
            additional_fees=fees,
            discounts=_discounts(item.raw_data),
        ),
        policies=Policies(
            check_in=item.check_in,
            check_out=item.check_out,
            cancellation_policy=item.cancellation_policy,
            house_rules=list(item.house_rules),
        ),
        bedrooms=item.bedrooms if item.bedrooms is not None and item.bedrooms >= 0 else None,
        max_guests=item.max_guests if item.max_guests is not None and item.max_guests >= 0 else None,
        reviews=list(item.reviews),
        raw_data=dict(item.raw_data),
    )


Normalizer = Callable[[IntermediateProperty], ProcessedPropertyData]

NORMALIZERS: Mapping[str, Normalizer] = {
    Platform.booking.value: partial(_build, platform=Platform.booking.value, default_type="Hotel"),
    Platform.agoda.value: partial(_build, platform=Platform.agoda.value, default_type="Hotel"),
    Platform.expedia.value: partial(_build, platform=Platform.expedia.value, default_type="Hotel"),
    Platform.hotels.value: partial(_build, platform=Platform.hotels.value, default_type="Hotel"),
    Platform.airbnb.value: partial(_build, platform=Platform.airbnb.value, default_type="Entire place"),
    Platform.vrbo.value: partial(_build, platform=Platform.vrbo.value, default_type="Vacation Rental"),
}

normalize_generic: Normalizer = partial(_build, platform=GENERIC, default_type="Property")


def normalize(platform: str | Platform | None, intermediate: IntermediateProperty) -> ProcessedPropertyData:
    """Dispatch to the platform normalizer (case-insensitive), generic otherwise."""
    key = platform.value if isinstance(platform, Platform) else str(platform or "").strip().lower()
    return NORMALIZERS.get(key, normalize_generic)(intermediate)


__all__ = ["GENERIC", "NORMALIZERS", "normalize", "normalize_generic"]
