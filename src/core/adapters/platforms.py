# src/core/adapters/platforms.py
"""
Scrape adapters: raw provider payload → IntermediateProperty

Purpose
-------
Turn whatever the scraping provider returned for a platform into the single
intermediate shape consumed by the normalization engine.

Design
------
- The payload is validated as the platform's raw variant (src.schemas.raw);
  field aliases live there, not here.
- One adapter function per variant, selected through the `ADAPTERS` table.
- Values are coerced leniently (numbers from strings, lists from newline text).
  Price, amenities and photos stay in source form for the normalizer.
- `adapt` never raises. Any internal failure yields placeholders plus `error`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from typing import Any

from src.schemas.labels import PLACEHOLDER_LOCATION, PLACEHOLDER_NAME
from src.schemas.models import IntermediateProperty
from src.schemas.raw import (
    AgodaRaw,
    AirbnbRaw,
    BookingRaw,
    ExpediaRaw,
    GenericRaw,
    HotelsRaw,
    RawListing,
    VrboRaw,
    parse_raw_payload,
)

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"-?\d+(?:[.,]\d+)?")

# =========================
# Coercion helpers
# =========================


def _text(v: Any) -> str | None:
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        return str(v)
    if isinstance(v, str):
        s = v.strip()
        return s or None
    return None


def _float(v: Any) -> float | None:
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        return float(v)
    if isinstance(v, str):
        m = _NUMBER.search(v)
        if m:
            return float(m.group(0).replace(",", "."))
    return None


def _int(v: Any) -> int | None:
    if isinstance(v, (list, tuple)):
        return len(v)
    if isinstance(v, str):
        # "1,234 reviews" → 1234
        m = re.search(r"\d[\d,.]*", v)
        if not m:
            return None
        digits = re.sub(r"[^\d]", "", m.group(0))
        return int(digits) if digits else None
    f = _float(v)
    return int(f) if f is not None else None


def _lines(v: Any) -> list[str]:
    if v is None:
        return []
    if isinstance(v, str):
        return [s.strip() for s in v.split("\n") if s.strip()]
    if isinstance(v, (list, tuple)):
        return [s for s in (_text(x) for x in v) if s]
    return []


def _review_texts(v: Any) -> list[str]:
    if not isinstance(v, (list, tuple)):
        return _lines(v)
    out: list[str] = []
    for item in v:
        if isinstance(item, Mapping):
            txt = _text(item.get("text") or item.get("comment") or item.get("review") or item.get("comments"))
        else:
            txt = _text(item)
        if txt:
            out.append(txt)
    return out


def _fees(*pairs: tuple[str, Any], extra: Any = None) -> dict[str, Any]:
    fees: dict[str, Any] = {}
    if isinstance(extra, Mapping):
        fees.update({str(k): v for k, v in extra.items() if v is not None})
    for key, val in pairs:
        if val is not None:
            fees[key] = val
    return fees


# =========================
# Per-variant adapters
# =========================


def _common(raw: RawListing) -> dict[str, Any]:
    return {
        "name": _text(raw.name) or PLACEHOLDER_NAME,
        "location": _text(raw.location) or PLACEHOLDER_LOCATION,
        "property_type": _text(raw.property_type),
        "description": _text(raw.description),
        "rating": _float(raw.rating),
        "rating_scale": raw.RATING_SCALE,
        "review_count": _int(raw.review_count),
        "amenities": raw.amenities,
        "photos": raw.photos,
        "price": raw.price,
        "cleaning_fee": raw.cleaning_fee,
        "additional_fees": _fees(extra=raw.fees),
        "check_in": _text(raw.check_in),
        "check_out": _text(raw.check_out),
        "cancellation_policy": _text(raw.cancellation_policy),
        "house_rules": _lines(raw.house_rules),
        "reviews": _review_texts(raw.recent_reviews),
        "bedrooms": _int(raw.bedrooms),
        "max_guests": _int(raw.max_guests),
        "occupancy_rate": _float(raw.occupancy_rate),
        "available_days": _int(raw.available_days),
        "total_days": _int(raw.total_days),
    }


def adapt_generic(raw: GenericRaw) -> dict[str, Any]:
    return _common(raw)


def adapt_booking(raw: BookingRaw) -> dict[str, Any]:
    """Booking-style hotel payloads (also Agoda, Expedia, Hotels.com). Ratings are 10-point."""
    return _common(raw)


def adapt_airbnb(raw: AirbnbRaw) -> dict[str, Any]:
    fields = _common(raw)
    if fields["rating"] is None and raw.review_scores_rating is not None:
        fields["rating"] = _float(raw.review_scores_rating)
        fields["rating_scale"] = 100
    if fields["location"] == PLACEHOLDER_LOCATION:
        parts = [p for p in (_text(raw.city), _text(raw.country)) if p]
        if parts:
            fields["location"] = ", ".join(parts)
    fields["additional_fees"] = _fees(
        ("service_fee", raw.service_fee),
        ("occupancy_tax", raw.occupancy_tax),
        extra=raw.fees,
    )
    return fields


def adapt_vrbo(raw: VrboRaw) -> dict[str, Any]:
    return _common(raw)


ADAPTERS: Mapping[type[RawListing], Callable[[Any], dict[str, Any]]] = {
    GenericRaw: adapt_generic,
    BookingRaw: adapt_booking,
    AgodaRaw: adapt_booking,
    ExpediaRaw: adapt_booking,
    HotelsRaw: adapt_booking,
    AirbnbRaw: adapt_airbnb,
    VrboRaw: adapt_vrbo,
}

# =========================
# Public entry point
# =========================


def adapt(platform: str | None, raw_payload: Any) -> IntermediateProperty:
    """
    Convert a raw provider payload into an IntermediateProperty.

    Never raises: parse failures return placeholder name/location with the
    failure recorded in `error`, so the quality gate can decide what happens next.
    """
    label = str(platform or "generic")
    raw_data = dict(raw_payload) if isinstance(raw_payload, Mapping) else {}
    try:
        raw = parse_raw_payload(platform, raw_payload)
        fields = ADAPTERS[type(raw)](raw)
        return IntermediateProperty(platform=label, raw_data=raw_data, **fields)
    except Exception as exc:  # noqa: BLE001
        logger.warning("adapter for %s failed: %s", label, exc)
        return IntermediateProperty(
            platform=label,
            raw_data=raw_data,
            error=f"{type(exc).__name__}: {exc}",
        )


__all__ = ["ADAPTERS", "adapt", "adapt_generic", "adapt_booking", "adapt_airbnb", "adapt_vrbo"]
