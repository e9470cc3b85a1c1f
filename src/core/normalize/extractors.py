# src/core/normalize/extractors.py
"""
Field extraction heuristics shared by all platform normalizers.

- extract_price("€100,50") -> 100.5 ; None when no valid number remains
- extract_amenities(list[str] | list[{name|title}] | {flag: bool}) -> list[str]
- extract_photos(list[str | {url|src}]) -> list[str]
- normalize_rating(value, scale) -> float on the 5-point scale
- estimate_occupancy(review_count, rating, ...) -> percent
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from typing import Any

_PRICE_CHARS = re.compile(r"[^\d.,]")

# (min reviews, min rating, occupancy %) checked top-down; strict inequalities.
OCCUPANCY_TIERS: tuple[tuple[int, float | None, float], ...] = (
    (50, 4.0, 75.0),
    (20, 3.5, 65.0),
    (10, None, 55.0),
)
OCCUPANCY_FLOOR = 45.0
DEFAULT_WINDOW_DAYS = 365


def _dedupe(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for it in items:
        if it not in seen:
            seen.add(it)
            out.append(it)
    return out


def extract_price(value: Any) -> float | None:
    """
    Parse a price from a number or a currency string.

    Keeps only digits, comma and dot. A comma is the decimal separator only when
    no dot is present; otherwise commas are thousands separators and dropped.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        f = float(value)
        return f if math.isfinite(f) else None
    if not isinstance(value, str):
        return None

    cleaned = _PRICE_CHARS.sub("", value)
    if "," in cleaned and "." not in cleaned:
        cleaned = cleaned.replace(",", ".")
    else:
        cleaned = cleaned.replace(",", "")
    try:
        f = float(cleaned)
    except ValueError:
        return None
    return f if math.isfinite(f) else None


def extract_amenities(value: Any) -> list[str]:
    if isinstance(value, Mapping):
        return _dedupe(str(k).strip() for k, v in value.items() if v and str(k).strip())
    if not isinstance(value, (list, tuple)):
        return []
    names: list[str] = []
    for item in value:
        if isinstance(item, str):
            name = item
        elif isinstance(item, Mapping):
            name = item.get("name") or item.get("title") or ""
        else:
            continue
        name = str(name).strip()
        if name:
            names.append(name)
    return _dedupe(names)


def extract_photos(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    urls: list[str] = []
    for item in value:
        if isinstance(item, str):
            url = item
        elif isinstance(item, Mapping):
            url = item.get("url") or item.get("src") or ""
        else:
            continue
        url = str(url).strip()
        if url:
            urls.append(url)
    return _dedupe(urls)


def normalize_rating(value: float | None, scale: int = 5) -> float:
    """Convert a rating on a 5/10/100-point scale to the 5-point scale (0 when unknown)."""
    if value is None or not math.isfinite(value) or value <= 0:
        return 0.0
    factor = {100: 20.0, 10: 2.0}.get(scale, 1.0)
    return round(min(value / factor, 5.0), 2)


def estimate_occupancy(
    review_count: int | None,
    rating: float | None,
    *,
    occupancy_rate: float | None = None,
    available_days: int | None = None,
    total_days: int | None = None,
) -> float:
    """
    Occupancy percent for a listing.

    Order of precedence: explicit occupancy_rate (fractions ≤ 1 are scaled to
    percent), availability window ((total - available) / total), then the
    review/rating tiers.
    """
    if occupancy_rate is not None and occupancy_rate >= 0:
        pct = occupancy_rate * 100.0 if occupancy_rate <= 1.0 else occupancy_rate
        return min(pct, 100.0)

    if available_days is not None:
        total = total_days or DEFAULT_WINDOW_DAYS
        if total > 0:
            booked = max(total - available_days, 0)
            return float(round(min(booked / total, 1.0) * 100.0))

    reviews = review_count or 0
    score = rating or 0.0
    for min_reviews, min_rating, pct in OCCUPANCY_TIERS:
        if reviews > min_reviews and (min_rating is None or score > min_rating):
            return pct
    return OCCUPANCY_FLOOR


__all__ = [
    "OCCUPANCY_TIERS",
    "OCCUPANCY_FLOOR",
    "extract_price",
    "extract_amenities",
    "extract_photos",
    "normalize_rating",
    "estimate_occupancy",
]
