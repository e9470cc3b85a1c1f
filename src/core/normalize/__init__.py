# src/core/normalize/__init__.py
from __future__ import annotations

from typing import Any

from src.core.adapters import adapt
from src.schemas.models import ProcessedPropertyData

from .engine import GENERIC, NORMALIZERS, normalize, normalize_generic
from .extractors import (
    estimate_occupancy,
    extract_amenities,
    extract_photos,
    extract_price,
    normalize_rating,
)
from .quality import summarize_data_quality, validate_scraped_data

__all__ = [
    "GENERIC",
    "NORMALIZERS",
    "normalize",
    "normalize_generic",
    "normalize_payload",
    "estimate_occupancy",
    "extract_amenities",
    "extract_photos",
    "extract_price",
    "normalize_rating",
    "summarize_data_quality",
    "validate_scraped_data",
]


def normalize_payload(platform: str | None, raw_payload: Any) -> ProcessedPropertyData:
    """
    Convenience facade:
      raw provider payload → adapt() → normalize()
    """
    return normalize(platform, adapt(platform, raw_payload))
