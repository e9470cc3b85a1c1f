# src/core/normalize/quality.py
from __future__ import annotations

from src.schemas.labels import PLACEHOLDER_VALUES
from src.schemas.models import DataQuality, ProcessedPropertyData


def _is_real(value: str | None) -> bool:
    return bool(value and value.strip() and value.strip() not in PLACEHOLDER_VALUES)


def validate_scraped_data(data: ProcessedPropertyData) -> bool:
    """
    Quality gate before analysis: a real name and location, plus at least one
    signal among rating, review count and amenities.
    """
    info = data.basic_info
    if not (_is_real(info.name) and _is_real(info.location)):
        return False
    perf = data.performance
    return perf.rating > 0 or perf.review_count > 0 or bool(data.amenities)


def summarize_data_quality(data: ProcessedPropertyData) -> DataQuality:
    return DataQuality(
        has_name=_is_real(data.basic_info.name),
        has_location=_is_real(data.basic_info.location),
        has_rating=data.performance.rating > 0,
        has_reviews=data.performance.review_count > 0,
        has_amenities=bool(data.amenities),
        has_description=bool(data.basic_info.description.strip()),
        photo_count=len(data.photos),
    )


__all__ = ["validate_scraped_data", "summarize_data_quality"]
