# src/core/scoring/__init__.py
from __future__ import annotations

from .health import (
    HEALTH_WEIGHTS,
    calculate_health_score,
    categorize_health,
    price_competitiveness,
    score_property,
)

__all__ = [
    "HEALTH_WEIGHTS",
    "calculate_health_score",
    "categorize_health",
    "price_competitiveness",
    "score_property",
]
