# src/tools/analysis/prompt.py
"""
Prompt building and response parsing for the diagnostic analysis.

- build_analysis_prompt(data, health, market=None) -> str
    Canonical facts + the deterministic Health Score + an explicit output
    schema. The model is asked for ONE raw JSON object.
- parse_analysis_response(text) -> dict
    Strips ``` / ```json fences, loads JSON, requires an object holding the
    REQUIRED_KEYS. Anything else raises AnalysisParseError.
"""

from __future__ import annotations

import json
import re
from typing import Any

from src.core.errors import AnalysisParseError
from src.schemas.models import HealthScore, MarketInsight, ProcessedPropertyData

REQUIRED_KEYS: tuple[str, ...] = ("executive_summary",)

OUTPUT_SCHEMA = """{
  "executive_summary": string,
  "critical_issues": string[],
  "strengths": string[],
  "estimated_annual_revenue": string,
  "estimated_occupancy_rate": number (0-100),
  "reputation": {
    "current_situation": string,
    "positive_comments": string[],
    "negative_comments": string[],
    "improvement_strategy": string[]
  },
  "infrastructure": {
    "priority_interventions": [
      {"problem": string, "solution": string, "investment": string,
       "priority": "urgent" | "high" | "medium" | "low", "impact": string}
    ]
  },
  "pricing_strategy": {
    "current_analysis": string,
    "recommendations": string[]
  },
  "online_presence": {
    "photo_quality": number (0-100),
    "description_quality": number (0-100),
    "optimization_plan": string[]
  }
}"""

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")


def _facts(data: ProcessedPropertyData) -> dict[str, Any]:
    return {
        "platform": data.platform,
        "name": data.basic_info.name,
        "location": data.basic_info.location,
        "property_type": data.basic_info.property_type,
        "description": data.basic_info.description or "No description",
        "rating_5pt": data.performance.rating,
        "review_count": data.performance.review_count,
        "estimated_occupancy_pct": data.performance.occupancy_rate,
        "price_per_night": data.pricing.base_price,
        "cleaning_fee": data.pricing.cleaning_fee,
        "amenities": data.amenities,
        "photo_count": len(data.photos),
        "bedrooms": data.bedrooms,
        "max_guests": data.max_guests,
        "house_rules": data.policies.house_rules,
        "cancellation_policy": data.policies.cancellation_policy,
        "recent_reviews": data.reviews[:10],
    }


def build_analysis_prompt(
    data: ProcessedPropertyData,
    health: HealthScore,
    market: MarketInsight | None = None,
) -> str:
    sections = [
        "You are a short-term rental and hospitality revenue consultant.",
        "Diagnose the listing below and produce an actionable improvement plan.",
        "",
        "LISTING FACTS (JSON):",
        json.dumps(_facts(data), ensure_ascii=False, indent=2),
        "",
        "HEALTH SCORE (already computed, do not recompute):",
        json.dumps(health.model_dump(mode="json"), ensure_ascii=False),
    ]
    if market is not None:
        sections += [
            "",
            "MARKET BENCHMARK:",
            json.dumps(market.model_dump(mode="json"), ensure_ascii=False),
        ]
    sections += [
        "",
        "Return ONLY a raw JSON object (no code fences, no markdown, no prose) matching:",
        OUTPUT_SCHEMA,
    ]
    return "\n".join(sections)


def strip_code_fences(text: str) -> str:
    s = text.strip()
    if s.startswith("```"):
        s = _FENCE_OPEN.sub("", s, count=1)
        s = _FENCE_CLOSE.sub("", s, count=1)
    return s.strip()


def parse_analysis_response(text: Any) -> dict[str, Any]:
    if not isinstance(text, str) or not text.strip():
        raise AnalysisParseError("analysis provider returned an empty response")
    try:
        loaded = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as exc:
        raise AnalysisParseError(f"analysis response is not valid JSON: {exc.msg}") from exc
    if not isinstance(loaded, dict):
        raise AnalysisParseError("analysis response must be a JSON object")
    missing = [k for k in REQUIRED_KEYS if k not in loaded]
    if missing:
        raise AnalysisParseError(f"analysis response missing keys: {', '.join(missing)}")
    return loaded


__all__ = [
    "REQUIRED_KEYS",
    "OUTPUT_SCHEMA",
    "build_analysis_prompt",
    "strip_code_fences",
    "parse_analysis_response",
]
