# src/tools/analysis/mock_provider.py
"""
Mock Analysis Provider

Deterministic, network-free `AnalysisProvider`. By default it answers with a
fenced JSON object (the shape real models often return) so the fence
stripping path is exercised too. Set `response` to any text, or `error` to
an exception instance to raise, to drive failure paths in tests.
"""

from __future__ import annotations

import json
from typing import Any

from .provider_base import AnalysisProvider

SAMPLE_ANALYSIS: dict[str, Any] = {
    "executive_summary": "Well-rated listing with room to grow direct revenue.",
    "critical_issues": ["Few photos of the bedrooms"],
    "strengths": ["Strong guest rating", "Close to the beach"],
    "estimated_annual_revenue": "R$ 120,000",
    "estimated_occupancy_rate": 72,
    "reputation": {
        "current_situation": "Consistently positive reviews.",
        "positive_comments": ["Clean", "Great location"],
        "negative_comments": [],
        "improvement_strategy": ["Ask every guest for a review at checkout"],
    },
    "infrastructure": {"priority_interventions": []},
    "pricing_strategy": {
        "current_analysis": "Priced in line with comparable listings.",
        "recommendations": ["Raise weekend rates in summer"],
    },
    "online_presence": {
        "photo_quality": 70,
        "description_quality": 65,
        "optimization_plan": ["Add twilight exterior photos"],
    },
}


class MockAnalysisProvider(AnalysisProvider):
    def __init__(
        self,
        response: str | None = None,
        *,
        error: Exception | None = None,
        fenced: bool = True,
    ) -> None:
        if response is None:
            body = json.dumps(SAMPLE_ANALYSIS, ensure_ascii=False)
            response = f"```json\n{body}\n```" if fenced else body
        self._response = response
        self._error = error
        self.prompts: list[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self._error is not None:
            raise self._error
        return self._response


__all__ = ["SAMPLE_ANALYSIS", "MockAnalysisProvider"]
