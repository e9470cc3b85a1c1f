# src/tools/analysis/provider_base.py
"""
Analysis Provider Interface

Purpose
-------
Provider-agnostic contract for the generative diagnostic step: send a prompt,
get back text that should contain one JSON object.

Public API
----------
class AnalysisProvider(Protocol):
    def complete(self, prompt: str) -> str

def run_analysis(provider, prompt) -> dict[str, Any]
"""

from __future__ import annotations

from typing import Any, Protocol

from src.core.errors import provider_error_guard

from .prompt import parse_analysis_response


class AnalysisProvider(Protocol):
    def complete(self, prompt: str) -> str: ...


def run_analysis(provider: AnalysisProvider, prompt: str) -> dict[str, Any]:
    """
    One provider call, parsed. Raises TransientProviderError for call failures
    and AnalysisParseError for unparseable responses; neither is retried here.
    """
    with provider_error_guard():
        text = provider.complete(prompt)
    return parse_analysis_response(text)


__all__ = ["AnalysisProvider", "run_analysis"]
