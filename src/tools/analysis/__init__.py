# src/tools/analysis/__init__.py
"""
Analysis tools package

    from src.tools.analysis import (
        AnalysisProvider,
        MockAnalysisProvider,
        OpenAIAnalysisProvider,
        build_analysis_prompt,
        parse_analysis_response,
        run_analysis,
    )
"""

from __future__ import annotations

from .mock_provider import SAMPLE_ANALYSIS, MockAnalysisProvider
from .openai_provider import OpenAIAnalysisProvider
from .prompt import (
    OUTPUT_SCHEMA,
    build_analysis_prompt,
    parse_analysis_response,
    strip_code_fences,
)
from .provider_base import AnalysisProvider, run_analysis

__all__ = [
    "AnalysisProvider",
    "run_analysis",
    "MockAnalysisProvider",
    "SAMPLE_ANALYSIS",
    "OpenAIAnalysisProvider",
    "OUTPUT_SCHEMA",
    "build_analysis_prompt",
    "parse_analysis_response",
    "strip_code_fences",
]
