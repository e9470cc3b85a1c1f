# tests/unit/test_analysis_prompt.py
import json

import pytest

from src.core.errors import AnalysisParseError, TransientProviderError
from src.core.scoring import score_property
from src.market.intelligence import default_market_insight
from src.tools.analysis import (
    OUTPUT_SCHEMA,
    SAMPLE_ANALYSIS,
    MockAnalysisProvider,
    build_analysis_prompt,
    parse_analysis_response,
    run_analysis,
    strip_code_fences,
)
from tests.utils import make_processed


@pytest.mark.parametrize(
    "raw",
    [
        '{"a": 1}',
        '```json\n{"a": 1}\n```',
        '```JSON\n{"a": 1}```',
        '  ```\n{"a": 1}\n```  ',
    ],
)
def test_strip_code_fences(raw):
    assert json.loads(strip_code_fences(raw)) == {"a": 1}


@pytest.mark.parametrize(
    "raw",
    [None, "", "   ", "not json", "[1, 2]", '{"strengths": []}', "```json\n{broken\n```"],
)
def test_unusable_responses_raise(raw):
    with pytest.raises(AnalysisParseError):
        parse_analysis_response(raw)


def test_fenced_response_parses():
    assert parse_analysis_response(MockAnalysisProvider().complete("x")) == SAMPLE_ANALYSIS


def test_prompt_carries_facts_score_and_schema():
    data = make_processed()
    health = score_property(data)
    prompt = build_analysis_prompt(data, health)

    assert "Casa Azul Beach Apartment" in prompt
    assert '"photo_count": 6' in prompt
    assert f'"total": {health.total}' in prompt
    assert OUTPUT_SCHEMA in prompt
    assert "MARKET BENCHMARK" not in prompt

    with_market = build_analysis_prompt(data, health, default_market_insight())
    assert "MARKET BENCHMARK" in with_market


def test_run_analysis_classifies_failures():
    provider = MockAnalysisProvider()
    assert run_analysis(provider, "prompt")["executive_summary"]
    assert provider.prompts == ["prompt"]

    with pytest.raises(TransientProviderError):
        run_analysis(MockAnalysisProvider(error=TimeoutError("slow")), "prompt")
    with pytest.raises(AnalysisParseError):
        run_analysis(MockAnalysisProvider(response="I cannot help with that."), "prompt")
