# src/tools/analysis/openai_provider.py
"""
OpenAI Analysis Provider

Purpose
-------
Production `AnalysisProvider` backed by the OpenAI SDK. Sends the diagnostic
prompt as a single user message and returns the model's text.

Configuration
-------------
Passed in from PipelineSettings (LISTING_OPENAI_API_KEY, LISTING_ANALYSIS_MODEL,
LISTING_ANALYSIS_TIMEOUT_S). The SDK's own retries are disabled; a failed call
is reported once and the submission goes to manual review.
"""

from __future__ import annotations

import json
import logging

from openai import OpenAI

from .provider_base import AnalysisProvider

logger = logging.getLogger(__name__)


class OpenAIAnalysisProvider(AnalysisProvider):
    def __init__(self, api_key: str, *, model: str = "gpt-4o-mini", timeout_s: float = 30.0) -> None:
        if not api_key:
            raise ValueError("OpenAIAnalysisProvider requires an API key.")
        self._client = OpenAI(api_key=api_key, timeout=timeout_s, max_retries=0)
        self._model = model
        self._timeout_s = timeout_s

    def complete(self, prompt: str) -> str:
        logger.info("requesting analysis from %s", self._model)
        out = self._client.responses.create(
            model=self._model,
            input=[{"role": "user", "content": [{"type": "input_text", "text": prompt}]}],
            timeout=self._timeout_s,
        )
        txt = getattr(out, "output_text", None)
        if isinstance(txt, str) and txt.strip():
            return txt

        # Older SDK response shapes
        try:
            first_output = out.output[0]  # type: ignore[index]
            if first_output.type == "message":
                return "".join(
                    c.text
                    for c in first_output.content
                    if getattr(c, "type", "") == "output_text"  # type: ignore[attr-defined]
                )
        except (AttributeError, IndexError, TypeError):
            pass
        return json.dumps(getattr(out, "output", ""), default=str)


__all__ = ["OpenAIAnalysisProvider"]
