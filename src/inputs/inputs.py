# src/inputs/inputs.py
"""
File inputs for the listing diagnostic CLI.

Goals
-----
- File-first batch inputs validated via Pydantic.
- One loader for submission requests and one for offline comparable sets.

Supported JSON shapes
---------------------
Submissions:
1) Single request   {"name": ..., "email": ..., "property_url": ..., "platform": ...}
2) List             [{...}, {...}]
3) Wrapped          {"submissions": [{...}, ...]}

Comparables (for StaticCompSource):
1) List             [{"id": "c1", "property_type": "apartment", "price": 120, ...}, ...]
2) Wrapped          {"comparables": [...]}

Public API
----------
- class InputsLoader:
    - load_requests(path) -> list[SubmissionRequest]
    - load_requests_json(text) -> list[SubmissionRequest]
    - load_comparables(path) -> list[MarketProperty]
- function load_requests(path) -> list[SubmissionRequest]  (convenience)

Notes
-----
- Shape validation only; email/platform/URL rules live in the orchestrator.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from src.schemas.models import MarketProperty, SubmissionRequest

# ----------------------------
# Loader
# ----------------------------


@dataclass(frozen=True)
class InputsLoader:
    """
    Reads JSON from a file or string, unwraps the accepted root shapes and
    validates each item.
    """

    submissions_key: str = "submissions"
    comparables_key: str = "comparables"

    # ---------- Public API ----------

    def load_requests(self, path: str | Path) -> list[SubmissionRequest]:
        raw = self._read_json_file(self._resolve_path(path))
        return self._parse_items(self._unwrap(raw, self.submissions_key), SubmissionRequest)

    def load_requests_json(self, text: str) -> list[SubmissionRequest]:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON payload: {e}") from e
        return self._parse_items(self._unwrap(raw, self.submissions_key), SubmissionRequest)

    def load_comparables(self, path: str | Path) -> list[MarketProperty]:
        raw = self._read_json_file(self._resolve_path(path))
        return self._parse_items(self._unwrap(raw, self.comparables_key), MarketProperty)

    # ---------- Internals ----------

    def _resolve_path(self, path: str | Path) -> Path:
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Inputs file not found: {p}")
        return p

    def _read_json_file(self, p: Path) -> Any:
        if p.suffix.lower() != ".json":
            raise ValueError(f"Unsupported inputs format for {p.name}; only .json is supported.")
        try:
            return json.loads(p.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {p}: {e}") from e

    def _unwrap(self, raw: Any, key: str) -> list[Any]:
        if isinstance(raw, dict) and key in raw:
            raw = raw[key]
        if isinstance(raw, dict):
            return [raw]
        if isinstance(raw, list):
            return raw
        raise ValueError(f"Expected an object or a list, got {type(raw).__name__}")

    def _parse_items(self, items: list[Any], model: type[BaseModel]) -> list[Any]:
        out = []
        for i, item in enumerate(items):
            try:
                out.append(model.model_validate(item))
            except ValidationError as e:
                raise ValueError(f"Item {i} failed validation:\n{e}") from e
        return out


# ----------------------------
# Convenience function
# ----------------------------


def load_requests(path: str | Path) -> list[SubmissionRequest]:
    """Convenience wrapper for one-shot callers."""
    return InputsLoader().load_requests(path)


__all__ = ["InputsLoader", "load_requests"]
