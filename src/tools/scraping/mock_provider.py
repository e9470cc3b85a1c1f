# src/tools/scraping/mock_provider.py
"""
Mock Scraping Provider

Purpose
-------
Deterministic, network-free provider for tests and local runs.

Design
------
- Payloads are looked up by exact URL, then by platform, then the default.
- `fail_times` makes the first N calls fail (as explicit failures, or by
  raising when `raise_errors=True`), to exercise the retry path.
- Every call is recorded in `calls` so tests can assert retrieval happened
  (or did not).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import requests

from src.schemas.labels import Platform

from .provider_base import ScrapeResponse, ScrapingProvider

SAMPLE_LISTING: dict[str, Any] = {
    "property_name": "Casa Azul Beach Apartment",
    "location": "Florianópolis, Brazil",
    "rating": 4.8,
    "review_count": 127,
    "price_per_night": "R$ 450",
    "property_type": "Entire apartment",
    "amenities": ["Wifi", "Kitchen", "Pool", "Air conditioning", "Free parking"],
    "description": "Bright two-bedroom apartment 50 m from the beach.",
    "recent_reviews": [
        "Amazing location and very clean, host was helpful.",
        "Great value, check-in was easy.",
    ],
    "images": [f"https://img.example.com/casa-azul/{i}.jpg" for i in range(1, 13)],
    "bedrooms": 2,
    "max_guests": 4,
}


class MockScrapingProvider(ScrapingProvider):
    def __init__(
        self,
        payload: Mapping[str, Any] | None = None,
        *,
        by_url: Mapping[str, Mapping[str, Any]] | None = None,
        by_platform: Mapping[Platform, Mapping[str, Any]] | None = None,
        fail_times: int = 0,
        raise_errors: bool = False,
        error: str = "mock scrape failure",
    ) -> None:
        self._payload = dict(payload) if payload is not None else dict(SAMPLE_LISTING)
        self._by_url = dict(by_url or {})
        self._by_platform = dict(by_platform or {})
        self._fail_times = fail_times
        self._raise_errors = raise_errors
        self._error = error
        self.calls: list[tuple[str, Platform]] = []

    def scrape(self, url: str, platform: Platform) -> ScrapeResponse:
        self.calls.append((url, platform))
        if len(self.calls) <= self._fail_times:
            if self._raise_errors:
                raise requests.Timeout(self._error)
            return ScrapeResponse(success=False, error=self._error)

        data = self._by_url.get(url) or self._by_platform.get(platform) or self._payload
        return ScrapeResponse(success=True, data=dict(data))


__all__ = ["SAMPLE_LISTING", "MockScrapingProvider"]
