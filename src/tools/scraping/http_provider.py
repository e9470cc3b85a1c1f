# src/tools/scraping/http_provider.py
"""
HTTP Scraping Provider

Purpose
-------
Production `ScrapingProvider` for a hosted scrape-and-extract API (Firecrawl
style): POST the listing URL with an extraction schema, receive structured
JSON back.

Request
-------
POST {api_url}
Authorization: Bearer {api_key}
{"url", "formats": ["extract"], "onlyMainContent": true, "waitFor", "timeout",
 "extract": {"schema": {...}}}

Response
--------
{"success": true, "data": {"extract": {...listing fields...}}}
Anything else is reported as ScrapeResponse(success=False).
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from src.schemas.labels import Platform

from .provider_base import ScrapeResponse, ScrapingProvider

logger = logging.getLogger(__name__)

WAIT_FOR_MS = 3000

_STRING = {"type": "string"}
_NUMBER = {"type": "number"}
_STRINGS = {"type": "array", "items": {"type": "string"}}

# Fields requested for every platform; ratings stay on the platform's own scale.
LISTING_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "property_name": _STRING,
        "location": _STRING,
        "rating": _NUMBER,
        "review_count": _NUMBER,
        "price_per_night": _STRING,
        "property_type": _STRING,
        "amenities": _STRINGS,
        "description": _STRING,
        "recent_reviews": _STRINGS,
        "images": _STRINGS,
        "host_info": _STRING,
        "bedrooms": _NUMBER,
        "max_guests": _NUMBER,
        "house_rules": _STRINGS,
        "check_in": _STRING,
        "check_out": _STRING,
        "cancellation_policy": _STRING,
    },
    "required": ["property_name"],
}

_RATING_HINTS: dict[Platform, str] = {
    Platform.booking: "Rating is the guest review score on a 0-10 scale.",
    Platform.agoda: "Rating is the guest review score on a 0-10 scale.",
    Platform.expedia: "Rating is the guest review score on a 0-10 scale.",
    Platform.hotels: "Rating is the guest review score on a 0-10 scale.",
    Platform.airbnb: "Rating is the overall star rating on a 0-5 scale.",
    Platform.vrbo: "Rating is the average rating on a 0-5 scale.",
}


class HttpScrapingProvider(ScrapingProvider):
    def __init__(
        self,
        api_url: str,
        api_key: str,
        *,
        timeout_s: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        if not api_url or not api_key:
            raise ValueError("HttpScrapingProvider requires api_url and api_key.")
        self._api_url = api_url
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._session = session or requests.Session()

    def build_request(self, url: str, platform: Platform) -> dict[str, Any]:
        return {
            "url": url,
            "formats": ["extract"],
            "onlyMainContent": True,
            "waitFor": WAIT_FOR_MS,
            "timeout": int(self._timeout_s * 1000),
            "extract": {
                "schema": LISTING_SCHEMA,
                "prompt": (
                    f"Extract the {platform.value} listing details. "
                    + _RATING_HINTS.get(platform, "")
                ).strip(),
            },
        }

    def scrape(self, url: str, platform: Platform) -> ScrapeResponse:
        logger.info("scraping %s listing %s", platform.value, url)
        resp = self._session.post(
            self._api_url,
            json=self.build_request(url, platform),
            headers={"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"},
            timeout=self._timeout_s,
        )
        if resp.status_code >= 400:
            return ScrapeResponse(success=False, error=f"scrape API returned HTTP {resp.status_code}")

        try:
            body = resp.json()
        except ValueError:
            return ScrapeResponse(success=False, error="scrape API returned a non-JSON body")

        if not isinstance(body, dict) or not body.get("success"):
            msg = body.get("error") if isinstance(body, dict) else None
            return ScrapeResponse(success=False, error=str(msg or "scrape API reported a failure"))

        data = body.get("data") or {}
        extracted = data.get("extract") or data.get("json") if isinstance(data, dict) else None
        if not isinstance(extracted, dict) or not extracted:
            return ScrapeResponse(success=False, error="scrape API returned no extracted listing data")
        return ScrapeResponse(success=True, data=extracted)


__all__ = ["LISTING_SCHEMA", "HttpScrapingProvider"]
