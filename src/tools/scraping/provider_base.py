# src/tools/scraping/provider_base.py
"""
Scraping Provider Interface

Purpose
-------
Minimal, provider-agnostic contract for retrieving a listing page as a
structured payload. The pipeline only depends on this module.

Design
------
- Protocol `ScrapingProvider.scrape(url, platform) -> ScrapeResponse`.
- A provider reports "the page was reached but nothing usable came back" as
  `ScrapeResponse(success=False, error=...)`; transport failures may raise.
- `fetch_listing` turns both kinds of failure into `TransientProviderError`.

Public API
----------
class ScrapeResponse(BaseModel)
class ScrapingProvider(Protocol)
def fetch_listing(provider, url, platform) -> dict[str, Any]
"""

from __future__ import annotations

from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from src.core.errors import TransientProviderError, provider_error_guard
from src.schemas.labels import Platform


class ScrapeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    data: dict[str, Any] | None = Field(None, description="Provider-shaped listing payload.")
    error: str | None = Field(None, description="Provider failure message when success is False.")


class ScrapingProvider(Protocol):
    def scrape(self, url: str, platform: Platform) -> ScrapeResponse: ...


def fetch_listing(provider: ScrapingProvider, url: str, platform: Platform) -> dict[str, Any]:
    """
    Call the provider once and return its payload.
    Raises TransientProviderError for explicit failures, empty payloads and
    any exception raised by the provider.
    """
    with provider_error_guard(TransientProviderError):
        resp = provider.scrape(url, platform)
    if not resp.success:
        raise TransientProviderError(resp.error or "scraping provider reported a failure")
    if not resp.data:
        raise TransientProviderError("scraping provider returned an empty payload")
    return dict(resp.data)


__all__ = ["ScrapeResponse", "ScrapingProvider", "fetch_listing"]
