# src/tools/scraping/__init__.py
"""
Scraping tools package

    from src.tools.scraping import (
        ScrapingProvider,
        ScrapeResponse,
        HttpScrapingProvider,
        MockScrapingProvider,
        fetch_listing,
    )
"""

from __future__ import annotations

from .http_provider import LISTING_SCHEMA, HttpScrapingProvider
from .mock_provider import SAMPLE_LISTING, MockScrapingProvider
from .provider_base import ScrapeResponse, ScrapingProvider, fetch_listing

__all__ = [
    "ScrapingProvider",
    "ScrapeResponse",
    "fetch_listing",
    "HttpScrapingProvider",
    "LISTING_SCHEMA",
    "MockScrapingProvider",
    "SAMPLE_LISTING",
]
