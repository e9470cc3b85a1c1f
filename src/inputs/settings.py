# src/inputs/settings.py
"""
Runtime settings for the listing diagnostic pipeline.

All knobs are read from the environment (prefix `LISTING_`) or a local `.env`
file, e.g.:

    LISTING_SCRAPE_PROVIDER=http
    LISTING_SCRAPE_API_URL=https://api.firecrawl.dev/v1/scrape
    LISTING_SCRAPE_API_KEY=...
    LISTING_ANALYSIS_PROVIDER=openai
    LISTING_OPENAI_API_KEY=...
    LISTING_DATABASE_PATH=data/diagnostics.db

`load_settings()` is the startup gate: provider selections whose required
keys are missing raise ConfigurationError before any submission is touched.
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.errors import ConfigurationError

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class PipelineSettings(BaseSettings):
    """Pipeline configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LISTING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Scraping provider
    scrape_provider: Literal["http", "mock"] = Field("http", description="Listing retrieval backend.")
    scrape_api_url: str = Field("https://api.firecrawl.dev/v1/scrape", description="Scrape API endpoint.")
    scrape_api_key: str = Field("", description="Scrape API bearer token.")
    scrape_timeout_s: float = Field(60.0, gt=0, description="Per-call retrieval timeout (seconds).")

    # Analysis provider
    analysis_provider: Literal["openai", "mock"] = Field("openai", description="Generative analysis backend.")
    openai_api_key: str = Field("", description="OpenAI API key.")
    analysis_model: str = Field("gpt-4o-mini", description="Model used for the diagnostic analysis.")
    analysis_timeout_s: float = Field(30.0, gt=0, description="Per-call analysis timeout (seconds).")

    # Orchestration
    max_scrape_attempts: int = Field(2, ge=1, description="Retrieval attempts before manual review.")
    retry_delay_s: float = Field(2.0, ge=0, description="Fixed delay between retrieval attempts (seconds).")
    claim_ttl_s: float = Field(600.0, gt=0, description="Lease length of a processing claim (seconds).")
    job_max_attempts: int = Field(3, ge=1, description="Attempts per downstream job before it is marked failed.")

    # Storage & outputs
    database_path: str = Field("data/diagnostics.db", description="SQLite file (':memory:' for ephemeral).")
    reports_dir: str = Field("reports", description="Directory for generated Markdown reports.")

    # Telemetry & logging
    telemetry_consent: bool = Field(False, description="Whether pipeline telemetry events may be emitted.")
    log_level: str = Field("INFO", description="Logging level.")


def load_settings(**overrides: object) -> PipelineSettings:
    """
    Build settings from env/.env (plus explicit overrides) and validate that the
    selected providers have their credentials.
    """
    try:
        settings = PipelineSettings(**overrides)  # type: ignore[arg-type]
    except ValidationError as exc:
        raise ConfigurationError(f"invalid settings: {exc}") from exc

    missing: list[str] = []
    if settings.scrape_provider == "http":
        if not settings.scrape_api_url:
            missing.append("LISTING_SCRAPE_API_URL")
        if not settings.scrape_api_key:
            missing.append("LISTING_SCRAPE_API_KEY")
    if settings.analysis_provider == "openai" and not settings.openai_api_key:
        missing.append("LISTING_OPENAI_API_KEY")
    if missing:
        raise ConfigurationError(f"missing required configuration: {', '.join(missing)}")
    return settings


def configure_logging(level: str = "INFO") -> None:
    """Setup logging configuration."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


__all__ = ["PipelineSettings", "load_settings", "configure_logging"]
