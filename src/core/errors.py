# src/core/errors.py
"""
Typed errors + utilities for the diagnostic pipeline.

Exports
-------
- PipelineError (base) and its subclasses:
  InputRejectedError, TransientProviderError, DataQualityError,
  AnalysisParseError, PersistenceError, ConfigurationError,
  ClaimConflictError, InvalidTransitionError
- PROVIDER_ERRORS
- classify_provider_error(exc)
- provider_error_guard(wrap=None)

Every error carries a `reason` (ReasonCode) so the orchestrator can persist a
machine-checkable cause next to the human-readable message.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import requests

from src.schemas.labels import ReasonCode

# =========================
# Exception types
# =========================


class PipelineError(RuntimeError):
    """Base class for diagnostic pipeline failures."""

    reason: ReasonCode = ReasonCode.unexpected_error

    def __init__(self, message: str = "", *, reason: ReasonCode | None = None) -> None:
        super().__init__(message)
        if reason is not None:
            self.reason = reason

    @property
    def message(self) -> str:
        return str(self)


class InputRejectedError(PipelineError):
    """Malformed request or a URL known to be unprocessable (never retried)."""

    reason = ReasonCode.incompatible_url


class TransientProviderError(PipelineError):
    """Retrieval or analysis call failed or timed out (retried up to the cap)."""

    reason = ReasonCode.provider_failure


class DataQualityError(PipelineError):
    """Retrieval succeeded but the canonical data failed the quality gate."""

    reason = ReasonCode.insufficient_data_quality


class AnalysisParseError(PipelineError):
    """Analysis provider response was missing or not valid JSON for the schema."""

    reason = ReasonCode.analysis_failure


class PersistenceError(PipelineError):
    """The submission store could not read or write a row."""

    reason = ReasonCode.persistence_failure


class ConfigurationError(PipelineError):
    """Required configuration is missing or invalid (fails fast at startup)."""


class ClaimConflictError(PipelineError):
    """Another processor holds an unexpired claim on the submission."""


class InvalidTransitionError(PipelineError):
    """A status change not allowed by the submission state machine."""


PROVIDER_ERRORS = (
    TransientProviderError,
    AnalysisParseError,
)

# =========================
# Classification helpers
# =========================


def classify_provider_error(exc: Exception) -> PipelineError:
    """
    Map arbitrary exceptions raised inside a provider call to a typed PipelineError.

    Heuristics:
      - PipelineError subclasses → passed through
      - requests.* errors, TimeoutError, ConnectionError → TransientProviderError
      - json.JSONDecodeError / ValueError → AnalysisParseError
      - Fallback → TransientProviderError
    """
    if isinstance(exc, PipelineError):
        return exc

    if isinstance(exc, requests.RequestException):
        return TransientProviderError(f"{type(exc).__name__}: {exc}")

    if isinstance(exc, (TimeoutError, ConnectionError)):
        return TransientProviderError(f"{type(exc).__name__}: {exc}")

    # json.JSONDecodeError is a ValueError subclass
    if isinstance(exc, ValueError):
        return AnalysisParseError(f"{type(exc).__name__}: {exc}")

    return TransientProviderError(f"{type(exc).__name__}: {exc}")


@contextmanager
def provider_error_guard(wrap: type[PipelineError] | None = None) -> Iterator[None]:
    """
    Context manager to normalize unexpected exceptions from provider internals.

    With `wrap`, every failure that is not already a `wrap` instance is
    re-raised as `wrap` instead of being classified.
    """
    try:
        yield
    except Exception as exc:  # noqa: BLE001
        if wrap is not None:
            if isinstance(exc, wrap):
                raise
            raise wrap(f"{type(exc).__name__}: {exc}") from exc
        if isinstance(exc, PipelineError):
            raise
        raise classify_provider_error(exc) from exc


__all__ = [
    "PipelineError",
    "InputRejectedError",
    "TransientProviderError",
    "DataQualityError",
    "AnalysisParseError",
    "PersistenceError",
    "ConfigurationError",
    "ClaimConflictError",
    "InvalidTransitionError",
    "PROVIDER_ERRORS",
    "classify_provider_error",
    "provider_error_guard",
]
