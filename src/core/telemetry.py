# src/core/telemetry.py
"""
Consent-gated pipeline telemetry.

The consent decision is a constructor argument (from
`PipelineSettings.telemetry_consent`); there is no process-wide flag. Without
consent `emit` is a no-op. Events go to a caller-supplied sink, or to the
`listing.telemetry` logger at DEBUG.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from src.schemas.models import utcnow

logger = logging.getLogger("listing.telemetry")

Sink = Callable[[dict[str, Any]], None]

# Never forwarded, whatever the caller passes.
_PRIVATE_KEYS = frozenset({"email", "name", "api_key", "property_url"})


class TelemetryEmitter:
    def __init__(self, consent: bool, sink: Sink | None = None) -> None:
        self._consent = consent
        self._sink = sink

    @property
    def enabled(self) -> bool:
        return self._consent

    def emit(self, event: str, **props: Any) -> bool:
        """Send one event. Returns False when consent is not given."""
        if not self._consent:
            return False
        payload = {
            "event": event,
            "at": utcnow().isoformat(),
            **{k: v for k, v in props.items() if k not in _PRIVATE_KEYS},
        }
        if self._sink is not None:
            try:
                self._sink(payload)
            except Exception:  # noqa: BLE001
                logger.warning("telemetry sink failed for %s", event, exc_info=True)
                return False
        else:
            logger.debug("telemetry %s", payload)
        return True


__all__ = ["TelemetryEmitter"]
