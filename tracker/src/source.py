"""
Telemetry sources: the "fetch latest sample" collaborator of the engine.

Two implementations of the TelemetrySource protocol:

- HttpTelemetrySource: GETs the JSON document the tracker publishes (for
  example a Firebase realtime-database ``.json`` URL) with httpx. Returns
  the decoded object, or None when the document is empty or any error
  occurs. Errors are logged and never propagate to the tick.
- SimulatedTelemetrySource: stands in for the device. Produces plausible
  random readings stamped with the current time and lets the GPS position
  drift slowly around a home location.

Neither source retries on its own: the next scheduled tick is the retry.

CHANGELOG:
- 2026-10-16: Add simulated device source for demo deployments (STORY-111)
- 2026-10-15: Initial creation (STORY-106)

TODO:
- None
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S: float = 5.0
"""Timeout for a single telemetry GET in seconds."""

HOME_LAT: float = 51.5074
HOME_LNG: float = -0.1278

GPS_DRIFT_DEG: float = 1.0 / 2500.0
"""Maximum GPS step per simulated reading, in degrees."""


class TelemetrySource(Protocol):
    """Anything that can fetch the latest raw telemetry payload."""

    async def fetch(self) -> dict[str, object] | None: ...


# ---------------------------------------------------------------------------
# HTTP source
# ---------------------------------------------------------------------------


class HttpTelemetrySource:
    """Fetches the latest telemetry document over HTTP(S).

    Tracks consecutive failures so that a dead feed is logged once at
    warning level and then at debug level, instead of every two seconds.

    Args:
        url: URL of the JSON document (must be http or https).
        timeout_s: Request timeout in seconds.
        transport: Optional httpx transport (used by tests).

    Raises:
        ValueError: If *url* is not an http(s) URL.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not url.lower().startswith(("http://", "https://")):
            raise ValueError(f"Telemetry URL must be http(s) (got: '{url}')")
        self._url = url
        self._timeout_s = timeout_s
        self._transport = transport
        self._consecutive_failures: int = 0

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    async def fetch(self) -> dict[str, object] | None:
        """GET the telemetry document.

        Returns:
            The decoded JSON object, or None when the document is null /
            not an object, the server answers with an error status, or the
            request fails.
        """
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_s,
                transport=self._transport,
            ) as client:
                response = await client.get(self._url)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            self._record_failure(exc)
            return None

        if self._consecutive_failures:
            logger.info(
                "Telemetry fetch recovered after %d failures",
                self._consecutive_failures,
            )
        self._consecutive_failures = 0

        if data is None:
            logger.debug("Telemetry document is empty")
            return None
        if not isinstance(data, dict):
            logger.warning("Telemetry document is not an object (%s)", type(data).__name__)
            return None
        return data

    def _record_failure(self, exc: Exception) -> None:
        self._consecutive_failures += 1
        level = logging.WARNING if self._consecutive_failures == 1 else logging.DEBUG
        logger.log(
            level,
            "Telemetry fetch failed (consecutive failures: %d): %s",
            self._consecutive_failures,
            exc,
        )


# ---------------------------------------------------------------------------
# Simulated device
# ---------------------------------------------------------------------------


class SimulatedTelemetrySource:
    """Simulated tracker publishing a fresh random reading on every fetch.

    Args:
        seed: Optional seed for reproducible readings.
        clock: Returns the current aware time; defaults to UTC now.
        home: Starting (lat, lng) of the simulated GPS position.
    """

    def __init__(
        self,
        *,
        seed: int | None = None,
        clock: Callable[[], datetime] | None = None,
        home: tuple[float, float] = (HOME_LAT, HOME_LNG),
    ) -> None:
        self._rng = random.Random(seed)
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._lat, self._lng = home

    async def fetch(self) -> dict[str, object] | None:
        rng = self._rng
        self._lat += (rng.random() - 0.5) * GPS_DRIFT_DEG
        self._lng += (rng.random() - 0.5) * GPS_DRIFT_DEG

        return {
            "timestamp": self._clock().isoformat(),
            "lightLevel": rng.randint(400, 4095),
            "temperature": float(rng.randint(10, 35)),
            "humidity": round(rng.uniform(35.0, 80.0), 1),
            "distance": round(rng.uniform(5.0, 300.0), 1),
            "gps": {"lat": round(self._lat, 4), "lng": round(self._lng, 4)},
        }
