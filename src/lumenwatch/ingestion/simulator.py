"""Simulated street light telemetry for demo mode."""

import random
from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog

from lumenwatch.ingestion.normalizer import REFERENCE_LATITUDE, REFERENCE_LONGITUDE, utc_now

log = structlog.get_logger()

# Typical draw of a healthy fixture (amps)
NOMINAL_CURRENT = 2.3
CURRENT_NOISE = 0.3

# Chance per reading of each failure mode
LEAKAGE_PROBABILITY = 0.08
ANOMALY_PROBABILITY = 0.06
MISSING_FIELD_PROBABILITY = 0.05

# Optional fields the backend sometimes leaves empty
OPTIONAL_FIELDS = ("location", "latitude", "longitude", "ldr", "maintenance_flag")

STREETS = (
    "Broadway",
    "5th Avenue",
    "Park Avenue",
    "Lexington Avenue",
    "Madison Avenue",
    "West 42nd Street",
    "East 57th Street",
    "Columbus Circle",
)


class TelemetrySimulator:
    """Generates inference-table rows for a fixed fleet of street lights.

    Acts as a telemetry source, so the dashboard and CLI can run without a
    backend.
    """

    def __init__(
        self,
        seed: int | None = None,
        fleet_size: int = 12,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if fleet_size < 0:
            raise ValueError(f"fleet_size must be non-negative, got {fleet_size}")
        self._rng = random.Random(seed)
        self._clock = clock
        self._fleet = [self._place_pole(pole_id) for pole_id in range(1, fleet_size + 1)]

    def fetch(self) -> list[dict[str, Any]]:
        """Produce one reading per pole, stamped with the current time."""
        now = self._clock()
        rows = [self._reading(pole, now) for pole in self._fleet]
        log.info("telemetry_simulated", record_count=len(rows))
        return rows

    def _place_pole(self, pole_id: int) -> dict[str, Any]:
        street = STREETS[(pole_id - 1) % len(STREETS)]
        return {
            "pole_id": pole_id,
            "location": f"{street} #{pole_id}",
            "latitude": round(REFERENCE_LATITUDE + self._rng.uniform(-0.02, 0.02), 6),
            "longitude": round(REFERENCE_LONGITUDE + self._rng.uniform(-0.02, 0.02), 6),
        }

    def _reading(self, pole: dict[str, Any], now: datetime) -> dict[str, Any]:
        """Simulate a single reading.

        Model components:
        1. LDR follows daylight (bright around noon, dark at night)
        2. Current is nominal draw with gaussian noise
        3. A small share of readings leak current or get flagged anomalous
        4. A small share arrive with an optional field missing
        """
        hour = now.hour
        daylight = 1.0 if 7 <= hour <= 18 else 0.15
        ldr = max(0.0, self._rng.gauss(350 * daylight, 40))

        current = max(0.0, self._rng.gauss(NOMINAL_CURRENT, CURRENT_NOISE))
        if self._rng.random() < LEAKAGE_PROBABILITY:
            current = self._rng.uniform(3.1, 4.8)
        anomaly = 1 if self._rng.random() < ANOMALY_PROBABILITY else 0

        row: dict[str, Any] = {
            "id": pole["pole_id"],
            **pole,
            "ldr": round(ldr, 1),
            "current": round(current, 2),
            "anomaly_result": anomaly,
            "maintenance_flag": "check" if anomaly or current > 3 else "normal",
            "reading_time": now.isoformat(),
            "inference_time": now.isoformat(),
        }

        if self._rng.random() < MISSING_FIELD_PROBABILITY:
            row[self._rng.choice(OPTIONAL_FIELDS)] = None

        return row
