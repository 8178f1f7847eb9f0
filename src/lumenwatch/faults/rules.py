"""Fault classification and maintenance alert rules."""

import random
from collections.abc import Sequence
from datetime import datetime, timedelta

import structlog

from lumenwatch.metrics.fleet import compute_stats
from lumenwatch.models import (
    CanonicalReading,
    FleetSnapshot,
    IssueType,
    LightState,
    LightStatus,
    MaintenanceAlert,
    Severity,
)

log = structlog.get_logger()

# Amps. Both comparisons are strict: exactly 3.0 A is still normal.
FAULT_CURRENT_THRESHOLD = 3.0
HIGH_SEVERITY_CURRENT_THRESHOLD = 4.0

# Predicted maintenance falls somewhere in the next week
PREDICTION_WINDOW = timedelta(days=7)


def is_current_leak(reading: CanonicalReading) -> bool:
    return reading.current_value > FAULT_CURRENT_THRESHOLD


def classify(reading: CanonicalReading) -> LightStatus:
    """Classify a reading as FAULT when flagged anomalous or leaking current."""
    if reading.anomaly_flag or is_current_leak(reading):
        return LightStatus.FAULT
    return LightStatus.NORMAL


class FaultDeriver:
    """Derives light statuses and maintenance alerts from canonical readings.

    Holds no state besides its random source, which only spreads the
    predicted maintenance dates. Pass a seed (or an rng) to make them
    reproducible.
    """

    def __init__(self, seed: int | None = None, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random(seed)

    def derive_alerts(
        self, readings: Sequence[CanonicalReading], now: datetime
    ) -> list[MaintenanceAlert]:
        """Build one alert per faulty reading, in input order.

        Args:
            readings: Canonical readings of one batch
            now: Derivation time, the start of the prediction window

        Returns:
            Maintenance alerts for the faulty readings
        """
        alerts = [
            self._build_alert(reading, now)
            for reading in readings
            if classify(reading) == LightStatus.FAULT
        ]
        log.info("alerts_derived", readings=len(readings), alerts=len(alerts))
        return alerts

    def evaluate(self, readings: Sequence[CanonicalReading], now: datetime) -> FleetSnapshot:
        """Classify, alert and count a batch in one pass."""
        lights = [LightState(reading=r, status=classify(r)) for r in readings]
        alerts = self.derive_alerts(readings, now)
        return FleetSnapshot(
            lights=lights,
            alerts=alerts,
            stats=compute_stats(lights, alerts),
            refreshed_at=now,
        )

    def _build_alert(self, reading: CanonicalReading, now: datetime) -> MaintenanceAlert:
        leaking = is_current_leak(reading)

        if leaking:
            issue_type = IssueType.CURRENT_LEAKAGE
            description = f"Current leakage detected ({reading.current_value:.2f}A)"
        else:
            issue_type = IssueType.SENSOR_MALFUNCTION
            description = "Anomaly detected in sensor readings"

        if reading.current_value > HIGH_SEVERITY_CURRENT_THRESHOLD:
            severity = Severity.HIGH
        else:
            severity = Severity.MEDIUM

        # random() is in [0, 1), so the date never reaches the end of the window
        offset = PREDICTION_WINDOW * self._rng.random()

        return MaintenanceAlert(
            id=reading.id,
            pole_id=reading.pole_id,
            issue_type=issue_type,
            severity=severity,
            predicted_date=(now + offset).date(),
            description=description,
        )
