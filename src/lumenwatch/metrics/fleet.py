"""Fleet-level aggregates for the stat tiles, map and charts."""

from collections.abc import Sequence

from lumenwatch.ingestion.normalizer import REFERENCE_LATITUDE, REFERENCE_LONGITUDE
from lumenwatch.models import (
    CanonicalReading,
    FleetStats,
    LightState,
    LightStatus,
    MaintenanceAlert,
)

# Bucket edges for the distribution bar charts
CURRENT_BUCKETS = (1.0, 2.0, 3.0, 4.0)  # amps
LDR_BUCKETS = (100.0, 200.0, 300.0, 400.0)


def compute_stats(
    lights: Sequence[LightState], alerts: Sequence[MaintenanceAlert]
) -> FleetStats:
    faulty = sum(1 for light in lights if light.status == LightStatus.FAULT)
    return FleetStats(
        total=len(lights),
        normal=len(lights) - faulty,
        faulty=faulty,
        alert_count=len(alerts),
    )


def map_center(readings: Sequence[CanonicalReading]) -> tuple[float, float]:
    """Mean position of the fleet, or the reference point when empty."""
    if not readings:
        return REFERENCE_LATITUDE, REFERENCE_LONGITUDE
    lat = sum(r.latitude for r in readings) / len(readings)
    lon = sum(r.longitude for r in readings) / len(readings)
    return lat, lon


def status_breakdown(lights: Sequence[LightState]) -> dict[str, int]:
    """Count lights per status, including statuses with no lights."""
    counts = {status.value: 0 for status in LightStatus}
    for light in lights:
        counts[light.status.value] += 1
    return counts


def _bucket_label(value: float, edges: Sequence[float]) -> str:
    lower = 0.0
    for edge in edges:
        if value < edge:
            return f"{lower:g}-{edge:g}"
        lower = edge
    return f"{lower:g}+"


def _distribution(values: Sequence[float], edges: Sequence[float]) -> dict[str, int]:
    labels = [_bucket_label(lower, edges) for lower in (0.0, *edges)]
    counts = dict.fromkeys(labels, 0)
    for value in values:
        counts[_bucket_label(value, edges)] += 1
    return counts


def current_distribution(readings: Sequence[CanonicalReading]) -> dict[str, int]:
    """Number of lights per current-draw bucket, in bucket order."""
    return _distribution([r.current_value for r in readings], CURRENT_BUCKETS)


def ldr_distribution(readings: Sequence[CanonicalReading]) -> dict[str, int]:
    """Number of lights per LDR bucket, in bucket order."""
    return _distribution([r.ldr_value for r in readings], LDR_BUCKETS)
