"""Fleet aggregates consumed by the dashboard and CLI."""

from lumenwatch.metrics.fleet import (
    compute_stats,
    current_distribution,
    ldr_distribution,
    map_center,
    status_breakdown,
)

__all__ = [
    "compute_stats",
    "current_distribution",
    "ldr_distribution",
    "map_center",
    "status_breakdown",
]
