"""Telemetry ingestion from the backend, simulation and normalization."""

from lumenwatch.ingestion.normalizer import TelemetryNormalizer
from lumenwatch.ingestion.simulator import TelemetrySimulator
from lumenwatch.ingestion.source import SupabaseSource, TelemetrySource

__all__ = ["TelemetryNormalizer", "TelemetrySimulator", "SupabaseSource", "TelemetrySource"]
