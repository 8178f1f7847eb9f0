"""Exceptions raised by the LumenWatch pipeline."""


class LumenWatchError(Exception):
    """Base exception for all LumenWatch errors."""


class TelemetrySourceError(LumenWatchError):
    """Raised when the telemetry backend cannot deliver a batch."""


class ConfigurationError(LumenWatchError):
    """Raised when settings are missing or invalid."""
