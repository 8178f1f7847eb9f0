"""LumenWatch: street light fault detection and predictive maintenance."""

__version__ = "0.1.0"
