"""Fault classification and maintenance alert derivation."""

from lumenwatch.faults.rules import FaultDeriver, classify

__all__ = ["FaultDeriver", "classify"]
