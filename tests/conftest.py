"""Shared fixtures for LumenWatch tests."""

from collections.abc import Callable
from datetime import datetime, timezone

import pytest

from lumenwatch.models import CanonicalReading

NOW = datetime(2024, 6, 1, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_reading() -> Callable[..., CanonicalReading]:
    """Factory for canonical readings with sensible defaults."""

    def _make(id: int = 1, **overrides: object) -> CanonicalReading:
        fields: dict[str, object] = {
            "id": id,
            "pole_id": id,
            "location": f"Location {id}",
            "latitude": 40.75,
            "longitude": -73.98,
            "ldr_value": 250.0,
            "current_value": 2.3,
            "anomaly_flag": False,
            "reading_time": NOW,
            "inference_time": NOW,
        }
        fields.update(overrides)
        return CanonicalReading(**fields)  # type: ignore[arg-type]

    return _make
