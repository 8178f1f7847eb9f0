"""Tests for simulated street light telemetry."""

from datetime import datetime

import pytest

from lumenwatch.faults import FaultDeriver
from lumenwatch.ingestion import TelemetryNormalizer, TelemetrySimulator


@pytest.fixture
def simulator(now: datetime) -> TelemetrySimulator:
    return TelemetrySimulator(seed=42, fleet_size=20, clock=lambda: now)


class TestTelemetrySimulator:
    def test_one_row_per_pole(self, simulator: TelemetrySimulator) -> None:
        rows = simulator.fetch()
        assert len(rows) == 20
        assert [row["pole_id"] for row in rows] == list(range(1, 21))

    def test_rows_look_like_the_backend(self, simulator: TelemetrySimulator, now: datetime) -> None:
        row = simulator.fetch()[0]
        assert set(row) == {
            "id",
            "pole_id",
            "location",
            "latitude",
            "longitude",
            "ldr",
            "current",
            "anomaly_result",
            "maintenance_flag",
            "reading_time",
            "inference_time",
        }
        assert row["anomaly_result"] in (0, 1)
        assert row["reading_time"] == now.isoformat()

    def test_seed_produces_reproducible_results(self, now: datetime) -> None:
        first = TelemetrySimulator(seed=7, clock=lambda: now).fetch()
        second = TelemetrySimulator(seed=7, clock=lambda: now).fetch()
        assert first == second

    def test_current_is_non_negative(self, simulator: TelemetrySimulator) -> None:
        for _ in range(10):
            for row in simulator.fetch():
                assert row["current"] >= 0

    def test_rows_normalize_and_derive(
        self, simulator: TelemetrySimulator, now: datetime
    ) -> None:
        readings = TelemetryNormalizer(seed=1, clock=lambda: now).normalize(simulator.fetch())
        stats = FaultDeriver(seed=1).evaluate(readings, now).stats
        assert stats.total == 20
        assert stats.normal + stats.faulty == stats.total

    def test_negative_fleet_size_rejected(self) -> None:
        with pytest.raises(ValueError):
            TelemetrySimulator(fleet_size=-1)

    def test_empty_fleet(self) -> None:
        assert TelemetrySimulator(fleet_size=0).fetch() == []
