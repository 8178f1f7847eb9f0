"""Tests for fault classification and maintenance alerts."""

import random
from collections.abc import Callable
from datetime import datetime, timedelta

import pytest

from lumenwatch.faults import FaultDeriver, classify
from lumenwatch.ingestion import TelemetryNormalizer
from lumenwatch.models import CanonicalReading, IssueType, LightStatus, Severity

MakeReading = Callable[..., CanonicalReading]


class FixedRandom(random.Random):
    """Random source that always returns the same fraction."""

    def __init__(self, value: float) -> None:
        super().__init__()
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.fixture
def deriver() -> FaultDeriver:
    return FaultDeriver(seed=42)


@pytest.fixture
def scenario(now: datetime) -> list[CanonicalReading]:
    """The three-light example: normal, leaking, anomalous."""
    normalizer = TelemetryNormalizer(seed=1, clock=lambda: now)
    return normalizer.normalize(
        [
            {"id": 1, "current": 2.3, "anomaly_result": 0},
            {"id": 2, "current": 4.2, "anomaly_result": 0},
            {"id": 3, "current": 2.1, "anomaly_result": 1},
        ]
    )


class TestClassify:
    def test_normal_reading(self, make_reading: MakeReading) -> None:
        assert classify(make_reading(current_value=2.3)) == LightStatus.NORMAL

    def test_anomaly_flag_is_fault(self, make_reading: MakeReading) -> None:
        assert classify(make_reading(current_value=0.5, anomaly_flag=True)) == LightStatus.FAULT

    def test_threshold_is_strict(self, make_reading: MakeReading) -> None:
        assert classify(make_reading(current_value=3.0)) == LightStatus.NORMAL
        assert classify(make_reading(current_value=3.01)) == LightStatus.FAULT

    def test_classification_is_idempotent(self, make_reading: MakeReading) -> None:
        reading = make_reading(current_value=3.5)
        assert classify(reading) == classify(reading)

    def test_explicit_zero_current_is_normal(self, now: datetime) -> None:
        reading = TelemetryNormalizer(clock=lambda: now).normalize([{"id": 1, "current": 0}])[0]
        assert reading.current_value == 0.0
        assert classify(reading) == LightStatus.NORMAL


class TestDeriveAlerts:
    def test_no_alert_at_threshold(
        self, deriver: FaultDeriver, make_reading: MakeReading, now: datetime
    ) -> None:
        assert deriver.derive_alerts([make_reading(current_value=3.0)], now) == []

    def test_just_above_threshold_is_medium_leakage(
        self, deriver: FaultDeriver, make_reading: MakeReading, now: datetime
    ) -> None:
        alert = deriver.derive_alerts([make_reading(current_value=3.01)], now)[0]
        assert alert.issue_type == IssueType.CURRENT_LEAKAGE
        assert alert.severity == Severity.MEDIUM
        assert alert.description == "Current leakage detected (3.01A)"

    def test_high_severity_threshold(
        self, deriver: FaultDeriver, make_reading: MakeReading, now: datetime
    ) -> None:
        at_limit = deriver.derive_alerts([make_reading(current_value=4.0)], now)[0]
        above = deriver.derive_alerts([make_reading(current_value=4.01)], now)[0]
        assert at_limit.severity == Severity.MEDIUM
        assert above.severity == Severity.HIGH

    def test_anomaly_without_leak_is_sensor_malfunction(
        self, deriver: FaultDeriver, make_reading: MakeReading, now: datetime
    ) -> None:
        alert = deriver.derive_alerts([make_reading(current_value=1.2, anomaly_flag=True)], now)[0]
        assert alert.issue_type == IssueType.SENSOR_MALFUNCTION
        assert alert.severity == Severity.MEDIUM
        assert alert.description == "Anomaly detected in sensor readings"

    def test_alert_carries_ids(
        self, deriver: FaultDeriver, make_reading: MakeReading, now: datetime
    ) -> None:
        alert = deriver.derive_alerts([make_reading(id=12, pole_id=340, current_value=3.6)], now)[0]
        assert alert.id == 12
        assert alert.pole_id == 340

    def test_output_is_stable_sub_order(
        self, deriver: FaultDeriver, make_reading: MakeReading, now: datetime
    ) -> None:
        readings = [
            make_reading(id=9, current_value=3.5),
            make_reading(id=4, current_value=1.0),
            make_reading(id=7, anomaly_flag=True),
            make_reading(id=1, current_value=4.5),
        ]
        alerts = deriver.derive_alerts(readings, now)
        assert [a.id for a in alerts] == [9, 7, 1]

    def test_predicted_date_window_bounds(self, make_reading: MakeReading, now: datetime) -> None:
        reading = make_reading(current_value=3.5)
        earliest = FaultDeriver(rng=FixedRandom(0.0)).derive_alerts([reading], now)[0]
        latest = FaultDeriver(rng=FixedRandom(0.999999)).derive_alerts([reading], now)[0]
        assert earliest.predicted_date == now.date()
        assert latest.predicted_date == now.date() + timedelta(days=6)

    def test_predicted_dates_within_a_week(
        self, deriver: FaultDeriver, make_reading: MakeReading, now: datetime
    ) -> None:
        readings = [make_reading(id=i, current_value=3.5) for i in range(50)]
        for alert in deriver.derive_alerts(readings, now):
            assert now.date() <= alert.predicted_date < now.date() + timedelta(days=7)

    def test_seed_produces_reproducible_dates(
        self, make_reading: MakeReading, now: datetime
    ) -> None:
        readings = [make_reading(id=i, anomaly_flag=True) for i in range(10)]
        first = FaultDeriver(seed=123).derive_alerts(readings, now)
        second = FaultDeriver(seed=123).derive_alerts(readings, now)
        assert [a.predicted_date for a in first] == [a.predicted_date for a in second]


class TestEvaluate:
    def test_scenario(
        self, deriver: FaultDeriver, scenario: list[CanonicalReading], now: datetime
    ) -> None:
        snapshot = deriver.evaluate(scenario, now)

        assert [light.status for light in snapshot.lights] == [
            LightStatus.NORMAL,
            LightStatus.FAULT,
            LightStatus.FAULT,
        ]
        assert [a.id for a in snapshot.alerts] == [2, 3]

        leak, anomaly = snapshot.alerts
        assert leak.issue_type == IssueType.CURRENT_LEAKAGE
        assert leak.severity == Severity.HIGH
        assert leak.description == "Current leakage detected (4.20A)"
        assert anomaly.issue_type == IssueType.SENSOR_MALFUNCTION
        assert anomaly.severity == Severity.MEDIUM

        assert snapshot.stats.total == 3
        assert snapshot.stats.normal == 1
        assert snapshot.stats.faulty == 2
        assert snapshot.stats.alert_count == 2

    def test_empty_batch(self, deriver: FaultDeriver, now: datetime) -> None:
        snapshot = deriver.evaluate([], now)
        assert snapshot.lights == []
        assert snapshot.alerts == []
        assert snapshot.stats.total == 0
        assert snapshot.stats.normal == 0
        assert snapshot.stats.faulty == 0
        assert snapshot.stats.alert_count == 0

    def test_count_invariants(
        self, deriver: FaultDeriver, make_reading: MakeReading, now: datetime
    ) -> None:
        rng = random.Random(7)
        readings = [
            make_reading(id=i, current_value=rng.uniform(0, 5), anomaly_flag=rng.random() < 0.2)
            for i in range(200)
        ]
        stats = deriver.evaluate(readings, now).stats
        assert stats.normal + stats.faulty == stats.total
        assert stats.alert_count == stats.faulty

    def test_snapshot_stamped_with_now(
        self, deriver: FaultDeriver, scenario: list[CanonicalReading], now: datetime
    ) -> None:
        assert deriver.evaluate(scenario, now).refreshed_at == now
