"""Normalization of raw backend rows into canonical readings."""

import math
import random
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

import structlog

from lumenwatch.models import CanonicalReading

log = structlog.get_logger()

# Fallback map position for lights that report no coordinates
REFERENCE_LATITUDE = 40.7589
REFERENCE_LONGITUDE = -73.9851
COORDINATE_JITTER = 0.1  # total spread in degrees, centred on the reference point

DEFAULT_MAINTENANCE_FLAG = "normal"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TelemetryNormalizer:
    """Turns loosely typed backend rows into CanonicalReading records.

    Ingestion is lenient: a missing or unusable field is replaced by its
    default, and an unusable one is logged. Nothing is raised. Numeric
    fields are checked for presence rather than truthiness, so a reported
    0 stays 0.
    """

    def __init__(
        self,
        seed: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._rng = random.Random(seed)
        self._clock = clock

    def normalize(self, raw_batch: Sequence[Mapping[str, Any]]) -> list[CanonicalReading]:
        """Normalize a batch of raw readings.

        A row without a usable ``id`` gets its 1-based position in the batch,
        or the next integer above it that no other row uses.

        Args:
            raw_batch: Rows as delivered by the telemetry source

        Returns:
            One canonical reading per row, in the same order
        """
        now = self._clock()
        ids = [self._int_field(raw, "id", reading_id=None) for raw in raw_batch]
        taken = {reading_id for reading_id in ids if reading_id is not None}

        readings = []
        for position, (raw, reading_id) in enumerate(zip(raw_batch, ids), start=1):
            if reading_id is None:
                reading_id = position
                while reading_id in taken:
                    reading_id += 1
                taken.add(reading_id)
            readings.append(self._normalize_one(raw, reading_id, now))

        log.info("batch_normalized", input_records=len(raw_batch), output_records=len(readings))
        return readings

    def _normalize_one(
        self, raw: Mapping[str, Any], reading_id: int, now: datetime
    ) -> CanonicalReading:
        pole_id = self._int_field(raw, "pole_id", reading_id=reading_id)
        return CanonicalReading(
            id=reading_id,
            pole_id=reading_id if pole_id is None else pole_id,
            location=self._str_field(raw, "location", f"Location {reading_id}"),
            latitude=self._coordinate_field(raw, "latitude", REFERENCE_LATITUDE, reading_id),
            longitude=self._coordinate_field(raw, "longitude", REFERENCE_LONGITUDE, reading_id),
            ldr_value=self._sensor_field(raw, "ldr", reading_id),
            current_value=self._sensor_field(raw, "current", reading_id),
            anomaly_flag=self._flag_field(raw, "anomaly_result", reading_id),
            maintenance_flag=self._str_field(raw, "maintenance_flag", DEFAULT_MAINTENANCE_FLAG),
            reading_time=self._time_field(raw, "reading_time", now, reading_id),
            inference_time=self._time_field(raw, "inference_time", now, reading_id),
        )

    def _number(self, raw: Mapping[str, Any], name: str, reading_id: int | None) -> float | None:
        """Parse a numeric field; None when absent or unusable."""
        value = raw.get(name)
        if value is None:
            return None
        try:
            number = float(value)
        except (TypeError, ValueError, OverflowError):
            number = math.nan
        if not math.isfinite(number):
            log.warning("field_defaulted", field=name, value=repr(value), reading_id=reading_id)
            return None
        return number

    def _int_field(self, raw: Mapping[str, Any], name: str, reading_id: int | None) -> int | None:
        """Parse an integer field without a float round trip, so large ids stay exact."""
        value = raw.get(name)
        if value is None:
            return None
        if isinstance(value, int):
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                pass
        number = self._number(raw, name, reading_id)
        if number is None:
            return None
        if not number.is_integer():
            log.warning("field_defaulted", field=name, value=repr(value), reading_id=reading_id)
            return None
        return int(number)

    def _coordinate_field(
        self, raw: Mapping[str, Any], name: str, reference: float, reading_id: int
    ) -> float:
        number = self._number(raw, name, reading_id)
        if number is None:
            return reference + (self._rng.random() - 0.5) * COORDINATE_JITTER
        return number

    def _sensor_field(self, raw: Mapping[str, Any], name: str, reading_id: int) -> float:
        number = self._number(raw, name, reading_id)
        if number is None:
            return 0.0
        if number < 0:
            log.warning("field_defaulted", field=name, value=repr(raw[name]), reading_id=reading_id)
            return 0.0
        return number

    def _flag_field(self, raw: Mapping[str, Any], name: str, reading_id: int) -> bool:
        # The inference model writes 1 for an anomaly and 0 otherwise
        return self._number(raw, name, reading_id) == 1

    def _str_field(self, raw: Mapping[str, Any], name: str, default: str) -> str:
        value = raw.get(name)
        if value is None:
            return default
        return str(value).strip() or default

    def _time_field(
        self, raw: Mapping[str, Any], name: str, default: datetime, reading_id: int
    ) -> datetime:
        value = raw.get(name)
        if value is None or value == "":
            return default
        if isinstance(value, datetime):
            parsed = value
        else:
            try:
                # fromisoformat only accepts a trailing "Z" from Python 3.11
                parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
            except ValueError:
                log.warning("field_defaulted", field=name, value=repr(value), reading_id=reading_id)
                return default
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
