"""Data models for the LumenWatch pipeline."""

from datetime import date, datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class LightStatus(str, Enum):
    """Derived operating status of a street light."""

    NORMAL = "normal"
    FAULT = "fault"


class IssueType(str, Enum):
    """Kind of problem a maintenance alert predicts."""

    CURRENT_LEAKAGE = "current_leakage"
    SENSOR_MALFUNCTION = "sensor_malfunction"


class Severity(str, Enum):
    """Maintenance alert severity.

    LOW is rendered by the dashboard but no derivation rule produces it.
    """

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CanonicalReading(BaseModel):
    """Fully defaulted telemetry record for one street light."""

    model_config = ConfigDict(frozen=True)

    id: int
    pole_id: int
    location: str
    latitude: float
    longitude: float
    ldr_value: float = Field(ge=0)
    current_value: float = Field(ge=0)
    anomaly_flag: bool
    maintenance_flag: str = "normal"
    reading_time: datetime
    inference_time: datetime


class LightState(BaseModel):
    """A canonical reading with its derived status attached."""

    model_config = ConfigDict(frozen=True)

    reading: CanonicalReading
    status: LightStatus


class MaintenanceAlert(BaseModel):
    """Predictive maintenance alert derived from a faulty reading."""

    model_config = ConfigDict(frozen=True)

    id: int
    pole_id: int
    issue_type: IssueType
    severity: Severity
    predicted_date: date
    description: str


class FleetStats(BaseModel):
    """Aggregate counts shown on the stat tiles."""

    model_config = ConfigDict(frozen=True)

    total: int = Field(ge=0)
    normal: int = Field(ge=0)
    faulty: int = Field(ge=0)
    alert_count: int = Field(ge=0)


class FleetSnapshot(BaseModel):
    """Everything one refresh cycle hands to the presentation layer."""

    model_config = ConfigDict(frozen=True)

    lights: list[LightState] = Field(default_factory=list)
    alerts: list[MaintenanceAlert] = Field(default_factory=list)
    stats: FleetStats
    refreshed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def readings(self) -> list[CanonicalReading]:
        return [light.reading for light in self.lights]
