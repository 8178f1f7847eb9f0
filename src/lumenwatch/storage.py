"""DuckDB storage layer for the history of published fleet snapshots."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import duckdb
import structlog

from lumenwatch.config import DEFAULT_DB_PATH
from lumenwatch.models import (
    CanonicalReading,
    FleetSnapshot,
    IssueType,
    LightState,
    LightStatus,
    MaintenanceAlert,
    Severity,
)

log = structlog.get_logger()


def _to_db(ts: datetime) -> datetime:
    """Timestamps are stored as naive UTC."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def _from_db(ts: datetime) -> datetime:
    return ts.replace(tzinfo=timezone.utc)


class Storage:
    """DuckDB-based storage for readings and the alerts derived from them."""

    def __init__(self, db_path: Path | str = DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._con = duckdb.connect(str(self._db_path))
        self._init_schema()

    def _init_schema(self) -> None:
        """Create tables if they don't exist."""
        self._con.execute("""
            CREATE TABLE IF NOT EXISTS readings (
                id BIGINT,
                pole_id BIGINT,
                location VARCHAR,
                latitude DOUBLE,
                longitude DOUBLE,
                ldr_value DOUBLE,
                current_value DOUBLE,
                anomaly_flag BOOLEAN,
                maintenance_flag VARCHAR,
                status VARCHAR,
                reading_time TIMESTAMP,
                inference_time TIMESTAMP,
                loaded_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (id, reading_time)
            )
        """)

        self._con.execute("""
            CREATE TABLE IF NOT EXISTS alerts (
                alert_id INTEGER PRIMARY KEY,
                refreshed_at TIMESTAMP,
                id BIGINT,
                pole_id BIGINT,
                issue_type VARCHAR,
                severity VARCHAR,
                predicted_date DATE,
                description VARCHAR
            )
        """)

        self._con.execute("""
            CREATE TABLE IF NOT EXISTS refreshes (
                refreshed_at TIMESTAMP PRIMARY KEY,
                light_count INTEGER,
                alert_count INTEGER
            )
        """)

        self._con.execute("""
            CREATE SEQUENCE IF NOT EXISTS alert_seq START 1
        """)

        log.info("schema_initialized", db_path=str(self._db_path))

    def save_snapshot(self, snapshot: FleetSnapshot) -> int:
        """Save a snapshot's lights (upsert on id+reading_time) and its alerts.

        Returns:
            Number of readings written
        """
        # A batch may repeat a key; the last row wins, as in the upsert itself
        rows = {
            (light.reading.id, _to_db(light.reading.reading_time)): light
            for light in snapshot.lights
        }
        if rows:
            self._con.executemany(
                """
                INSERT OR REPLACE INTO readings
                (id, pole_id, location, latitude, longitude, ldr_value, current_value,
                 anomaly_flag, maintenance_flag, status, reading_time, inference_time)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        light.reading.id,
                        light.reading.pole_id,
                        light.reading.location,
                        light.reading.latitude,
                        light.reading.longitude,
                        light.reading.ldr_value,
                        light.reading.current_value,
                        light.reading.anomaly_flag,
                        light.reading.maintenance_flag,
                        light.status.value,
                        reading_time,
                        _to_db(light.reading.inference_time),
                    )
                    for (_id, reading_time), light in rows.items()
                ],
            )

        refreshed_at = _to_db(snapshot.refreshed_at)
        self._con.execute(
            """
            INSERT OR REPLACE INTO refreshes (refreshed_at, light_count, alert_count)
            VALUES (?, ?, ?)
            """,
            [refreshed_at, len(snapshot.lights), len(snapshot.alerts)],
        )
        for alert in snapshot.alerts:
            self._con.execute(
                """
                INSERT INTO alerts
                (alert_id, refreshed_at, id, pole_id, issue_type, severity, predicted_date, description)
                VALUES (nextval('alert_seq'), ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    refreshed_at,
                    alert.id,
                    alert.pole_id,
                    alert.issue_type.value,
                    alert.severity.value,
                    alert.predicted_date,
                    alert.description,
                ],
            )

        log.info("snapshot_saved", readings=len(rows), alerts=len(snapshot.alerts))
        return len(rows)

    def get_readings(self, since: datetime | None = None, limit: int = 1000) -> list[LightState]:
        """Retrieve stored readings with their status, newest first."""
        query = """
            SELECT id, pole_id, location, latitude, longitude, ldr_value, current_value,
                   anomaly_flag, maintenance_flag, status, reading_time, inference_time
            FROM readings
        """
        params: list[Any] = []
        if since is not None:
            query += " WHERE reading_time >= ?"
            params.append(_to_db(since))
        query += " ORDER BY reading_time DESC, id LIMIT ?"
        params.append(limit)

        result = self._con.execute(query, params).fetchall()
        return [
            LightState(
                reading=CanonicalReading(
                    id=row[0],
                    pole_id=row[1],
                    location=row[2],
                    latitude=row[3],
                    longitude=row[4],
                    ldr_value=row[5],
                    current_value=row[6],
                    anomaly_flag=row[7],
                    maintenance_flag=row[8],
                    reading_time=_from_db(row[10]),
                    inference_time=_from_db(row[11]),
                ),
                status=LightStatus(row[9]),
            )
            for row in result
        ]

    def hourly_trends(self, hours: int = 24, now: datetime | None = None) -> list[dict[str, Any]]:
        """Per-hour LDR and current averages plus fault counts over the last `hours`."""
        now = now or datetime.now(timezone.utc)
        since = _to_db(now - timedelta(hours=hours))

        result = self._con.execute(
            """
            SELECT date_trunc('hour', reading_time) AS hour,
                   AVG(ldr_value) AS ldr_avg,
                   AVG(current_value) AS current_avg,
                   COUNT(*) FILTER (WHERE status = 'fault') AS faults
            FROM readings
            WHERE reading_time >= ? AND reading_time <= ?
            GROUP BY hour
            ORDER BY hour
            """,
            [since, _to_db(now)],
        ).fetchall()

        return [
            {
                "hour": _from_db(row[0]),
                "ldr_avg": round(row[1], 2),
                "current_avg": round(row[2], 3),
                "faults": row[3],
            }
            for row in result
        ]

    def get_latest_alerts(self, limit: int = 50) -> list[MaintenanceAlert]:
        """Alerts of the most recently saved snapshot; empty when that snapshot had none."""
        result = self._con.execute(
            """
            SELECT id, pole_id, issue_type, severity, predicted_date, description
            FROM alerts
            WHERE refreshed_at = (SELECT MAX(refreshed_at) FROM refreshes)
            ORDER BY alert_id
            LIMIT ?
            """,
            [limit],
        ).fetchall()
        return [
            MaintenanceAlert(
                id=row[0],
                pole_id=row[1],
                issue_type=IssueType(row[2]),
                severity=Severity(row[3]),
                predicted_date=row[4],
                description=row[5],
            )
            for row in result
        ]

    def fleet_summary(self) -> dict[str, int]:
        """Reading count, distinct lights, and status counts from each light's latest reading."""
        total_readings = self._con.execute("SELECT COUNT(*) FROM readings").fetchone()
        result = self._con.execute("""
            WITH latest AS (
                SELECT status,
                       ROW_NUMBER() OVER (PARTITION BY id ORDER BY reading_time DESC) AS rn
                FROM readings
            )
            SELECT status, COUNT(*) AS count
            FROM latest
            WHERE rn = 1
            GROUP BY status
        """).fetchall()

        summary = {status.value: 0 for status in LightStatus}
        summary.update({row[0]: row[1] for row in result})
        summary["lights"] = sum(summary[status.value] for status in LightStatus)
        summary["readings"] = total_readings[0] if total_readings else 0
        return summary

    def close(self) -> None:
        """Close database connection."""
        self._con.close()

    def __enter__(self) -> "Storage":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
