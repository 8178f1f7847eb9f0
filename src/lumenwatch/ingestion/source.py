"""Telemetry sources: the Supabase REST backend."""

from typing import Any, Protocol

import httpx
import structlog

from lumenwatch.config import DEFAULT_TABLE
from lumenwatch.exceptions import TelemetrySourceError

log = structlog.get_logger()


class TelemetrySource(Protocol):
    """Anything that can hand over the current full batch of raw readings."""

    def fetch(self) -> list[dict[str, Any]]: ...


class SupabaseSource:
    """Client for the inference table exposed through Supabase's PostgREST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        table: str = DEFAULT_TABLE,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._table = table
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def fetch(self) -> list[dict[str, Any]]:
        """Fetch every row of the inference table, newest inference first.

        Returns:
            Raw rows, unvalidated

        Raises:
            TelemetrySourceError: If the request fails or the body is not a JSON array
        """
        params = {"select": "*", "order": "inference_time.desc"}
        log.info("fetching_telemetry", table=self._table)

        try:
            response = self._client.get(f"/rest/v1/{self._table}", params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise TelemetrySourceError(
                f"Backend returned {e.response.status_code} for table {self._table}"
            ) from e
        except httpx.HTTPError as e:
            raise TelemetrySourceError(f"Could not reach backend: {e}") from e
        except ValueError as e:
            raise TelemetrySourceError(f"Backend returned invalid JSON: {e}") from e

        if not isinstance(data, list):
            raise TelemetrySourceError(
                f"Expected a JSON array from table {self._table}, got {type(data).__name__}"
            )

        rows = [row for row in data if isinstance(row, dict)]
        if len(rows) != len(data):
            log.warning("non_object_rows_skipped", skipped=len(data) - len(rows))

        log.info("telemetry_fetched", table=self._table, record_count=len(rows))
        return rows

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "SupabaseSource":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
