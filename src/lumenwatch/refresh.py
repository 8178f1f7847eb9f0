"""Refresh loop: fetch, normalize, derive and publish fleet snapshots.

Two triggers drive a refresh, a polling timer and push notifications from
the backend. Both go through RefreshLoop.refresh(), which runs at most one
cycle at a time. A trigger that arrives mid-cycle is coalesced into a single
follow-up cycle instead of running concurrently.
"""

import threading
from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog

from lumenwatch.config import DEFAULT_REFRESH_INTERVAL
from lumenwatch.exceptions import TelemetrySourceError
from lumenwatch.faults.rules import FaultDeriver
from lumenwatch.ingestion.normalizer import TelemetryNormalizer, utc_now
from lumenwatch.ingestion.source import TelemetrySource
from lumenwatch.models import FleetSnapshot

log = structlog.get_logger()

SnapshotCallback = Callable[[FleetSnapshot], None]


class RefreshLoop:
    """Owns the currently published FleetSnapshot and keeps it fresh."""

    def __init__(
        self,
        source: TelemetrySource,
        normalizer: TelemetryNormalizer | None = None,
        deriver: FaultDeriver | None = None,
        interval: float = DEFAULT_REFRESH_INTERVAL,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._source = source
        self._normalizer = normalizer or TelemetryNormalizer(clock=clock)
        self._deriver = deriver or FaultDeriver()
        self._clock = clock
        self.interval = interval

        self._lock = threading.Lock()
        self._running = False
        self._pending = False
        self._snapshot: FleetSnapshot | None = None
        self._last_error: str | None = None
        self._subscribers: list[SnapshotCallback] = []

        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def snapshot(self) -> FleetSnapshot | None:
        """Latest published snapshot, None until the first successful refresh."""
        with self._lock:
            return self._snapshot

    @property
    def last_error(self) -> str | None:
        """Message of the most recent failed fetch, cleared on success."""
        with self._lock:
            return self._last_error

    def subscribe(self, callback: SnapshotCallback) -> None:
        """Call `callback` with every newly published snapshot."""
        with self._lock:
            self._subscribers.append(callback)

    def refresh(self, trigger: str = "manual") -> FleetSnapshot | None:
        """Run a refresh cycle unless one is already in flight.

        Args:
            trigger: What asked for the refresh (timer, event, manual), for logging

        Returns:
            The snapshot published once this call is done. A coalesced call
            returns the snapshot current at the time it was coalesced.
        """
        with self._lock:
            if self._running:
                self._pending = True
                log.info("refresh_coalesced", trigger=trigger)
                return self._snapshot
            self._running = True

        try:
            while True:
                self._run_cycle(trigger)
                with self._lock:
                    if not self._pending:
                        break
                    self._pending = False
                trigger = "coalesced"
        finally:
            with self._lock:
                self._running = False
                self._pending = False

        return self.snapshot

    def notify(self, event: Any = None) -> FleetSnapshot | None:
        """Push-trigger entry point for backend change notifications.

        The event only signals that new data exists. The batch itself is
        always re-fetched.
        """
        log.debug("change_event_received", payload=event)
        return self.refresh(trigger="event")

    def _run_cycle(self, trigger: str) -> None:
        try:
            raw_batch = self._source.fetch()
        except TelemetrySourceError as e:
            with self._lock:
                self._last_error = str(e)
            log.warning("refresh_failed", trigger=trigger, error=str(e))
            return

        readings = self._normalizer.normalize(raw_batch)
        snapshot = self._deriver.evaluate(readings, self._clock())

        with self._lock:
            self._snapshot = snapshot
            self._last_error = None
            subscribers = list(self._subscribers)

        log.info(
            "refresh_completed",
            trigger=trigger,
            total=snapshot.stats.total,
            faulty=snapshot.stats.faulty,
            alerts=snapshot.stats.alert_count,
        )
        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception:
                log.exception("subscriber_failed", trigger=trigger, callback=repr(callback))

    def start(self) -> None:
        """Refresh now, then keep polling every `interval` seconds in the background."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self.refresh(trigger="startup")
        self._thread = threading.Thread(target=self._poll, name="lumenwatch-refresh", daemon=True)
        self._thread.start()
        log.info("polling_started", interval=self.interval)

    def _poll(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.refresh(trigger="timer")
            except Exception:
                # keep polling; the next tick gets a fresh attempt
                log.exception("refresh_crashed", trigger="timer")

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            log.info("polling_stopped")

    def __enter__(self) -> "RefreshLoop":
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()
