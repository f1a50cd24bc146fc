"""Observe, diff, alert loop.

:class:`NetworkMonitor` polls a snapshot provider on a fixed interval,
diffs the active addresses against the previous poll, appends alerts to
an alert log, and publishes an immutable :class:`MonitorState` through a
:class:`StateContainer`.  The monitor thread is the only writer; readers
call :meth:`StateContainer.get` or subscribe for updates and always see
a fully built state.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable

from netmonitor.detection.alert_log import AlertLog
from netmonitor.detection.connections import diff_connections, generate_alerts
from netmonitor.net_common import (
    Alert,
    AlertLogProtocol,
    ConnectionRecord,
    NetworkSnapshot,
    PermissionDenied,
    ProviderError,
    SnapshotProviderProtocol,
)

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 30.0  # seconds between polls

Subscriber = Callable[["MonitorState", "tuple[Alert, ...]"], None]


class MonitorPhase(enum.Enum):
    """Where the monitor loop currently is within a cycle."""

    IDLE = "idle"
    POLLING = "polling"
    DIFFING = "diffing"
    UPDATING = "updating"


@dataclass(frozen=True)
class MonitorState:
    """Everything a presenter may read, published as one value.

    ``connections`` is what the latest poll saw (empty when the listing
    failed).  ``previous_connections`` is the diff baseline: the records
    from the last poll whose connection listing succeeded.
    """

    wifi_network_names: frozenset[str] = frozenset()
    connections: tuple[ConnectionRecord, ...] = ()
    previous_connections: tuple[ConnectionRecord, ...] = ()
    alerts: tuple[Alert, ...] = ()
    cycle: int = 0
    last_updated: datetime | None = None


class StateContainer:
    """Single-writer holder of the current :class:`MonitorState`.

    ``publish`` swaps the state reference in one step and then notifies
    subscribers outside the lock.  A subscriber that raises is logged and
    does not prevent the others from being called.
    """

    def __init__(self, initial: MonitorState | None = None) -> None:
        self._state = initial or MonitorState()
        self._lock = threading.Lock()
        self._subscribers: list[Subscriber] = []

    def get(self) -> MonitorState:
        with self._lock:
            return self._state

    def subscribe(self, callback: Subscriber) -> None:
        """Register *callback* to receive ``(state, new_alerts)`` on publish."""
        with self._lock:
            self._subscribers.append(callback)

    def publish(self, state: MonitorState, new_alerts: tuple[Alert, ...] = ()) -> None:
        """Atomically replace the state, then notify subscribers."""
        with self._lock:
            self._state = state
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(state, new_alerts)
            except Exception:
                logger.exception("state subscriber %r failed", callback)


class NetworkMonitor:
    """Periodic network-state monitor.

    Args:
        provider: Source of WiFi names and active connections.
        interval: Seconds to wait between polls; must be positive.
        alert_log: Alert storage; defaults to an unbounded :class:`AlertLog`.
        clock: Source of timestamps for snapshots and alerts.
    """

    def __init__(
        self,
        provider: SnapshotProviderProtocol,
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
        alert_log: AlertLogProtocol | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._provider = provider
        self._interval = float(interval)
        self._alert_log: AlertLogProtocol = alert_log if alert_log is not None else AlertLog()
        self._clock = clock
        self._container = StateContainer()
        self._phase = MonitorPhase.IDLE
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    # -- read access -------------------------------------------------------

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def phase(self) -> MonitorPhase:
        return self._phase

    @property
    def state(self) -> MonitorState:
        return self._container.get()

    @property
    def alert_log(self) -> AlertLogProtocol:
        return self._alert_log

    @property
    def container(self) -> StateContainer:
        return self._container

    def subscribe(self, callback: Subscriber) -> None:
        """Shorthand for ``container.subscribe``."""
        self._container.subscribe(callback)

    # -- one cycle ---------------------------------------------------------

    def capture_snapshot(self) -> NetworkSnapshot:
        """Call both provider methods, degrading each failure independently."""
        captured_at = self._clock()

        wifi_names: frozenset[str] = frozenset()
        wifi_ok = True
        try:
            wifi_names = frozenset(self._provider.list_visible_wifi_networks())
        except PermissionDenied as exc:
            wifi_ok = False
            logger.warning("WiFi listing not permitted: %s", exc)
        except ProviderError as exc:
            wifi_ok = False
            logger.warning("WiFi listing unavailable: %s", exc)

        connections: tuple[ConnectionRecord, ...] = ()
        conn_ok = True
        try:
            # Records carry the capture time of the snapshot they belong to.
            connections = tuple(
                replace(record, observed_at=captured_at)
                for record in self._provider.list_active_connections()
            )
        except ProviderError as exc:
            conn_ok = False
            logger.warning("connection listing unavailable: %s", exc)

        return NetworkSnapshot(
            wifi_network_names=wifi_names,
            connections=connections,
            captured_at=captured_at,
            wifi_available=wifi_ok,
            connections_available=conn_ok,
        )

    def poll_once(self, stop_event: threading.Event | None = None) -> tuple[Alert, ...] | None:
        """Run one poll, diff, alert, publish cycle.

        Returns the alerts raised this cycle, or None when the cycle was
        skipped (both provider calls failed, or *stop_event* was set while
        the provider was being queried).
        """
        try:
            self._phase = MonitorPhase.POLLING
            snapshot = self.capture_snapshot()
            if stop_event is not None and stop_event.is_set():
                logger.debug("stop requested during poll; discarding snapshot")
                return None
            if snapshot.is_empty_capture:
                logger.warning("poll failed entirely; skipping cycle")
                return None

            previous = self._container.get()

            self._phase = MonitorPhase.DIFFING
            if snapshot.connections_available:
                new = diff_connections(previous.previous_connections, snapshot.connections)
                alerts = tuple(generate_alerts(new, now=self._clock()))
                baseline = snapshot.connections
            else:
                alerts = ()
                baseline = previous.previous_connections

            self._phase = MonitorPhase.UPDATING
            if alerts:
                self._alert_log.extend(alerts)
                for alert in alerts:
                    logger.info("%s", alert.message)
            state = MonitorState(
                wifi_network_names=snapshot.wifi_network_names,
                connections=snapshot.connections,
                previous_connections=baseline,
                alerts=self._alert_log.snapshot(),
                cycle=previous.cycle + 1,
                last_updated=snapshot.captured_at,
            )
            self._container.publish(state, alerts)
            logger.debug(
                "cycle %d: %d SSID(s), %d connection(s), %d new alert(s)",
                state.cycle,
                len(state.wifi_network_names),
                len(state.connections),
                len(alerts),
            )
            return alerts
        finally:
            self._phase = MonitorPhase.IDLE

    # -- loop / lifecycle --------------------------------------------------

    def run(self, stop_event: threading.Event | None = None) -> None:
        """Poll until *stop_event* is set (forever if None).

        Exceptions escaping a cycle are logged and the loop continues.
        """
        stop_event = stop_event or self._stop_event
        logger.debug("monitor loop started (interval=%ss)", self._interval)
        while not stop_event.is_set():
            try:
                self.poll_once(stop_event)
            except Exception:
                logger.exception("monitor cycle failed")
            if stop_event.wait(self._interval):
                break
        logger.debug("monitor loop stopped")

    def start(self) -> bool:
        """Start the loop in a daemon thread.

        Returns True if a thread was started.  Returns False if the loop is
        already running, or if a previously stopped thread has not exited
        yet (it may still be inside a provider call); only one thread ever
        writes the monitor state.
        """
        if self.is_running():
            if self._stop_event.is_set():
                logger.warning("previous monitor thread still stopping; not starting")
            return False
        # Each thread gets its own event so a later start cannot revive it.
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self.run, args=(self._stop_event,), name="network-monitor", daemon=True,
        )
        self._thread.start()
        return True

    def stop(self, timeout: float | None = None) -> None:
        """Signal the loop to stop and wait up to *timeout* for the thread.

        The thread handle is kept while the thread is still alive, so
        :meth:`is_running` stays True until it has actually exited.
        """
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            if not self._thread.is_alive():
                self._thread = None

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
