"""Append-only alert storage.

:class:`AlertLog` keeps every alert for the lifetime of the process.
:class:`BoundedAlertLog` keeps only the newest *max_alerts* and can be
passed to the monitor wherever an :class:`AlertLog` is accepted.
"""

from __future__ import annotations

import collections
import threading
from typing import Iterable, Iterator

from netmonitor.net_common import Alert


class AlertLog:
    """Thread-safe, unbounded, append-only sequence of alerts.

    No deduplication, no expiry, no removal.
    """

    def __init__(self) -> None:
        self._alerts: list[Alert] = []
        self._lock = threading.Lock()
        self._cached: tuple[Alert, ...] | None = ()

    def append(self, alert: Alert) -> None:
        """Append one alert (thread-safe)."""
        with self._lock:
            self._alerts.append(alert)
            self._cached = None

    def extend(self, alerts: Iterable[Alert]) -> None:
        """Append *alerts* in order (thread-safe)."""
        batch = list(alerts)
        if not batch:
            return
        with self._lock:
            self._alerts.extend(batch)
            self._cached = None

    def snapshot(self) -> tuple[Alert, ...]:
        """Return an immutable copy of the log, oldest first.

        The copy is cached and only rebuilt after the log changes, so
        repeated calls between appends return the same tuple.
        """
        with self._lock:
            if self._cached is None:
                self._cached = tuple(self._alerts)
            return self._cached

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)

    def __iter__(self) -> Iterator[Alert]:
        return iter(self.snapshot())


class BoundedAlertLog(AlertLog):
    """Ring-buffer alert log retaining only the newest *max_alerts* entries.

    Args:
        max_alerts: Capacity; must be at least 1.
    """

    def __init__(self, max_alerts: int) -> None:
        if max_alerts < 1:
            raise ValueError(f"max_alerts must be >= 1, got {max_alerts}")
        super().__init__()
        self._alerts: collections.deque[Alert] = collections.deque(maxlen=max_alerts)  # type: ignore[assignment]

    @property
    def max_alerts(self) -> int:
        return self._alerts.maxlen or 0
