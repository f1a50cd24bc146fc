"""Shared data structures and helpers for Network Monitor."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Iterator, Protocol

logger = logging.getLogger(__name__)

# Fixed alert template; every alert embeds the address and its interface.
ALERT_TEMPLATE = "New Connection Detected: {address} on {interface_name}"


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConnectionRecord:
    """An active, non-loopback address on a local network interface.

    Only ``address`` identifies a record when snapshots are compared;
    ``interface_name`` and ``observed_at`` are descriptive.
    """

    address: str            # e.g. "192.168.1.23" or "fe80::1%wlan0"
    interface_name: str     # e.g. "wlan0"
    observed_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class NetworkSnapshot:
    """Point-in-time capture of visible WiFi networks and active addresses."""

    wifi_network_names: frozenset[str] = frozenset()
    connections: tuple[ConnectionRecord, ...] = ()
    captured_at: datetime = field(default_factory=datetime.now)
    wifi_available: bool = True
    connections_available: bool = True

    @property
    def is_empty_capture(self) -> bool:
        """True when neither provider call produced data."""
        return not (self.wifi_available or self.connections_available)


@dataclass(frozen=True)
class Alert:
    """An alert raised for one newly observed connection."""

    message: str
    raised_at: datetime
    connection: ConnectionRecord


# ---------------------------------------------------------------------------
# Provider errors
# ---------------------------------------------------------------------------

class ProviderError(Exception):
    """Base class for failures reported by a snapshot provider."""


class PermissionDenied(ProviderError):
    """The provider is not authorised to enumerate wireless networks."""


class Unavailable(ProviderError):
    """The provider cannot enumerate networks or interfaces right now."""


# ---------------------------------------------------------------------------
# Provider / Presenter / AlertLog protocols (composition seams)
# ---------------------------------------------------------------------------

class SnapshotProviderProtocol(Protocol):
    """Protocol for sources of raw network state.

    Either call may raise :class:`ProviderError`; the monitor degrades the
    failing half of the snapshot instead of aborting the poll.
    """

    def list_visible_wifi_networks(self) -> frozenset[str]:
        """Return SSIDs currently visible."""
        ...  # pragma: no cover

    def list_active_connections(self) -> list[ConnectionRecord]:
        """Return active non-loopback addresses in enumeration order."""
        ...  # pragma: no cover


class PresenterProtocol(Protocol):
    """Protocol for consumers of monitor state.

    ``update`` is called from the monitor thread after each successful
    cycle with the freshly published state and the alerts it added.
    """

    def update(self, state: Any, new_alerts: tuple[Alert, ...]) -> None:
        """Receive a new :class:`~netmonitor.monitor.MonitorState`."""
        ...  # pragma: no cover


class AlertLogProtocol(Protocol):
    """Protocol for alert storage used by the monitor loop."""

    def extend(self, alerts: Iterable[Alert]) -> None:
        """Append *alerts* in order."""
        ...  # pragma: no cover

    def snapshot(self) -> tuple[Alert, ...]:
        """Return the stored alerts, oldest first."""
        ...  # pragma: no cover

    def __len__(self) -> int:
        ...  # pragma: no cover

    def __iter__(self) -> Iterator[Alert]:
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Command runner protocol (subprocess injection seam)
# ---------------------------------------------------------------------------

class CommandRunner(Protocol):
    """Protocol for running external commands.

    Provides an injection seam so callers can substitute a fake runner in
    tests instead of patching ``subprocess`` globally.
    """

    def run(
        self,
        cmd: list[str],
        *,
        capture_output: bool = True,
        text: bool = True,
        timeout: int | None = None,
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess[Any]:
        """Run *cmd* and return a CompletedProcess."""
        ...  # pragma: no cover


class SubprocessRunner:
    """Default CommandRunner that delegates to the real ``subprocess`` module."""

    def run(
        self,
        cmd: list[str],
        *,
        capture_output: bool = True,
        text: bool = True,
        timeout: int | None = None,
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess[Any]:
        """Run *cmd* via ``subprocess.run``."""
        return subprocess.run(
            cmd,
            capture_output=capture_output,
            text=text,
            timeout=timeout,
            env=env,
        )


def _minimal_env() -> dict[str, str]:
    """Build a minimal environment for subprocess calls.

    Only passes PATH, LC_ALL, and HOME so the full user environment does
    not leak into child processes.  ``LC_ALL=C`` keeps tool output parseable.
    """
    return {
        "PATH": os.environ.get("PATH", "/usr/bin:/bin"),
        "LC_ALL": "C",
        "HOME": os.environ.get("HOME", ""),
    }


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def format_alert_message(connection: ConnectionRecord) -> str:
    """Render the fixed alert template for *connection*."""
    return ALERT_TEMPLATE.format(
        address=connection.address,
        interface_name=connection.interface_name,
    )


def format_timestamp(ts: datetime | None) -> str:
    """Format *ts* as ``HH:MM:SS`` for display; ``-`` when missing."""
    if ts is None:
        return "-"
    return ts.strftime("%H:%M:%S")
