"""System snapshot provider combining nmcli and psutil."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from netmonitor.net_common import CommandRunner, ConnectionRecord
from netmonitor.scanning.interfaces import list_active_connections
from netmonitor.scanning.nmcli import list_wifi_ssids


class SystemSnapshotProvider:
    """Provider backed by the local system.

    Conforms to :class:`~netmonitor.net_common.SnapshotProviderProtocol`.
    WiFi names come from nmcli, addresses from psutil; the two calls fail
    independently.

    Args:
        interface: Optional wireless interface for nmcli.
        runner: Optional CommandRunner for subprocess calls (testing seam).
        clock: Source of capture timestamps.
    """

    def __init__(
        self,
        interface: str | None = None,
        runner: CommandRunner | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._interface = interface
        self._runner = runner
        self._clock = clock

    @property
    def interface(self) -> str | None:
        return self._interface

    def list_visible_wifi_networks(self) -> frozenset[str]:
        """List visible SSIDs via nmcli."""
        return list_wifi_ssids(self._interface, runner=self._runner)

    def list_active_connections(self) -> list[ConnectionRecord]:
        """List active interface addresses via psutil."""
        return list_active_connections(observed_at=self._clock())
