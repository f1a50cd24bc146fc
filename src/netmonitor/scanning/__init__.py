"""Network state providers (nmcli SSIDs, psutil interface addresses)."""

from netmonitor.scanning.interfaces import list_active_connections  # noqa: F401
from netmonitor.scanning.nmcli import list_wifi_ssids  # noqa: F401
from netmonitor.scanning.provider import SystemSnapshotProvider  # noqa: F401
