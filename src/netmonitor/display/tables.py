"""Rich TUI table builders and presenter for Network Monitor.

Builds Rich :class:`Table` objects for visible WiFi networks, active
connections, and security alerts.  Can be used standalone for testing
table rendering::

    python -m netmonitor.display.tables          # render demo tables
"""

from __future__ import annotations

from typing import Iterable, Sequence

from rich.console import Group
from rich.live import Live
from rich.markup import escape
from rich.table import Table

from netmonitor.monitor import MonitorState
from netmonitor.net_common import Alert, ConnectionRecord, format_timestamp

DEFAULT_ALERT_ROWS = 20


# ---------------------------------------------------------------------------
# WiFi networks table
# ---------------------------------------------------------------------------

def build_wifi_table(names: Iterable[str]) -> Table:
    """Build a Rich Table listing visible WiFi network names.

    Names are sorted so the table is stable between refreshes.
    """
    ordered = sorted(names)
    table = Table(
        title="Available WiFi Networks",
        title_style="bold cyan",
        caption=f"{len(ordered)} network(s) visible",
        caption_style="grey50",
        expand=True,
        show_lines=False,
        padding=(0, 1),
    )
    table.add_column("#", style="grey50", width=3, justify="right")
    table.add_column("SSID", style="white", min_width=15, max_width=40)

    for i, name in enumerate(ordered, 1):
        table.add_row(str(i), escape(name))

    return table


# ---------------------------------------------------------------------------
# Active connections table
# ---------------------------------------------------------------------------

def build_connections_table(connections: Sequence[ConnectionRecord]) -> Table:
    """Build a Rich Table of active addresses in capture order."""
    table = Table(
        title="Active Connections",
        title_style="bold cyan",
        caption=f"{len(connections)} address(es)",
        caption_style="grey50",
        expand=True,
        show_lines=False,
        padding=(0, 1),
    )
    table.add_column("#", style="grey50", width=3, justify="right")
    table.add_column("Address", style="white", min_width=15, max_width=45)
    table.add_column("Interface", style="cyan", width=12)
    table.add_column("Seen", style="grey50", width=8)

    for i, conn in enumerate(connections, 1):
        table.add_row(
            str(i),
            escape(conn.address),
            escape(conn.interface_name),
            format_timestamp(conn.observed_at),
        )

    return table


# ---------------------------------------------------------------------------
# Alert table
# ---------------------------------------------------------------------------

def build_alert_table(alerts: Sequence[Alert], limit: int | None = DEFAULT_ALERT_ROWS) -> Table:
    """Build a Rich Table showing security alerts, newest first.

    Args:
        alerts: Alerts oldest-first, as stored in the alert log.
        limit: Maximum rows to show; None shows all.  The caption always
            reports the full count.
    """
    newest = list(reversed(alerts))
    if limit is not None:
        newest = newest[:limit]

    table = Table(
        title="Security Alerts",
        title_style="bold red",
        caption=f"{len(alerts)} alert(s)",
        caption_style="grey50",
        expand=True,
        show_lines=False,
        padding=(0, 1),
    )
    table.add_column("Time", style="grey50", width=8)
    table.add_column("Message", style="red", min_width=20)

    for alert in newest:
        table.add_row(format_timestamp(alert.raised_at), escape(alert.message))

    return table


# ---------------------------------------------------------------------------
# Status line
# ---------------------------------------------------------------------------

def build_status_table(state: MonitorState, interval: float) -> Table:
    """Build a one-row summary of the monitor's progress."""
    table = Table(
        title="Network Security Monitor",
        title_style="bold cyan",
        expand=True,
        show_header=True,
        padding=(0, 1),
    )
    table.add_column("Cycles", justify="right", width=7)
    table.add_column("Last update", width=11)
    table.add_column("Interval", justify="right", width=9)
    table.add_column("Alerts", justify="right", width=7)
    table.add_row(
        str(state.cycle),
        format_timestamp(state.last_updated),
        f"{interval:g}s",
        str(len(state.alerts)),
    )
    return table


# ---------------------------------------------------------------------------
# Presenter
# ---------------------------------------------------------------------------

class RichPresenter:
    """Presenter that renders monitor state into Rich tables.

    Conforms to :class:`~netmonitor.net_common.PresenterProtocol`.  When a
    :class:`~rich.live.Live` display is attached, each ``update`` refreshes it.

    Args:
        live: Optional Live display to refresh.
        interval: Poll interval shown in the status row.
        alert_rows: Maximum alert rows rendered.
    """

    def __init__(
        self,
        live: Live | None = None,
        *,
        interval: float = 30.0,
        alert_rows: int | None = DEFAULT_ALERT_ROWS,
    ) -> None:
        self._live = live
        self._interval = interval
        self._alert_rows = alert_rows

    def attach(self, live: Live) -> None:
        self._live = live

    def render(self, state: MonitorState) -> Group:
        """Render *state* as a group of tables."""
        return Group(
            build_status_table(state, self._interval),
            build_wifi_table(state.wifi_network_names),
            build_connections_table(state.connections),
            build_alert_table(state.alerts, limit=self._alert_rows),
        )

    def update(self, state: MonitorState, new_alerts: tuple[Alert, ...]) -> None:
        """Refresh the attached Live display with *state*."""
        if self._live is not None:
            self._live.update(self.render(state))


# ---------------------------------------------------------------------------
# Standalone CLI (demo)
# ---------------------------------------------------------------------------

def main() -> None:
    """Render demo tables with sample data for visual testing."""
    from rich.console import Console

    from netmonitor.detection.connections import generate_alerts

    conns = (
        ConnectionRecord(address="192.168.1.23", interface_name="wlan0"),
        ConnectionRecord(address="fe80::1c2b:3aff:fe4d:5e6f%wlan0", interface_name="wlan0"),
        ConnectionRecord(address="10.8.0.2", interface_name="tun0"),
    )
    state = MonitorState(
        wifi_network_names=frozenset({"HomeNet", "Office", "CoffeeShop"}),
        connections=conns,
        alerts=tuple(generate_alerts(conns[2:])),
        cycle=3,
    )
    Console().print(RichPresenter().render(state))


if __name__ == "__main__":
    main()
