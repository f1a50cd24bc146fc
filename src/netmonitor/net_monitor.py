#!/usr/bin/env python3
"""Network Monitor: alert on newly observed local network addresses.

Polls visible WiFi networks (nmcli) and active interface addresses
(psutil) on a fixed interval and raises an alert for every address that
was not present in the previous poll.  Results are shown in a real-time
Rich terminal display.

Usage:
    net-monitor                          # poll every 30 seconds
    net-monitor -t 10                    # poll every 10 seconds
    net-monitor -i wlan1                 # scan WiFi on a specific interface
    net-monitor --max-alerts 500         # keep only the newest 500 alerts
    net-monitor --once                   # single poll, print tables, exit
    net-monitor --once --json            # single poll as JSON
"""

from __future__ import annotations

import sys

MIN_PYTHON = (3, 10)
if sys.version_info < MIN_PYTHON:
    sys.exit(f"Python {MIN_PYTHON[0]}.{MIN_PYTHON[1]}+ is required (found {sys.version}).")

import argparse
import json
import logging
import signal
import threading
from typing import Any

from rich.console import Console
from rich.live import Live

from netmonitor.detection.alert_log import AlertLog, BoundedAlertLog
from netmonitor.display.tables import RichPresenter
from netmonitor.monitor import DEFAULT_POLL_INTERVAL, MonitorState, NetworkMonitor
from netmonitor.net_common import AlertLogProtocol
from netmonitor.scanning.provider import SystemSnapshotProvider

_LOGGER = logging.getLogger("netmonitor.net_monitor")
DEBUG_LOG = "/tmp/net_monitor_debug.log"
_BANNER = "[bold cyan]Network Monitor[/bold cyan]"


# ---------------------------------------------------------------------------
# Argument parsing / setup
# ---------------------------------------------------------------------------

def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value!r}")
    return number


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {value!r}")
    return number


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Network Monitor: alert on newly observed local addresses",
    )
    parser.add_argument(
        "-t", "--interval",
        type=_positive_float,
        default=DEFAULT_POLL_INTERVAL,
        metavar="SECONDS",
        help=f"seconds between polls (default: {DEFAULT_POLL_INTERVAL:g})",
    )
    parser.add_argument(
        "-i", "--interface",
        help="wireless interface nmcli should scan (default: all)",
    )
    parser.add_argument(
        "--max-alerts",
        type=_positive_int,
        metavar="N",
        help="keep only the newest N alerts (default: keep all)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="run a single poll, print the result and exit",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="with --once, print the result as JSON instead of tables",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help=f"enable debug logging to stderr and {DEBUG_LOG}",
    )
    args = parser.parse_args(argv)
    if args.json_output and not args.once:
        parser.error("--json requires --once")
    return args


def _configure_logging(debug: bool) -> None:
    """Enable DEBUG logging to stderr and the debug log file when *debug*."""
    if not debug:
        logging.basicConfig(
            level=logging.WARNING,
            format="%(name)s: %(levelname)s: %(message)s",
            stream=sys.stderr,
        )
        return
    log_format = "%(asctime)s %(name)s: %(levelname)s: %(message)s"
    logging.basicConfig(
        level=logging.DEBUG,
        format=log_format,
        stream=sys.stderr,
    )
    logging.getLogger("netmonitor").setLevel(logging.DEBUG)
    try:
        file_handler = logging.FileHandler(DEBUG_LOG, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(log_format))
        logging.getLogger().addHandler(file_handler)
    except OSError:
        pass  # Debug log file optional; stderr still works


def _dump_startup_config(args: argparse.Namespace) -> None:
    """Log startup configuration (call only when --debug)."""
    _LOGGER.debug(
        "CLI: interval=%s interface=%s max_alerts=%s once=%s json=%s",
        args.interval,
        args.interface,
        args.max_alerts,
        args.once,
        args.json_output,
    )
    _LOGGER.debug("paths: debug_log=%s", DEBUG_LOG)


def _build_alert_log(max_alerts: int | None) -> AlertLogProtocol:
    if max_alerts:
        return BoundedAlertLog(max_alerts)
    return AlertLog()


def build_monitor(args: argparse.Namespace) -> NetworkMonitor:
    """Construct a :class:`NetworkMonitor` from parsed arguments."""
    provider = SystemSnapshotProvider(interface=args.interface)
    return NetworkMonitor(
        provider,
        interval=args.interval,
        alert_log=_build_alert_log(args.max_alerts),
    )


def state_to_dict(state: MonitorState) -> dict[str, Any]:
    """Convert *state* into JSON-serialisable primitives."""
    return {
        "cycle": state.cycle,
        "last_updated": state.last_updated.isoformat() if state.last_updated else None,
        "wifi_networks": sorted(state.wifi_network_names),
        "connections": [
            {
                "address": c.address,
                "interface": c.interface_name,
                "observed_at": c.observed_at.isoformat(),
            }
            for c in state.connections
        ],
        "alerts": [
            {"message": a.message, "raised_at": a.raised_at.isoformat()}
            for a in state.alerts
        ],
    }


# ---------------------------------------------------------------------------
# Run modes
# ---------------------------------------------------------------------------

def run_once(monitor: NetworkMonitor, console: Console, *, json_output: bool = False) -> int:
    """Run one poll and print the result.

    Returns the process exit code: 0 on success, 1 if the poll was skipped
    because no network data could be gathered.
    """
    alerts = monitor.poll_once()
    if alerts is None:
        if json_output:
            print(json.dumps({"error": "no network data available"}))
        else:
            console.print(f"{_BANNER} — [yellow]no network data available[/yellow]")
        return 1
    state = monitor.state
    if json_output:
        print(json.dumps(state_to_dict(state), indent=2))
    else:
        console.print(RichPresenter(interval=monitor.interval).render(state))
    return 0


def run_live(monitor: NetworkMonitor, console: Console, stop_event: threading.Event) -> None:
    """Run the monitor in the background and refresh a Live display until stopped."""
    presenter = RichPresenter(interval=monitor.interval)
    monitor.subscribe(presenter.update)
    with Live(
        presenter.render(monitor.state),
        console=console,
        refresh_per_second=1,
        screen=True,
    ) as live:
        presenter.attach(live)
        monitor.start()
        try:
            while not stop_event.wait(0.5):
                if not monitor.is_running():
                    _LOGGER.warning("monitor thread exited unexpectedly")
                    break
        finally:
            monitor.stop(timeout=5)


def main(argv: list[str] | None = None) -> None:
    """Run the network monitor TUI loop.

    Handles KeyboardInterrupt (Ctrl+C) and SIGTERM gracefully so the
    terminal is left clean when the user exits.
    """
    args = _parse_args(argv)
    _configure_logging(args.debug)
    if args.debug:
        _dump_startup_config(args)
    console = Console()
    monitor = build_monitor(args)

    if args.once:
        sys.exit(run_once(monitor, console, json_output=args.json_output))

    stop_event = threading.Event()

    def _handle_sigterm(signum: int, frame: Any) -> None:
        _LOGGER.debug("received signal %d; stopping", signum)
        stop_event.set()

    signal.signal(signal.SIGTERM, _handle_sigterm)

    console.print(f"{_BANNER} — polling every {args.interval:g}s…\n")
    try:
        run_live(monitor, console, stop_event)
    except KeyboardInterrupt:
        stop_event.set()
        monitor.stop(timeout=5)
    console.print(f"\n{_BANNER} — stopped.")
    sys.exit(0)


if __name__ == "__main__":
    main()
