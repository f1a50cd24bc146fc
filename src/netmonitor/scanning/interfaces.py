"""Active local interface addresses via psutil.

Enumerates addresses on interfaces that are up and skips loopback
addresses; the result forms the connections half of a
:class:`~netmonitor.net_common.NetworkSnapshot`.  Can be used standalone::

    python -m netmonitor.scanning.interfaces            # print addresses
    python -m netmonitor.scanning.interfaces --json     # JSON output
"""

from __future__ import annotations

import argparse
import ipaddress
import json
import logging
import socket
import sys
from datetime import datetime

import psutil

from netmonitor.net_common import ConnectionRecord, Unavailable

logger = logging.getLogger(__name__)

_IP_FAMILIES = (socket.AF_INET, socket.AF_INET6)


def is_loopback_address(address: str) -> bool:
    """Return True if *address* is a loopback literal.

    IPv6 scope suffixes (``fe80::1%eth0``) are ignored for the test.
    Unparseable addresses are not treated as loopback.
    """
    host = address.split("%", 1)[0]
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def list_active_connections(observed_at: datetime | None = None) -> list[ConnectionRecord]:
    """Return non-loopback IP addresses on interfaces that are up.

    Order follows psutil's interface enumeration order, then each
    interface's address order.  Every record carries the same
    *observed_at* timestamp (defaults to now).

    Raises:
        Unavailable: psutil could not enumerate interfaces.
    """
    observed_at = observed_at or datetime.now()
    try:
        stats = psutil.net_if_stats()
        addrs = psutil.net_if_addrs()
    except (OSError, psutil.Error) as exc:
        raise Unavailable(f"interface enumeration failed: {exc}") from exc

    records: list[ConnectionRecord] = []
    for name, snics in addrs.items():
        stat = stats.get(name)
        if stat is None or not stat.isup:
            continue
        for snic in snics:
            if snic.family not in _IP_FAMILIES or not snic.address:
                continue
            if is_loopback_address(snic.address):
                continue
            records.append(ConnectionRecord(
                address=snic.address,
                interface_name=name,
                observed_at=observed_at,
            ))

    logger.debug("interfaces: %d active address(es)", len(records))
    return records


# ---------------------------------------------------------------------------
# Standalone CLI
# ---------------------------------------------------------------------------

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for standalone invocation."""
    parser = argparse.ArgumentParser(
        description="List active non-loopback addresses on local interfaces.",
    )
    parser.add_argument(
        "--json", action="store_true", dest="json_output",
        help="Output as JSON instead of a table",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Print active interface addresses to stdout."""
    args = _parse_args(argv)
    try:
        records = list_active_connections()
    except Unavailable as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.json_output:
        data = [
            {"address": r.address, "interface": r.interface_name}
            for r in records
        ]
        print(json.dumps(data, indent=2))
        return
    if not records:
        print("No active addresses.")
        return
    print(f"{'Interface':<16} {'Address':<40}")
    print("-" * 57)
    for r in records:
        print(f"{r.interface_name:<16} {r.address:<40}")


if __name__ == "__main__":
    main()
