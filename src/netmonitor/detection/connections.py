"""New-connection detection: diff two address lists and raise alerts.

A connection is *new* when its address was absent from the immediately
preceding observation.  Only one step of history is kept, so an address
that drops out and returns between two consecutive polls is not reported
again unless it was missing from the poll right before it.

Can be used standalone to diff two JSON address dumps (as produced by
``python -m netmonitor.scanning.interfaces --json``)::

    python -m netmonitor.detection.connections before.json after.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from typing import Iterable, Sequence

from netmonitor.net_common import Alert, ConnectionRecord, format_alert_message

_LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Diff engine
# ---------------------------------------------------------------------------

def diff_connections(
    previous: Iterable[ConnectionRecord],
    current: Sequence[ConnectionRecord],
) -> list[ConnectionRecord]:
    """Return the records in *current* whose address is not in *previous*.

    Comparison is exact string equality on ``address``; interface name and
    timestamp are ignored.  The result keeps the order of *current*.
    Duplicate addresses within *current* are all returned when new.

    Args:
        previous: Records from the last successful poll.
        current: Records from this poll.
    """
    seen = {record.address for record in previous}
    return [record for record in current if record.address not in seen]


# ---------------------------------------------------------------------------
# Alert generator
# ---------------------------------------------------------------------------

def generate_alerts(
    new_connections: Iterable[ConnectionRecord],
    *,
    now: datetime | None = None,
) -> list[Alert]:
    """Build one :class:`Alert` per connection, in input order.

    All alerts from a single call share the same ``raised_at`` (*now*,
    defaulting to the current time).
    """
    raised_at = now or datetime.now()
    return [
        Alert(
            message=format_alert_message(connection),
            raised_at=raised_at,
            connection=connection,
        )
        for connection in new_connections
    ]


def check_for_new_connections(
    previous: Iterable[ConnectionRecord],
    current: Sequence[ConnectionRecord],
    *,
    now: datetime | None = None,
) -> list[Alert]:
    """Diff *previous* against *current* and return alerts for new addresses."""
    new = diff_connections(previous, current)
    if new:
        _LOGGER.debug("detected %d new connection(s)", len(new))
    return generate_alerts(new, now=now)


# ---------------------------------------------------------------------------
# Standalone CLI
# ---------------------------------------------------------------------------

def _load_records(filepath: str) -> list[ConnectionRecord]:
    """Load ``[{"address": ..., "interface": ...}, ...]`` from a JSON file.

    Returns an empty list if the file is missing or invalid.
    """
    try:
        with open(filepath, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        _LOGGER.warning("connections: failed to load %s: %s", filepath, exc)
        return []

    if not isinstance(data, list):
        _LOGGER.warning("connections: expected a JSON array in %s", filepath)
        return []

    records: list[ConnectionRecord] = []
    for i, entry in enumerate(data):
        if not isinstance(entry, dict) or not entry.get("address"):
            _LOGGER.debug("connections: skipping entry at index %d", i)
            continue
        records.append(ConnectionRecord(
            address=str(entry["address"]),
            interface_name=str(entry.get("interface", "")),
        ))
    return records


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for standalone invocation."""
    parser = argparse.ArgumentParser(
        description="Report addresses present in AFTER but not in BEFORE.",
    )
    parser.add_argument("before", help="JSON address dump from the earlier poll")
    parser.add_argument("after", help="JSON address dump from the later poll")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Print an alert line per new address; exit 2 when any are found."""
    args = _parse_args(argv)
    alerts = check_for_new_connections(
        _load_records(args.before), _load_records(args.after),
    )
    if not alerts:
        print("OK: no new connections.")
        return
    print(f"ALERT: {len(alerts)} new connection(s)")
    for alert in alerts:
        print(f"  {alert.message}")
    sys.exit(2)


if __name__ == "__main__":
    main()
