"""Visible WiFi network listing via nmcli (NetworkManager CLI).

Only SSIDs are collected; they form the WiFi half of a
:class:`~netmonitor.net_common.NetworkSnapshot`.  Can also be invoked as a
standalone tool::

    python -m netmonitor.scanning.nmcli                  # list SSIDs
    python -m netmonitor.scanning.nmcli -i wlan1         # specific interface
    python -m netmonitor.scanning.nmcli --json           # JSON output
"""

from __future__ import annotations

import argparse
import json
import logging
import re
import subprocess
import sys

from netmonitor.net_common import (
    CommandRunner,
    PermissionDenied,
    SubprocessRunner,
    Unavailable,
    _minimal_env,
)

logger = logging.getLogger(__name__)

_DEFAULT_RUNNER = SubprocessRunner()
NMCLI_TIMEOUT = 15  # seconds, per nmcli invocation

# stderr fragments nmcli/polkit emit when the caller lacks authorisation
_PERMISSION_MARKERS = ("not authorized", "permission denied", "insufficient privileges")


# ---------------------------------------------------------------------------
# nmcli output parsing
# ---------------------------------------------------------------------------

def _split_nmcli_line(line: str) -> list[str]:
    """Split a nmcli terse-mode line on unescaped colons.

    Colons inside field values are escaped as ``\\:``.  We split on
    unescaped colons and then unescape the fields.
    """
    parts = re.split(r"(?<!\\):", line)
    return [p.replace("\\:", ":").replace("\\\\", "\\") for p in parts]


def _strip_quotes(ssid: str) -> str:
    """Remove one pair of surrounding double quotes, if present."""
    if len(ssid) >= 2 and ssid.startswith('"') and ssid.endswith('"'):
        return ssid[1:-1]
    return ssid


def parse_nmcli_ssids(output: str) -> frozenset[str]:
    """Parse ``nmcli -t -f SSID device wifi list`` output into a set of SSIDs.

    Hidden networks (empty SSID) are dropped and duplicates collapse,
    since several BSSIDs commonly broadcast the same name.
    """
    names: set[str] = set()
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        ssid = _strip_quotes(_split_nmcli_line(line)[0])
        if ssid and ssid != "--":
            names.add(ssid)
    return frozenset(names)


def _is_permission_error(stderr: str) -> bool:
    lowered = stderr.lower()
    return any(marker in lowered for marker in _PERMISSION_MARKERS)


# ---------------------------------------------------------------------------
# Live listing (requires nmcli on the system)
# ---------------------------------------------------------------------------

def list_wifi_ssids(
    interface: str | None = None,
    *,
    runner: CommandRunner | None = None,
) -> frozenset[str]:
    """List SSIDs of visible WiFi networks using nmcli.

    Triggers a rescan first (needs root), then lists cached results.
    Falls back to cached results if the rescan fails (non-root).

    Args:
        interface: Optional wireless interface name.
        runner: Optional CommandRunner for subprocess calls (testing seam).

    Raises:
        Unavailable: nmcli is missing, timed out, or exited with an error.
        PermissionDenied: nmcli refused the listing for lack of authorisation.
    """
    runner = runner or _DEFAULT_RUNNER
    env = _minimal_env()

    rescan_cmd = ["nmcli", "device", "wifi", "rescan"]
    if interface:
        rescan_cmd += ["ifname", interface]

    try:
        runner.run(rescan_cmd, capture_output=True, timeout=NMCLI_TIMEOUT, env=env)
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError) as exc:
        logger.debug("nmcli rescan failed (using cached results): %s", exc)

    list_cmd = ["nmcli", "-t", "-f", "SSID", "device", "wifi", "list"]
    if interface:
        list_cmd += ["ifname", interface]

    try:
        result = runner.run(
            list_cmd, capture_output=True, text=True, timeout=NMCLI_TIMEOUT, env=env,
        )
    except subprocess.TimeoutExpired as exc:
        raise Unavailable(f"nmcli timed out after {NMCLI_TIMEOUT}s") from exc
    except (FileNotFoundError, OSError) as exc:
        raise Unavailable(f"nmcli not runnable: {exc}") from exc

    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        if _is_permission_error(stderr):
            raise PermissionDenied(stderr or "nmcli: not authorized")
        raise Unavailable(f"nmcli exited {result.returncode}: {stderr}")

    names = parse_nmcli_ssids(result.stdout or "")
    logger.debug("nmcli: %d visible SSID(s)", len(names))
    return names


# ---------------------------------------------------------------------------
# Standalone CLI
# ---------------------------------------------------------------------------

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for standalone invocation."""
    parser = argparse.ArgumentParser(
        description="List visible WiFi networks via nmcli.",
    )
    parser.add_argument(
        "-i", "--interface",
        help="Wireless interface to scan (default: all)",
    )
    parser.add_argument(
        "--json", action="store_true", dest="json_output",
        help="Output as JSON instead of plain text",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """List visible SSIDs and print them to stdout."""
    args = _parse_args(argv)
    try:
        names = sorted(list_wifi_ssids(interface=args.interface))
    except PermissionDenied as exc:
        print(f"ERROR: permission denied: {exc}", file=sys.stderr)
        sys.exit(1)
    except Unavailable as exc:
        print(f"ERROR: WiFi listing unavailable: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.json_output:
        print(json.dumps(names, indent=2))
        return
    if not names:
        print("No networks found.")
        return
    for name in names:
        print(name)
    print(f"\n{len(names)} network(s) found.")


if __name__ == "__main__":
    main()
