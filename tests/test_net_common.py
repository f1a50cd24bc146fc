"""Tests for netmonitor.net_common — shared data model and helpers."""

from __future__ import annotations

import dataclasses
from datetime import datetime
from unittest.mock import patch

import pytest

from netmonitor.net_common import (
    ALERT_TEMPLATE,
    Alert,
    ConnectionRecord,
    NetworkSnapshot,
    PermissionDenied,
    ProviderError,
    SubprocessRunner,
    Unavailable,
    _minimal_env,
    format_alert_message,
    format_timestamp,
)

T0 = datetime(2024, 5, 1, 12, 0, 0)


class TestConnectionRecord:
    """ConnectionRecord is an immutable description of one address."""

    def test_is_frozen(self):
        rec = ConnectionRecord(address="10.0.0.2", interface_name="wlan0", observed_at=T0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            rec.address = "10.0.0.3"  # type: ignore[misc]

    def test_observed_at_defaults_to_now(self):
        rec = ConnectionRecord(address="10.0.0.2", interface_name="wlan0")
        assert isinstance(rec.observed_at, datetime)


class TestNetworkSnapshot:
    """NetworkSnapshot records what each provider call returned."""

    def test_defaults_are_empty_and_available(self):
        snap = NetworkSnapshot()
        assert snap.wifi_network_names == frozenset()
        assert snap.connections == ()
        assert snap.wifi_available and snap.connections_available
        assert not snap.is_empty_capture

    def test_empty_capture_when_both_unavailable(self):
        snap = NetworkSnapshot(wifi_available=False, connections_available=False)
        assert snap.is_empty_capture

    def test_partial_failure_is_not_empty_capture(self):
        assert not NetworkSnapshot(wifi_available=False).is_empty_capture
        assert not NetworkSnapshot(connections_available=False).is_empty_capture

    def test_is_frozen(self):
        snap = NetworkSnapshot()
        with pytest.raises(dataclasses.FrozenInstanceError):
            snap.connections = ()  # type: ignore[misc]


class TestErrors:
    """Provider errors share a common base."""

    def test_permission_denied_is_provider_error(self):
        assert issubclass(PermissionDenied, ProviderError)

    def test_unavailable_is_provider_error(self):
        assert issubclass(Unavailable, ProviderError)


class TestFormatAlertMessage:
    """format_alert_message renders the fixed template."""

    def test_embeds_address_and_interface(self):
        rec = ConnectionRecord(address="192.168.1.9", interface_name="eth0", observed_at=T0)
        assert format_alert_message(rec) == "New Connection Detected: 192.168.1.9 on eth0"

    def test_matches_template(self):
        rec = ConnectionRecord(address="fe80::1%wlan0", interface_name="wlan0", observed_at=T0)
        expected = ALERT_TEMPLATE.format(address="fe80::1%wlan0", interface_name="wlan0")
        assert format_alert_message(rec) == expected


class TestFormatTimestamp:
    def test_formats_time(self):
        assert format_timestamp(T0) == "12:00:00"

    def test_none_is_dash(self):
        assert format_timestamp(None) == "-"


class TestAlert:
    def test_alert_holds_connection(self):
        rec = ConnectionRecord(address="10.0.0.5", interface_name="wlan0", observed_at=T0)
        alert = Alert(message="m", raised_at=T0, connection=rec)
        assert alert.connection is rec


class TestMinimalEnv:
    """_minimal_env passes only PATH, LC_ALL, and HOME."""

    def test_only_expected_keys(self):
        env = _minimal_env()
        assert set(env) == {"PATH", "LC_ALL", "HOME"}
        assert env["LC_ALL"] == "C"

    def test_path_fallback(self):
        with patch.dict("os.environ", {}, clear=True):
            assert _minimal_env()["PATH"] == "/usr/bin:/bin"


class TestSubprocessRunner:
    """SubprocessRunner delegates to subprocess.run."""

    @patch("netmonitor.net_common.subprocess.run")
    def test_run_passes_arguments(self, mock_run):
        SubprocessRunner().run(["nmcli"], timeout=5, env={"PATH": "/bin"})
        mock_run.assert_called_once_with(
            ["nmcli"], capture_output=True, text=True, timeout=5, env={"PATH": "/bin"},
        )
