"""Tests for netmonitor.detection.alert_log — alert storage."""

from __future__ import annotations

import threading
from datetime import datetime

import pytest

from netmonitor.detection.alert_log import AlertLog, BoundedAlertLog
from netmonitor.net_common import Alert, ConnectionRecord

T0 = datetime(2024, 5, 1, 12, 0, 0)


def make_alert(i: int) -> Alert:
    conn = ConnectionRecord(address=f"10.0.0.{i}", interface_name="wlan0", observed_at=T0)
    return Alert(message=f"alert {i}", raised_at=T0, connection=conn)


class TestAlertLog:
    """AlertLog is append-only and unbounded."""

    def test_starts_empty(self):
        log = AlertLog()
        assert len(log) == 0
        assert log.snapshot() == ()

    def test_append_and_extend_keep_order(self):
        log = AlertLog()
        log.append(make_alert(1))
        log.extend([make_alert(2), make_alert(3)])
        assert [a.message for a in log] == ["alert 1", "alert 2", "alert 3"]

    def test_no_deduplication(self):
        log = AlertLog()
        alert = make_alert(1)
        log.extend([alert, alert])
        assert len(log) == 2

    def test_snapshot_is_immutable_copy(self):
        log = AlertLog()
        log.append(make_alert(1))
        snap = log.snapshot()
        log.append(make_alert(2))
        assert isinstance(snap, tuple)
        assert len(snap) == 1

    def test_snapshot_reused_until_log_changes(self):
        log = AlertLog()
        log.append(make_alert(1))
        first = log.snapshot()
        log.extend([])
        assert log.snapshot() is first
        log.append(make_alert(2))
        assert log.snapshot() is not first
        assert len(log.snapshot()) == 2

    def test_length_is_monotonic(self):
        log = AlertLog()
        lengths = []
        for batch in ([1, 2], [], [3], [4, 5, 6]):
            log.extend(make_alert(i) for i in batch)
            lengths.append(len(log))
        assert lengths == [2, 2, 3, 6]

    def test_concurrent_appends(self):
        log = AlertLog()

        def worker(offset: int) -> None:
            for i in range(100):
                log.append(make_alert(offset + i))

        threads = [threading.Thread(target=worker, args=(n * 100,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(log) == 400


class TestBoundedAlertLog:
    """BoundedAlertLog keeps only the newest entries."""

    def test_evicts_oldest(self):
        log = BoundedAlertLog(2)
        log.extend([make_alert(1), make_alert(2), make_alert(3)])
        assert [a.message for a in log.snapshot()] == ["alert 2", "alert 3"]

    def test_snapshot_refreshed_after_eviction(self):
        log = BoundedAlertLog(2)
        log.extend([make_alert(1), make_alert(2)])
        first = log.snapshot()
        log.append(make_alert(3))
        assert [a.message for a in log.snapshot()] == ["alert 2", "alert 3"]
        assert log.snapshot() is not first

    def test_len_capped(self):
        log = BoundedAlertLog(3)
        log.extend(make_alert(i) for i in range(10))
        assert len(log) == 3

    def test_max_alerts_property(self):
        assert BoundedAlertLog(5).max_alerts == 5

    @pytest.mark.parametrize("bad", [0, -1])
    def test_rejects_non_positive_capacity(self, bad):
        with pytest.raises(ValueError):
            BoundedAlertLog(bad)

    def test_is_an_alert_log(self):
        assert isinstance(BoundedAlertLog(1), AlertLog)
