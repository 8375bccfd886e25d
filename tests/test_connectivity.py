"""
Unit tests for the connectivity monitor
"""
import asyncio
import pytest
from core.connectivity import ConnectivityMonitor


class TestConnectivityMonitor:
    def test_subscribe_yields_snapshot_immediately(self):
        seen = []
        ConnectivityMonitor(initial=False).subscribe(seen.append)
        assert seen == [False]

        seen = []
        ConnectivityMonitor(initial=True).subscribe(seen.append)
        assert seen == [True]

    def test_offline_then_online_reaches_every_subscriber(self):
        monitor = ConnectivityMonitor(initial=True)
        a, b = [], []
        monitor.subscribe(a.append)
        monitor.subscribe(b.append)

        monitor.dispatch("offline")
        assert a[-1] is False and b[-1] is False
        assert monitor.online is False

        monitor.dispatch("online")
        assert a == [True, False, True]
        assert b == [True, False, True]

    def test_unsubscribe_stops_notifications(self):
        monitor = ConnectivityMonitor()
        seen = []
        unsubscribe = monitor.subscribe(seen.append)
        unsubscribe()
        monitor.dispatch("offline")
        assert seen == [True]
        unsubscribe()  # second call is a no-op

    def test_failing_listener_does_not_starve_others(self):
        monitor = ConnectivityMonitor()
        seen = []

        def broken(online: bool) -> None:
            if not online:
                raise RuntimeError("boom")

        monitor.subscribe(broken)
        monitor.subscribe(seen.append)
        monitor.dispatch("offline")
        assert seen == [True, False]

    def test_repeated_event_is_delivered_again(self):
        monitor = ConnectivityMonitor()
        seen = []
        monitor.subscribe(seen.append)
        monitor.dispatch("online")
        assert seen == [True, True]

    def test_unknown_event_rejected(self):
        with pytest.raises(ValueError):
            ConnectivityMonitor().dispatch("flaky")

    async def test_changes_streams_snapshot_then_events(self):
        monitor = ConnectivityMonitor(initial=True)
        stream = monitor.changes()
        assert await stream.__anext__() is True

        monitor.dispatch("offline")
        assert await asyncio.wait_for(stream.__anext__(), timeout=1) is False
        await stream.aclose()
