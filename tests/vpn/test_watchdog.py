"""Tests for the connection watchdog."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from vpnsync.errors import TransportError
from vpnsync.vpn.watchdog import ConnectionWatchdog


class TestPolling:
    def setup_method(self):
        self.on_drop = AsyncMock()

    @pytest.mark.asyncio
    async def test_successful_ping_resets_failures(self, mock_transport):
        watchdog = ConnectionWatchdog(mock_transport, self.on_drop)
        mock_transport.ping.side_effect = [TransportError("timeout"), 0.02]

        assert await watchdog.check() is False
        assert watchdog.fail_count == 1
        assert await watchdog.check() is True
        assert watchdog.fail_count == 0

    @pytest.mark.asyncio
    async def test_drop_declared_after_threshold_and_recheck(self, mock_transport):
        mock_transport.ping.side_effect = TransportError("timeout")
        watchdog = ConnectionWatchdog(mock_transport, self.on_drop, fail_threshold=3)

        assert await watchdog.poll_once() is False
        assert await watchdog.poll_once() is False
        assert await watchdog.poll_once() is True

        # three polls plus one re-check
        assert mock_transport.ping.await_count == 4
        self.on_drop.assert_awaited_once()
        assert watchdog.fail_count == 0

    @pytest.mark.asyncio
    async def test_recheck_success_cancels_drop(self, mock_transport):
        mock_transport.ping.side_effect = [TransportError("timeout")] * 3 + [0.02]
        watchdog = ConnectionWatchdog(mock_transport, self.on_drop, fail_threshold=3)

        for _ in range(3):
            assert await watchdog.poll_once() is False

        self.on_drop.assert_not_awaited()
        assert watchdog.fail_count == 0


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_loop_calls_on_drop_and_exits(self, mock_transport):
        mock_transport.ping.side_effect = TransportError("timeout")
        dropped = asyncio.Event()

        async def on_drop():
            dropped.set()

        watchdog = ConnectionWatchdog(mock_transport, on_drop, interval=0.001, fail_threshold=2)
        watchdog.start()
        await asyncio.wait_for(dropped.wait(), timeout=1.0)
        await asyncio.sleep(0.01)

        assert watchdog.running is False

    @pytest.mark.asyncio
    async def test_stop_cancels_task(self, mock_transport):
        watchdog = ConnectionWatchdog(mock_transport, AsyncMock(), interval=60.0)
        watchdog.start()
        assert watchdog.running is True

        await watchdog.stop()

        assert watchdog.running is False
        mock_transport.ping.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, mock_transport):
        watchdog = ConnectionWatchdog(mock_transport, AsyncMock(), interval=60.0)
        watchdog.start()
        task = watchdog._task
        watchdog.start()

        assert watchdog._task is task
        await watchdog.stop()

    @pytest.mark.asyncio
    async def test_stop_when_never_started(self, mock_transport):
        watchdog = ConnectionWatchdog(mock_transport, AsyncMock())
        await watchdog.stop()
        assert watchdog.running is False
