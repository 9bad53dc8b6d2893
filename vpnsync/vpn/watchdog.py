"""Connection watchdog: detects unexpected tunnel drops by pinging through it."""

import asyncio
from typing import Awaitable, Callable, Optional

from ..errors import SyncError
from ..utils.logging import get_logger

logger = get_logger("vpn.watchdog")


class ConnectionWatchdog:
    """Pings the dashboard API through the tunnel on a fixed interval.

    After ``fail_threshold`` consecutive failed pings it re-checks once and,
    if the tunnel is still unreachable, calls ``on_drop``.
    """

    def __init__(
        self,
        transport,
        on_drop: Callable[[], Awaitable[None]],
        interval: float = 5.0,
        fail_threshold: int = 3,
    ):
        self._transport = transport
        self._on_drop = on_drop
        self._interval = interval
        self._fail_threshold = fail_threshold
        self._fail_count = 0
        self._task: Optional[asyncio.Task] = None
        self._monitoring = False

    @classmethod
    def from_config(cls, transport, on_drop, config) -> "ConnectionWatchdog":
        return cls(
            transport,
            on_drop,
            interval=config.watchdog_interval,
            fail_threshold=config.watchdog_fail_threshold,
        )

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def fail_count(self) -> int:
        return self._fail_count

    async def check(self) -> bool:
        """Ping once. Returns True if the tunnel answered."""
        try:
            await self._transport.ping()
        except SyncError as e:
            self._fail_count += 1
            logger.warning("vpn_ping_failed", failures=self._fail_count, error=str(e))
            return False
        self._fail_count = 0
        return True

    async def poll_once(self) -> bool:
        """One watchdog cycle. Returns True if a drop was declared."""
        if await self.check():
            return False
        if self._fail_count < self._fail_threshold:
            return False

        logger.warning("vpn_connection_failure_suspected", failures=self._fail_count)
        if await self.check():
            logger.info("vpn_connection_restored_before_drop")
            return False

        self._fail_count = 0
        await self._on_drop()
        return True

    async def _run(self) -> None:
        logger.info("vpn_watchdog_started", interval=self._interval, fail_threshold=self._fail_threshold)
        while self._monitoring:
            await asyncio.sleep(self._interval)
            if not self._monitoring:
                break
            if await self.poll_once():
                break
        self._monitoring = False

    def start(self) -> None:
        """Start polling in a background task. No-op if already running."""
        if self.running:
            return
        self._monitoring = True
        self._fail_count = 0
        self._task = asyncio.create_task(self._run())

    def cancel(self) -> None:
        """Ask the polling task to stop without waiting for it."""
        self._monitoring = False
        task = self._task
        if task is None or task.done():
            return
        # Called from within on_drop: the loop exits on its own
        if task is not asyncio.current_task():
            task.cancel()

    async def stop(self) -> None:
        """Stop polling and wait for the task to finish."""
        task = self._task
        self.cancel()
        self._task = None
        if task is None or task.done() or task is asyncio.current_task():
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("vpn_watchdog_stopped")
