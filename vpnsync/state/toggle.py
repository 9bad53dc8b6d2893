"""Debounced, single-flight control for one boolean setting."""

import time
from typing import Any, Awaitable, Callable, Optional

from ..errors import SyncError
from ..utils.logging import get_logger

logger = get_logger("state.toggle")


class ToggleControl:
    """Guards a boolean setting against rapid re-toggling and overlapping writes.

    A request is ignored (not queued) while the control is pending or
    inside the cooldown window after the last accepted toggle. The pending
    flag lasts for the cooldown window, and additionally for as long as the
    forwarded write is still in flight.
    """

    def __init__(
        self,
        name: str,
        forward: Callable[[bool], Awaitable[Any]],
        current: Callable[[], bool],
        guard: Optional[Callable[[bool], None]] = None,
        cooldown: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self._forward = forward
        self._current = current
        self._guard = guard
        self._cooldown = cooldown
        self._clock = clock
        self._visual: bool = current()
        self._last_toggle: Optional[float] = None
        self._pending_until: float = 0.0
        self._in_flight = False
        self._accepted = 0
        self._ignored = 0

    @property
    def cooldown(self) -> float:
        return self._cooldown

    @property
    def pending(self) -> bool:
        """Busy affordance for the presentation layer."""
        return self._in_flight or self._clock() < self._pending_until

    @property
    def disabled(self) -> bool:
        """True when enabling this setting would be rejected outright."""
        if self._guard is None:
            return False
        try:
            self._guard(True)
        except SyncError:
            return True
        return False

    @property
    def visual_state(self) -> bool:
        """Requested value while pending, the store's value otherwise."""
        if self.pending:
            return self._visual
        return self._current()

    async def request(self, new_value: bool) -> bool:
        """Ask for ``new_value``. Returns True if the request was forwarded.

        Raises the guard's error when the control is disabled; the cooldown
        is not started in that case.
        """
        if self._guard is not None:
            self._guard(new_value)

        now = self._clock()
        if self._last_toggle is not None:
            elapsed = now - self._last_toggle
            if elapsed < self._cooldown:
                self._ignored += 1
                logger.info(
                    "toggle_ignored_cooldown",
                    toggle=self.name,
                    elapsed_ms=round(elapsed * 1000),
                )
                return False

        if self.pending:
            self._ignored += 1
            logger.debug("toggle_ignored_pending", toggle=self.name)
            return False

        self._pending_until = now + self._cooldown
        self._last_toggle = now
        self._visual = new_value
        self._accepted += 1
        self._in_flight = True
        try:
            await self._forward(new_value)
        finally:
            self._in_flight = False
        return True

    def get_status(self) -> dict:
        return {
            "name": self.name,
            "pending": self.pending,
            "disabled": self.disabled,
            "visual_state": self.visual_state,
            "accepted": self._accepted,
            "ignored": self._ignored,
        }
