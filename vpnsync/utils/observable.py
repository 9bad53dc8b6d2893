"""Synchronous, ordered broadcast of values to subscribers.

Subscribers are called in subscription order, inside the ``emit`` call.
There is no queue and no coalescing: every emit reaches every subscriber
registered at that moment.
"""

from typing import Callable, Generic, Optional, TypeVar

from .logging import get_logger

logger = get_logger("utils.observable")

T = TypeVar("T")

Unsubscribe = Callable[[], None]


class Observable(Generic[T]):
    """Typed single-writer broadcaster holding the last emitted value."""

    def __init__(self, name: str, initial: Optional[T] = None):
        self.name = name
        self._value: Optional[T] = initial
        self._subscribers: list[Callable[[T], None]] = []
        self._total_emitted: int = 0
        self._total_errors: int = 0

    @property
    def value(self) -> Optional[T]:
        """Last emitted (or initial) value."""
        return self._value

    def subscribe(self, callback: Callable[[T], None]) -> Unsubscribe:
        """Register a callback. Returns a function that removes it."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)
            logger.debug("observable_subscriber_added", observable=self.name)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, value: T) -> None:
        """Store ``value`` and deliver it to every subscriber, in order."""
        self._value = value
        self._total_emitted += 1
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception as e:
                self._total_errors += 1
                logger.error("observable_subscriber_error", observable=self.name, error=str(e))

    def clear(self) -> None:
        """Drop all subscribers."""
        self._subscribers.clear()

    def __len__(self) -> int:
        return len(self._subscribers)

    def get_stats(self) -> dict:
        return {
            "name": self.name,
            "subscriber_count": len(self._subscribers),
            "total_emitted": self._total_emitted,
            "total_errors": self._total_errors,
        }
