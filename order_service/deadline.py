"""
deadline.py — Deadline and Cancellation Signal

Every store and cache call accepts an optional `Deadline`. It combines an
absolute timeout with an optional `threading.Event` that another thread can set
(e.g. the consumer shutting down) to abort work that has not started yet.
"""

import threading
import time
from typing import Optional

from .errors import CancelledError


class Deadline:
    """
    A point in time after which an operation must not start or continue.

    Args:
        timeout (float | None): Seconds from now. None means no time limit.
        cancel_event (threading.Event | None): Optional external cancellation signal.
        clock: Monotonic time source, replaceable in tests.
    """

    def __init__(self, timeout: Optional[float] = None,
                 cancel_event: Optional[threading.Event] = None,
                 clock=time.monotonic):
        self._clock = clock
        self._expires_at = None if timeout is None else clock() + timeout
        self._cancel_event = cancel_event

    @property
    def cancelled(self) -> bool:
        return self._cancel_event is not None and self._cancel_event.is_set()

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    def remaining(self) -> Optional[float]:
        """Seconds left, 0.0 once expired, None if unbounded."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def check(self, operation: str = "operation"):
        """
        Raises CancelledError if the deadline has passed or cancellation was requested.
        """
        if self.cancelled:
            raise CancelledError(f"{operation} cancelled")
        if self.expired:
            raise CancelledError(f"{operation} exceeded its deadline")


def check_deadline(deadline: Optional[Deadline], operation: str):
    """Shorthand for the common `if deadline: deadline.check(...)` pattern."""
    if deadline is not None:
        deadline.check(operation)
