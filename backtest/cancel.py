"""Cooperative cancellation for long-running validation loops."""

from __future__ import annotations

import threading
import time


class CancelToken:
    """Thread-safe cancellation flag with an optional deadline.

    Loops poll ``is_cancelled()`` between units of work; a caller on
    another thread cancels with ``cancel()``, or the token expires on
    its own once ``timeout`` seconds have elapsed.
    """

    def __init__(self, timeout: float | None = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        return False

    @property
    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())
