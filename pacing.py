"""
pacing.py — Minimum spacing between upstream API calls.
"""

import threading
import time
from typing import Callable


class Pacer:
    """Enforces a minimum interval between call starts, shared across worker threads."""

    def __init__(
        self,
        min_interval_sec: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_interval_sec = max(0.0, float(min_interval_sec))
        self._sleep = sleep
        self._clock = clock
        self._next_allowed = 0.0
        self._lock = threading.Lock()

    def wait(self) -> float:
        """Block until the next call may start. Returns the time slept."""
        if self.min_interval_sec <= 0:
            return 0.0
        with self._lock:
            now = self._clock()
            start = max(now, self._next_allowed)
            self._next_allowed = start + self.min_interval_sec
        delay = start - now
        if delay > 0:
            self._sleep(delay)
        return delay

    def reset(self):
        """Forget the previous call so the next one starts immediately."""
        with self._lock:
            self._next_allowed = 0.0
