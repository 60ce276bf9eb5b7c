import math
import threading
import time
from collections import deque
from typing import Callable


class InMemoryRateLimiter:
    """
    Sliding-window limiter keyed by client ip + path.

    Each key keeps the timestamps of its accepted requests inside the window.
    State is per process; the admin API runs as a single instance.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._hits: dict[str, deque[float]] = {}

    def allow(self, key: str, limit: int, window_seconds: int) -> tuple[bool, int]:
        """Record a request for key. Returns (allowed, retry_after_seconds)."""
        now = self._clock()
        cutoff = now - window_seconds
        with self._lock:
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= limit:
                wait = hits[0] + window_seconds - now
                return False, max(1, math.ceil(wait))
            hits.append(now)
            return True, 0

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


rate_limiter = InMemoryRateLimiter()
