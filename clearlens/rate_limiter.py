"""
Per-user fixed-window rate limiting for the ClearLens API.

Advisory and process-local: it is not a substitute for a distributed limiter.
"""

import time
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from clearlens.api_exceptions import RateLimitError


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


class RateLimiter:
    """
    Fixed window counter keyed by user id.

    The first request in a window creates (or resets) the entry with count 1;
    later requests increment it, and a count above `limit` is rejected.
    Check-and-increment happens under one lock, and expired entries are swept
    at most once per window so the map stays bounded by active users.
    """

    def __init__(
        self,
        limit: int = 30,
        window_seconds: float = 60,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock or time.monotonic
        self.entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()
        self._last_sweep = self.clock()

    def _sweep(self, now: float):
        if now - self._last_sweep < self.window_seconds:
            return
        expired = [key for key, entry in self.entries.items() if entry.reset_at <= now]
        for key in expired:
            del self.entries[key]
        self._last_sweep = now

    def hit(self, key: str) -> tuple[bool, int]:
        """
        Count one request for `key`.

        Returns:
            (is_allowed, retry_after_seconds)
        """
        with self._lock:
            now = self.clock()
            self._sweep(now)

            entry = self.entries.get(key)
            if entry is None or now >= entry.reset_at:
                entry = RateLimitEntry(count=1, reset_at=now + self.window_seconds)
                self.entries[key] = entry
            else:
                entry.count += 1

            if entry.count > self.limit:
                retry_after = max(int(entry.reset_at - now + 0.999), 1)
                return False, retry_after
            return True, 0

    def check_rate_limit(self, key: str) -> None:
        """
        Count the request and raise RateLimitError if it is over the limit.
        """
        is_allowed, retry_after = self.hit(key)
        if not is_allowed:
            raise RateLimitError(retry_after=retry_after)
