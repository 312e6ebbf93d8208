"""
engagehub.adapters.ratelimit - In-Memory Rate Limiting for Adapter Operations

Sliding-window limiter used by BaseAdapter when an adapter is configured with
``rate_limit_enabled``. State is per process; a multi-instance deployment
needs shared state (e.g., Redis) for a global limit.

Usage:
    >>> limiter = RateLimiter(max_requests=5, window_seconds=60)
    >>> limiter.is_allowed("employee-adapter.get_employees:42")
    True
"""

import logging
import time
from collections import defaultdict, deque
from threading import Lock

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Sliding-window rate limiter keyed by arbitrary strings.

    Attributes:
        max_requests: Maximum number of requests allowed in the window
        window_seconds: Size of the sliding window in seconds
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 60,
        cleanup_interval: float = 300,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.cleanup_interval = cleanup_interval
        self._requests: dict[str, deque[float]] = defaultdict(deque)
        self._lock = Lock()
        self._last_cleanup = time.monotonic()

    def is_allowed(self, key: str) -> bool:
        """
        Record a request for ``key`` and report whether it fits in the window.

        Rejected requests are not recorded.
        """
        now = time.monotonic()
        cutoff = now - self.window_seconds

        with self._lock:
            if now - self._last_cleanup > self.cleanup_interval:
                self._cleanup(cutoff)
                self._last_cleanup = now

            timestamps = self._requests[key]
            while timestamps and timestamps[0] <= cutoff:
                timestamps.popleft()

            if len(timestamps) >= self.max_requests:
                logger.warning(
                    f"Rate limit exceeded for key: {key}",
                    extra={"rate_limit_key": key, "requests_in_window": len(timestamps)},
                )
                return False

            timestamps.append(now)
            return True

    def get_remaining(self, key: str) -> int:
        """Number of requests still allowed for ``key`` in the current window."""
        cutoff = time.monotonic() - self.window_seconds

        with self._lock:
            timestamps = self._requests.get(key, ())
            current = sum(1 for t in timestamps if t > cutoff)
            return max(0, self.max_requests - current)

    def _cleanup(self, cutoff: float) -> None:
        """Drop keys whose requests have all left the window."""
        stale = [
            key
            for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= cutoff
        ]
        for key in stale:
            del self._requests[key]

        if stale:
            logger.debug(f"Rate limiter cleanup: removed {len(stale)} stale entries")
