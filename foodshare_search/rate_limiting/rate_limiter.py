"""
Rate limiter for outbound search requests.

Bounds searches to a fixed number per rolling window so bursts of typing or
retries cannot overload the search backends.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import List

from foodshare_search.error_handling.errors import RateLimited


logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Rolling-window rate limiter.

    Attributes:
        max_requests: Maximum number of requests admitted per window
        window_seconds: Length of the rolling window in seconds
        request_timestamps: Timestamps of admitted requests inside the window
    """

    def __init__(
        self,
        max_requests: int = 30,
        window_seconds: float = 60.0
    ):
        """
        Initialize rate limiter with configuration.

        Args:
            max_requests: Maximum requests per window (default: 30)
            window_seconds: Window length in seconds (default: 60)
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.request_timestamps: List[datetime] = []
        self._lock = asyncio.Lock()

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self.window_seconds)

    async def check_rate_limit(self) -> None:
        """
        Admit one request or raise RateLimited.

        Evicts timestamps older than the window, then records the request if
        the window still has room. Checks are serialized so concurrent callers
        can never push the count past max_requests.

        Raises:
            RateLimited: The window is full; retry_after is the time until
                the oldest admitted request leaves the window
        """
        async with self._lock:
            now = datetime.now()
            self._evict_expired(now)

            if len(self.request_timestamps) >= self.max_requests:
                oldest = self.request_timestamps[0]
                retry_after = max(oldest + self.window - now, timedelta(0))
                logger.warning(
                    f"Search rate limit reached ({self.max_requests}/{self.window_seconds:.0f}s), "
                    f"retry in {retry_after.total_seconds():.1f}s"
                )
                raise RateLimited(retry_after=retry_after)

            self.request_timestamps.append(now)

    def remaining(self) -> int:
        """Return how many requests the current window still admits."""
        self._evict_expired(datetime.now())
        return max(0, self.max_requests - len(self.request_timestamps))

    def _evict_expired(self, now: datetime) -> None:
        cutoff = now - self.window
        self.request_timestamps = [
            ts for ts in self.request_timestamps if ts > cutoff
        ]
