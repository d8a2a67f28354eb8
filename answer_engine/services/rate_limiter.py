"""Per-client fixed-window rate limiting for the answer stream.

Counters live in process memory: every instance of the service keeps its
own, so limits only hold for a single-instance deployment.
"""
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    count: int
    window_reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after_seconds: Optional[int] = None


class RateLimiter:
    """
    Fixed-window admission counter keyed by client address.

    The first admission for a key opens a window; up to ``max_requests``
    admissions are allowed until the window closes, after which the count
    starts again at 1.
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60,
        max_tracked_keys: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize rate limiter."""
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_tracked_keys = max_tracked_keys
        self._clock = clock
        self._entries: Dict[str, RateLimitEntry] = {}

    def admit(self, key: str) -> RateLimitDecision:
        """
        Check the key against its window and count the request if allowed.

        Check and update happen without awaiting, so concurrent requests on
        one event loop cannot interleave here.

        Returns:
            RateLimitDecision; denied decisions carry retry_after_seconds
        """
        now = self._clock()
        entry = self._entries.get(key)

        if entry is None or now > entry.window_reset_at:
            if entry is None and len(self._entries) >= self.max_tracked_keys:
                self.sweep()
            self._entries[key] = RateLimitEntry(count=1, window_reset_at=now + self.window_seconds)
            return RateLimitDecision(allowed=True)

        if entry.count >= self.max_requests:
            retry_after = max(1, math.ceil(entry.window_reset_at - now))
            return RateLimitDecision(allowed=False, retry_after_seconds=retry_after)

        entry.count += 1
        return RateLimitDecision(allowed=True)

    def sweep(self) -> int:
        """Drop entries whose window has closed. Returns the number removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now > entry.window_reset_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Rate limiter sweep removed %d expired keys", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
