"""Token-bucket throttling for outgoing requests."""

import asyncio
import logging
import threading
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


class TokenBucket:
    """Thread-safe token bucket.

    - Bucket holds up to ``burst`` tokens and starts full
    - Tokens refill at ``qps`` tokens per second
    - Each request takes one token; when none is left the request is given a
      slot in the future instead of being rejected

    A ``qps`` of zero or less disables throttling.
    """

    def __init__(self, qps: float, burst: int, clock: Callable[[], float] = time.monotonic):
        self.qps = qps
        self.burst = max(burst, 1)
        self._clock = clock
        self._tokens = float(self.burst)
        self._last_refill = clock()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.qps > 0

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        self._tokens = min(float(self.burst), self._tokens + elapsed * self.qps)
        self._last_refill = now

    def reserve(self) -> float:
        """Take a token and return how many seconds to wait before using it."""
        if not self.enabled:
            return 0.0

        with self._lock:
            self._refill()
            self._tokens -= 1
            if self._tokens >= 0:
                return 0.0
            return -self._tokens / self.qps

    def acquire(self) -> None:
        delay = self.reserve()
        if delay > 0:
            logger.debug(f"Client-side throttling, waiting {delay:.3f}s")
            time.sleep(delay)

    async def acquire_async(self) -> None:
        delay = self.reserve()
        if delay > 0:
            logger.debug(f"Client-side throttling, waiting {delay:.3f}s")
            await asyncio.sleep(delay)
