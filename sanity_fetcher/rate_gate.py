"""Minimum-interval throttling for outbound Sanity requests."""

import logging
import time
from threading import Lock
from typing import Optional

# Configuration
DEFAULT_MIN_INTERVAL_SECONDS = 0.1  # 10 req/sec max

logger = logging.getLogger("sanity_fetcher.rate_gate")


class RateGate:
    """
    Serializes outbound requests to at most one per minimum interval.

    A single "last request" timestamp is shared by every caller in the
    process, regardless of dataset or query. The check, the sleep and the
    timestamp update all happen under one lock, so two threads can never
    both observe a stale timestamp. Waiters are admitted in lock order;
    requests are delayed, never dropped.
    """

    def __init__(self, min_interval: float = DEFAULT_MIN_INTERVAL_SECONDS):
        self.min_interval = min_interval
        self._last_request: Optional[float] = None
        self._lock = Lock()

    def throttle(self) -> float:
        """
        Block until min_interval has elapsed since the previous call completed.

        Returns:
            Seconds spent waiting (0.0 when no wait was needed)
        """
        with self._lock:
            waited = 0.0
            if self._last_request is not None:
                elapsed = time.monotonic() - self._last_request
                if elapsed < self.min_interval:
                    waited = self.min_interval - elapsed
                    logger.debug(f"Throttling outbound request for {waited * 1000:.0f}ms")
                    time.sleep(waited)

            self._last_request = time.monotonic()
            return waited

    @property
    def last_request(self) -> Optional[float]:
        """Monotonic timestamp of the most recent admitted request."""
        with self._lock:
            return self._last_request

    def reset(self) -> None:
        """
        Forget the last request time.

        Useful for testing or admin override.
        """
        with self._lock:
            self._last_request = None
