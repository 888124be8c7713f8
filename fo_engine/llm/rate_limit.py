"""
Call spacing for model backends.

Spacing is a policy object the caller configures and shares between
workers; pipeline code never sleeps on its own.
"""

import logging
import threading
import time
from typing import Callable

from .backends import CompletionBackend

logger = logging.getLogger(__name__)


class MinIntervalRateLimiter:
    """
    Enforce a minimum interval between call starts across threads.

    Each caller reserves the next free slot under a lock and then sleeps
    outside it, so waiting workers do not block each other's bookkeeping.
    """

    def __init__(
        self,
        min_interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if min_interval_seconds < 0:
            raise ValueError("min_interval_seconds must be >= 0")
        self.min_interval = min_interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_slot = 0.0

    def acquire(self) -> float:
        """Block until the caller may proceed; returns seconds waited."""
        if self.min_interval == 0:
            return 0.0

        with self._lock:
            now = self._clock()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self.min_interval

        wait = slot - now
        if wait > 0:
            logger.debug("Rate limit: waiting %.2fs before model call", wait)
            self._sleep(wait)
        return wait


class RateLimitedBackend(CompletionBackend):
    """Wrap a backend so every call passes through a rate limiter."""

    def __init__(self, backend: CompletionBackend, limiter: MinIntervalRateLimiter):
        self.backend = backend
        self.limiter = limiter
        self.name = backend.name

    def complete(self, prompt: str) -> str:
        self.limiter.acquire()
        return self.backend.complete(prompt)
