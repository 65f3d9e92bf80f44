"""Sliding-window rate limiter gating outbound API calls.

The limiter never waits. A ``False`` from ``can_proceed`` is a hard stop the
caller must surface as ``RateLimited``; pacing lives in the batch processor.
"""

import threading
import time
from collections import deque
from collections.abc import Callable

from loguru import logger

from .config import ConfigProvider


class RateLimiter:
    """Count recent calls in a trailing window shared by all callers.

    Each prune and each append is atomic, but ``can_proceed`` and
    ``record_call`` are separate steps. Callers that interleave between them
    can overshoot the limit by up to (concurrency - 1) calls.
    """

    def __init__(
        self,
        config: ConfigProvider,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the rate limiter.

        Args:
            config: Provider for the current call limit and window length
            clock: Time source returning seconds, injectable for tests
        """
        self._config = config
        self._clock = clock
        self._calls: deque[float] = deque()
        self._lock = threading.Lock()

    def _prune(self, now: float, window: float) -> None:
        cutoff = now - window
        while self._calls and self._calls[0] < cutoff:
            self._calls.popleft()

    def can_proceed(self) -> bool:
        """Return True if another call fits in the current window."""
        cfg = self._config.get()
        now = self._clock()
        with self._lock:
            self._prune(now, cfg.rate_limit_window)
            allowed = len(self._calls) < cfg.rate_limit_per_window
            count = len(self._calls)
        if not allowed:
            logger.warning(
                "Rate limit reached: {}/{} calls in {}s window",
                count,
                cfg.rate_limit_per_window,
                cfg.rate_limit_window,
            )
        return allowed

    def record_call(self) -> None:
        """Record an outbound call at the current time."""
        now = self._clock()
        with self._lock:
            self._calls.append(now)

    def remaining(self) -> int:
        """Return how many calls are still allowed in the current window."""
        cfg = self._config.get()
        now = self._clock()
        with self._lock:
            self._prune(now, cfg.rate_limit_window)
            return max(0, cfg.rate_limit_per_window - len(self._calls))

    @property
    def window_count(self) -> int:
        """Return the number of recorded calls, including any not yet pruned."""
        with self._lock:
            return len(self._calls)

    def reset(self) -> None:
        """Forget all recorded calls."""
        with self._lock:
            self._calls.clear()
