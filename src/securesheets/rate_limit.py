"""Client-side rate limiting over a rolling one-hour window.

The window starts at the first request after a reset and lasts one hour.
Once ``max_requests`` calls have been consumed inside it, further calls
are rejected until the window rolls over.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from loguru import logger

from securesheets.exceptions import RateLimitExceeded
from securesheets.utils import Clock

# Window length in seconds (1 hour)
RATE_WINDOW = 60 * 60


@dataclass(frozen=True)
class RateLimitStatus:
    """Read-only snapshot of the limiter state."""

    enabled: bool
    current_requests: int
    max_requests: int
    remaining: int
    resets_at: float  # epoch seconds
    resets_in: float  # seconds from now, never negative


class RateLimiter:
    """Counts requests per hour and rejects once the quota is used up."""

    def __init__(
        self,
        max_requests: int,
        enabled: bool = True,
        *,
        clock: Clock = time.time,
        window: float = RATE_WINDOW,
    ) -> None:
        self.max_requests = max_requests
        self.enabled = enabled
        self._clock = clock
        self._window = window
        self._count = 0
        self._window_start = clock()
        self._lock = threading.Lock()

    @property
    def count(self) -> int:
        return self._count

    @property
    def resets_at(self) -> float:
        return self._window_start + self._window

    def check_and_consume(self) -> None:
        """Consume one request from the current window.

        Does nothing when disabled.

        Raises:
            RateLimitExceeded: If the window's quota is already used up
        """
        if not self.enabled:
            return

        with self._lock:
            now = self._clock()
            if now - self._window_start > self._window:
                self._count = 0
                self._window_start = now

            if self._count >= self.max_requests:
                logger.warning(
                    "Client rate limit exceeded",
                    extra={"max_requests": self.max_requests, "resets_at": self.resets_at},
                )
                raise RateLimitExceeded(self.resets_at, self.max_requests)

            self._count += 1

    def reset(self) -> None:
        """Zero the counter and start a new window now."""
        with self._lock:
            self._count = 0
            self._window_start = self._clock()
        logger.debug("Rate limit reset")

    def status(self) -> RateLimitStatus:
        now = self._clock()
        return RateLimitStatus(
            enabled=self.enabled,
            current_requests=self._count,
            max_requests=self.max_requests,
            remaining=max(0, self.max_requests - self._count),
            resets_at=self.resets_at,
            resets_in=max(0.0, self.resets_at - now),
        )
