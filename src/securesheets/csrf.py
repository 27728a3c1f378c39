"""CSRF token issued once and reused until it expires."""

from __future__ import annotations

import threading
import time

from loguru import logger

from securesheets.utils import Clock, RandomSource, epoch_millis, random_base36

# Token lifetime in seconds (30 minutes)
CSRF_TOKEN_LIFETIME = 30 * 60


class CsrfTokenManager:
    """Holds the single active CSRF token.

    The same token is returned for every write request until it expires
    or is cleared, then a new one is minted on the next call.
    """

    def __init__(
        self,
        enabled: bool = True,
        *,
        clock: Clock = time.time,
        random_source: RandomSource = random_base36,
        lifetime: float = CSRF_TOKEN_LIFETIME,
    ) -> None:
        self.enabled = enabled
        self._clock = clock
        self._random_source = random_source
        self._lifetime = lifetime
        self._token: str | None = None
        self._expires_at: float | None = None
        self._lock = threading.Lock()

    @property
    def expires_at(self) -> float | None:
        """Expiry of the cached token in epoch seconds, if one is held."""
        return self._expires_at

    def get_token(self) -> str | None:
        """Return the cached token, minting a new one if absent or expired.

        Returns None when CSRF protection is disabled.
        """
        if not self.enabled:
            return None

        with self._lock:
            now = self._clock()
            if self._token and self._expires_at and now < self._expires_at:
                return self._token

            self._token = f"csrf_{epoch_millis(now)}_{self._random_source(16)}"
            self._expires_at = now + self._lifetime
            logger.debug("Generated new CSRF token")
            return self._token

    def clear(self) -> None:
        """Drop the cached token so the next call regenerates it."""
        with self._lock:
            self._token = None
            self._expires_at = None
        logger.debug("CSRF token cleared")
