"""One-time nonces for replay protection."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from loguru import logger

from securesheets.exceptions import NonceExhaustionError
from securesheets.utils import Clock, RandomSource, epoch_millis, random_base36, to_base36

MAX_TRACKED_NONCES = 1000
MAX_ATTEMPTS = 10
RANDOM_LENGTH = 9


@dataclass(frozen=True)
class NonceStatus:
    """Snapshot of nonce tracking."""

    enabled: bool
    used_count: int
    max_tracked: int


class NonceGenerator:
    """Generates nonces and remembers recently issued ones.

    A nonce is the base36 millisecond timestamp followed by random base36
    characters. Issued nonces are tracked in insertion order and the oldest
    is dropped once more than ``capacity`` are held.
    """

    def __init__(
        self,
        enabled: bool = True,
        *,
        clock: Clock = time.time,
        random_source: RandomSource = random_base36,
        capacity: int = MAX_TRACKED_NONCES,
    ) -> None:
        self.enabled = enabled
        self._clock = clock
        self._random_source = random_source
        self._capacity = capacity
        # dict keeps insertion order, values unused
        self._used: dict[str, None] = {}
        self._lock = threading.Lock()

    def generate(self) -> str | None:
        """Return a fresh nonce, or None when nonces are disabled.

        Raises:
            NonceExhaustionError: If every attempt collided with a tracked nonce
        """
        if not self.enabled:
            return None

        with self._lock:
            for _ in range(MAX_ATTEMPTS):
                candidate = to_base36(epoch_millis(self._clock())) + self._random_source(
                    RANDOM_LENGTH
                )
                if candidate not in self._used:
                    break
            else:
                raise NonceExhaustionError(MAX_ATTEMPTS)

            self._used[candidate] = None
            if len(self._used) > self._capacity:
                del self._used[next(iter(self._used))]
            return candidate

    def __contains__(self, nonce: object) -> bool:
        return nonce in self._used

    def __len__(self) -> int:
        return len(self._used)

    def status(self) -> NonceStatus:
        return NonceStatus(
            enabled=self.enabled,
            used_count=len(self._used),
            max_tracked=self._capacity,
        )

    def clear(self) -> None:
        """Forget all tracked nonces."""
        with self._lock:
            self._used.clear()
        logger.debug("Used nonces cleared")
