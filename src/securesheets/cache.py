"""In-memory response cache with per-entry expiry.

Entries are evicted lazily when read after expiry. There is no size bound
and no background sweep: a long-lived client that keeps requesting new keys
grows without limit until ``clear()`` is called.

Values are deep-copied on the way in and out, so callers never share a
cached response object.
"""

from __future__ import annotations

import copy
import threading
import time
from dataclasses import dataclass
from typing import Any

from loguru import logger

from securesheets.utils import Clock


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expires_at: float  # epoch seconds


class ResponseCache:
    """Maps a request fingerprint to a cached response."""

    def __init__(self, *, clock: Clock = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on a miss or expired entry.

        An expired entry is removed as a side effect.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() > entry.expires_at:
                del self._entries[key]
                return None
            return copy.deepcopy(entry.value)

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds, replacing any entry."""
        with self._lock:
            self._entries[key] = CacheEntry(
                value=copy.deepcopy(value), expires_at=self._clock() + ttl
            )

    def clear(self, key: str | None = None) -> None:
        """Remove one entry, or every entry when no key is given."""
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)
        logger.debug("Cache cleared ({})", key if key is not None else "all")

    def __contains__(self, key: object) -> bool:
        # Does not evict
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
