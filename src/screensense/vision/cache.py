"""Bounded memo cache for screen processor results."""

import logging
import time
from collections import OrderedDict
from typing import Callable, Generic, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")

# Screenshot characters that take part in the cache key
SCREENSHOT_KEY_PREFIX_LENGTH = 100


def make_cache_key(screenshot: str, instruction: str) -> str:
    """
    Derive the cache key for a (screenshot, instruction) pair.

    Only the first 100 characters of the screenshot payload are used, so two
    screenshots sharing that prefix and the same instruction share a key.
    """
    return f"{screenshot[:SCREENSHOT_KEY_PREFIX_LENGTH]}_{instruction}"


class ResultCache(Generic[V]):
    """
    LRU cache with an optional time-to-live.

    ``max_size`` bounds the number of entries; the least recently used entry is
    evicted first. When ``ttl`` (seconds) is set, expired entries behave as
    missing and are dropped on access.
    """

    def __init__(
        self,
        max_size: int = 256,
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        if ttl is not None and ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self.max_size = max_size
        self.ttl = ttl
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, Optional[V]]]" = OrderedDict()

    def _expired(self, stored_at: float) -> bool:
        return self.ttl is not None and self._clock() - stored_at >= self.ttl

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        if self._expired(entry[0]):
            del self._entries[key]
            return False
        return True

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str, default: Optional[V] = None) -> Optional[V]:
        """Return the stored value (marking it recently used) or ``default``."""
        if key not in self:
            return default
        self._entries.move_to_end(key)
        return self._entries[key][1]

    def set(self, key: str, value: Optional[V]) -> None:
        self._entries[key] = (self._clock(), value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted cache entry (size limit {self.max_size}): {evicted[:32]}...")

    def clear(self) -> None:
        self._entries.clear()
