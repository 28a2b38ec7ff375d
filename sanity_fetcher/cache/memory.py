"""
In-process LRU cache tier.
"""
import logging
import threading
from collections import OrderedDict
from typing import Any, Optional

from .core import CacheEntry, CacheTier

logger = logging.getLogger("sanity_fetcher.cache.memory")

DEFAULT_MAX_SIZE = 100


class MemoryLayer(CacheTier):
    """
    Bounded least-recently-used map with per-entry expiry.

    - Read hits move the entry to the most-recently-used end
    - Expired entries are dropped when a read finds them
    - Inserting a new key at capacity evicts exactly one LRU entry
    - Each operation is a single critical section
    """

    name = "memory"

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE):
        self.max_size = max_size
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self.evictions = 0

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when absent or expired."""
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Cache a value for ttl seconds."""
        self.put_entry(key, CacheEntry.create(value, ttl))

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> int:
        """
        Clear all entries.

        Returns:
            Number of entries cleared
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def keys(self) -> list:
        """Keys from least to most recently used."""
        with self._lock:
            return list(self._entries.keys())

    # CacheTier interface

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            if not entry.is_live():
                del self._entries[key]
                return None

            self._entries.move_to_end(key)
            return entry

    def put_entry(self, key: str, entry: CacheEntry) -> bool:
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            elif len(self._entries) >= self.max_size:
                evicted_key, _ = self._entries.popitem(last=False)
                self.evictions += 1
                logger.debug(f"Evicted LRU entry: {evicted_key[:50]}")

            self._entries[key] = entry
            return True

    def clear_matching(self, pattern: Optional[str] = None) -> int:
        if pattern is not None:
            # Scoped clearing would need a scan of every key
            logger.warning("Pattern-based memory cache clearing is not supported")
            return 0
        return self.clear()
