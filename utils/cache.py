# utils/cache.py - Time and size bounded in-memory content cache
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from config import CACHE_TTL_SECONDS, CACHE_MAX_SIZE


@dataclass
class CacheEntry:
    content: str
    created_at: float
    last_accessed_at: float


class ContentCache:
    """
    Maps a resource URL to extracted text.

    Entries older than ttl_seconds are treated as absent. When the cache is
    full, the least recently read entries are evicted first.
    """

    def __init__(
        self,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        max_size: int = CACHE_MAX_SIZE,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        """Return cached content for key, or None if missing or expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or now - entry.created_at >= self.ttl_seconds:
                return None
            entry.last_accessed_at = now
            return entry.content

    def set(self, key: str, content: str) -> None:
        """Store content for key, evicting expired and least recently used entries."""
        now = self._clock()
        with self._lock:
            self._evict(now, incoming=key)
            self._entries[key] = CacheEntry(content=content, created_at=now, last_accessed_at=now)

    def _evict(self, now: float, incoming: str) -> None:
        expired = [key for key, entry in self._entries.items() if now - entry.created_at >= self.ttl_seconds]
        for key in expired:
            del self._entries[key]

        # Overwriting an existing key does not grow the cache
        if incoming in self._entries:
            return

        if len(self._entries) >= self.max_size:
            by_recency = sorted(self._entries.items(), key=lambda item: item[1].last_accessed_at)
            excess = len(self._entries) - self.max_size + 1
            for key, _ in by_recency[:excess]:
                del self._entries[key]

    @property
    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return self.size
