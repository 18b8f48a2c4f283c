"""In-memory TTL cache shared by the optional rate cache and health checks."""
import threading
import time
from collections import OrderedDict
from typing import Any, Optional, Tuple


class SimpleCache:
    """Thread-safe TTL cache with a bound on the number of entries.

    Entries expire on a monotonic clock. When the bound is reached the least
    recently written entry is evicted.
    """

    def __init__(self, max_entries: int = 1024):
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()
        self._lock = threading.Lock()

    def set(self, key: str, value: Any, ttl_seconds: float = 300) -> None:
        deadline = time.monotonic() + ttl_seconds
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (value, deadline)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def get(self, key: str) -> Optional[Any]:
        """Value for ``key``, or None when absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, deadline = entry
            if time.monotonic() >= deadline:
                del self._entries[key]
                return None
            return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def cleanup_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = time.monotonic()
        with self._lock:
            stale = [k for k, (_, deadline) in self._entries.items() if now >= deadline]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


cache = SimpleCache()
