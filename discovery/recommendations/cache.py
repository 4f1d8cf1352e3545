"""
Time-boxed result cache.

Entries expire ``ttl`` seconds after they are stored and are dropped lazily
on the next lookup. When full, the oldest entry (by creation time) is
evicted first. A single lock guards the map; ``get_or_compute`` adds
per-fingerprint single-flight so concurrent misses compute once.
"""
from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

from ..errors import InvalidQueryParameter
from .config import DEFAULT_CACHE_CONFIG, CacheConfig

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass
class _InFlight:
    lock: threading.Lock
    waiters: int = 0


class ResultCache:
    def __init__(
        self,
        config: CacheConfig = DEFAULT_CACHE_CONFIG,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = config.ttl_seconds
        self._max_entries = config.max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._inflight: dict[str, _InFlight] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def _lookup(self, fingerprint: str) -> CacheEntry | None:
        # Caller holds self._lock.
        entry = self._entries.get(fingerprint)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[fingerprint]
            return None
        return entry

    def get(self, fingerprint: str) -> Any | None:
        """Return the cached value, or ``None`` when absent or expired."""
        with self._lock:
            entry = self._lookup(fingerprint)
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            return entry.value

    def put(self, fingerprint: str, value: Any, ttl: float | None = None) -> None:
        ttl = self._ttl if ttl is None else ttl
        if ttl < 0:
            raise InvalidQueryParameter(f"ttl must be non-negative, got {ttl}")
        with self._lock:
            if ttl == 0:
                # Expires immediately; drop any older value under the key.
                self._entries.pop(fingerprint, None)
                return
            now = self._clock()
            # Re-inserting moves the key to the back of the FIFO order.
            self._entries.pop(fingerprint, None)
            self._entries[fingerprint] = CacheEntry(value=value, created_at=now, expires_at=now + ttl)
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug("Evicted cache entry %s", evicted)

    def get_or_compute(
        self,
        fingerprint: str,
        compute: Callable[[], Any],
        ttl: float | None = None,
    ) -> tuple[Any, bool]:
        """
        Return ``(value, cache_hit)``, computing and storing on a miss.

        Concurrent callers missing on the same fingerprint wait for the
        first one instead of computing again. Each call counts exactly one
        hit or miss. Errors from ``compute`` propagate and nothing is stored.
        """
        with self._lock:
            entry = self._lookup(fingerprint)
            if entry is not None:
                self._hits += 1
                return entry.value, True
            slot = self._inflight.setdefault(fingerprint, _InFlight(lock=threading.Lock()))
            slot.waiters += 1
        try:
            with slot.lock:
                with self._lock:
                    entry = self._lookup(fingerprint)
                    if entry is not None:
                        self._hits += 1
                        return entry.value, True
                    self._misses += 1
                value = compute()
                self.put(fingerprint, value, ttl)
                return value, False
        finally:
            with self._lock:
                slot.waiters -= 1
                if slot.waiters == 0:
                    self._inflight.pop(fingerprint, None)

    def invalidate(self, fingerprint: str) -> bool:
        with self._lock:
            return self._entries.pop(fingerprint, None) is not None

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [fp for fp, entry in self._entries.items() if entry.is_expired(now)]
            for fp in expired:
                del self._entries[fp]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict:
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
            }


_default_cache: ResultCache | None = None
_default_lock = threading.Lock()


def get_cache() -> ResultCache:
    """Return the process-wide cache, creating it on first call."""
    global _default_cache
    with _default_lock:
        if _default_cache is None:
            _default_cache = ResultCache()
        return _default_cache
