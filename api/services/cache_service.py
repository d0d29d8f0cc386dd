"""
Expiring Cache

In-memory key/value store with per-entry TTL used to memoize search and
recommendation results.

Expiry is checked lazily on every read: an expired entry is absent even if
it has not been swept yet. `cleanup()` only reclaims memory and removes
expired keys in small batches so concurrent readers and writers are never
blocked for longer than one batch.
"""
import asyncio
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List, Optional

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass
class CacheEntry:
    """A cached value with its creation and expiry times (clock seconds)"""

    key: Hashable
    value: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ExpiringCache:
    """Thread-safe TTL cache"""

    def __init__(
        self,
        default_ttl: float = 300,
        sweep_batch_size: int = 500,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            default_ttl: TTL in seconds applied when `set` is called without one
            sweep_batch_size: Maximum keys removed per lock acquisition in `cleanup`
            clock: Monotonic time source in seconds; injectable for tests
        """
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = default_ttl
        self.sweep_batch_size = max(1, sweep_batch_size)
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._lock = threading.Lock()

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value; an existing key is overwritten and its TTL window restarts"""
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        now = self._clock()
        entry = CacheEntry(key=key, value=value, created_at=now, expires_at=now + ttl)
        with self._lock:
            self._entries[key] = entry

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Cached value, or `default` if the key is absent or expired"""
        value = self._lookup(key)
        return default if value is _MISSING else value

    def has(self, key: Hashable) -> bool:
        return self._lookup(key) is not _MISSING

    def delete(self, key: Hashable) -> bool:
        """Remove a key. Returns True if a live entry was removed."""
        with self._lock:
            entry = self._entries.pop(key, None)
        return entry is not None and not entry.is_expired(self._clock())

    def clear(self) -> int:
        """Drop every entry. Returns the number of entries removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    def cleanup(self) -> int:
        """
        Purge all entries whose expiry has passed

        Returns:
            Number of entries removed
        """
        now = self._clock()
        removed = sum(self._remove_batch(batch, now) for batch in self._expired_batches(now))
        self._log_sweep(removed)
        return removed

    async def sweep(self) -> int:
        """
        Same as `cleanup`, but hands control back to the event loop after
        every batch so request handlers on the loop interleave with the sweep.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        removed = 0
        for batch in self._expired_batches(now):
            removed += self._remove_batch(batch, now)
            await asyncio.sleep(0)
        self._log_sweep(removed)
        return removed

    def _expired_batches(self, now: float) -> List[List[Hashable]]:
        # Snapshot without the lock; each batch is re-checked under it
        expired = [key for key, entry in list(self._entries.items()) if entry.is_expired(now)]
        return [
            expired[start:start + self.sweep_batch_size]
            for start in range(0, len(expired), self.sweep_batch_size)
        ]

    def _remove_batch(self, batch: List[Hashable], now: float) -> int:
        removed = 0
        with self._lock:
            for key in batch:
                entry = self._entries.get(key)
                # A key refreshed by `set` since the snapshot stays
                if entry is not None and entry.is_expired(now):
                    del self._entries[key]
                    removed += 1
        return removed

    def _log_sweep(self, removed: int) -> None:
        if removed:
            logger.debug(f"Cache sweep removed {removed} expired entries ({len(self._entries)} remaining)")

    @property
    def size(self) -> int:
        """Physically stored entries, including expired ones not yet swept"""
        return len(self._entries)

    def __len__(self) -> int:
        return self.size

    def __contains__(self, key: Hashable) -> bool:
        return self.has(key)

    def _lookup(self, key: Hashable) -> Any:
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock()):
            return _MISSING
        return entry.value


def make_cache_key(namespace: str, version: int, **params) -> str:
    """
    Deterministic cache key for an operation and its parameters

    Args:
        namespace: Operation name, e.g. "search"
        version: Catalog snapshot version the result was computed from
        **params: JSON-serializable parameters

    Returns:
        "namespace:v<version>:<sorted json params>"
    """
    payload = json.dumps(params, sort_keys=True, default=str, separators=(",", ":"))
    return f"{namespace}:v{version}:{payload}"


class CacheSweeper:
    """Background asyncio task that sweeps expired entries on a fixed interval"""

    def __init__(self, cache: ExpiringCache, interval: float = 600):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.cache = cache
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start sweeping on the running event loop; a second call is a no-op"""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Cache sweeper started (interval {self.interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Cache sweeper stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.cache.sweep()
            except Exception as e:
                logger.error(f"Cache sweep failed: {e}", exc_info=True)
