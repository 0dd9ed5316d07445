"""In-process key/value cache with TTL, stale-while-revalidate and tag invalidation."""

import asyncio
import functools
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, NamedTuple, Optional

logger = logging.getLogger(__name__)

# Entries stay servable as stale until age exceeds ttl * SWR_GRACE_FACTOR.
SWR_GRACE_FACTOR = 1.5


@dataclass
class CacheEntry:
    data: Any
    timestamp: float
    ttl_seconds: float
    tags: frozenset

    def age(self, now: float) -> float:
        return now - self.timestamp

    def is_fresh(self, now: float) -> bool:
        return self.age(now) <= self.ttl_seconds

    def is_servable(self, now: float) -> bool:
        return self.age(now) <= self.ttl_seconds * SWR_GRACE_FACTOR


class CacheLookup(NamedTuple):
    data: Any
    stale: bool
    hit: bool


MISS = CacheLookup(None, False, False)


class CacheStore:
    """Thread-safe in-memory cache.

    One instance is built at process start and injected into every service
    that caches (aggregation, analytics, intelligence). ``clock`` returns
    seconds and is swapped out in tests.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._refreshing: dict[str, asyncio.Task] = {}
        self._hits = 0
        self._stale_hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Return the value while fresh, else None.

        An expired entry is only evicted once past the stale grace window so
        ``get_with_freshness`` callers can still serve it.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            now = self._clock()
            if entry.is_fresh(now):
                self._hits += 1
                return entry.data
            if not entry.is_servable(now):
                del self._entries[key]
            self._misses += 1
            return None

    def get_with_freshness(self, key: str) -> CacheLookup:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return MISS
            now = self._clock()
            if entry.is_fresh(now):
                self._hits += 1
                return CacheLookup(entry.data, False, True)
            if entry.is_servable(now):
                self._stale_hits += 1
                return CacheLookup(entry.data, True, True)
            del self._entries[key]
            self._misses += 1
            return MISS

    def set(self, key: str, data: Any, ttl_seconds: float, tags: Iterable[str] = ()) -> None:
        """Store ``data``, replacing any existing entry and its TTL."""
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        if isinstance(tags, str):
            tags = (tags,)
        with self._lock:
            self._entries[key] = CacheEntry(
                data=data,
                timestamp=self._clock(),
                ttl_seconds=float(ttl_seconds),
                tags=frozenset(tags),
            )

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear_by_tags(self, tags: Iterable[str]) -> int:
        """Remove every entry whose tag set intersects ``tags``."""
        if isinstance(tags, str):
            tags = (tags,)
        wanted = frozenset(tags)
        with self._lock:
            doomed = [k for k, e in self._entries.items() if e.tags & wanted]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.info("cache_clear_by_tags tags=%s removed=%d", sorted(wanted), len(doomed))
        return len(doomed)

    def clear_expired(self) -> int:
        """Remove entries past the stale grace window. Returns how many went."""
        with self._lock:
            now = self._clock()
            doomed = [k for k, e in self._entries.items() if not e.is_servable(now)]
            for key in doomed:
                del self._entries[key]
        logger.debug("cache_clear_expired removed=%d", len(doomed))
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = self._stale_hits = self._misses = 0

    def stats(self) -> dict:
        with self._lock:
            lookups = self._hits + self._stale_hits + self._misses
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "stale_hits": self._stale_hits,
                "misses": self._misses,
                "hit_rate": (self._hits + self._stale_hits) / lookups if lookups else 0.0,
                "refreshing": len(self._refreshing),
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # --- Memoization ---

    def memoize(
        self,
        key_fn: Callable[..., str],
        ttl_seconds: float,
        tags: Iterable[str] = (),
        name: Optional[str] = None,
    ) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., Awaitable[Any]]]:
        """Wrap an async producer with read-through SWR caching.

        Fresh hit returns the cached value without calling the producer. Stale
        hit returns the cached value and refreshes it in the background. Miss
        awaits the producer; its exceptions propagate and nothing is cached.
        """
        tags = frozenset((tags,) if isinstance(tags, str) else tags)

        def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
            label = name or func.__name__

            @functools.wraps(func)
            async def wrapper(*args: Any, **kwargs: Any) -> Any:
                key = key_fn(*args, **kwargs)
                lookup = self.get_with_freshness(key)
                if lookup.hit:
                    if lookup.stale:
                        self._schedule_refresh(label, key, func, args, kwargs, ttl_seconds, tags)
                    return lookup.data
                result = await func(*args, **kwargs)
                self.set(key, result, ttl_seconds, tags)
                return result

            return wrapper

        return decorator

    def _schedule_refresh(self, label, key, func, args, kwargs, ttl_seconds, tags) -> None:
        with self._lock:
            if key in self._refreshing:
                return
            task = asyncio.get_running_loop().create_task(
                self._refresh(label, key, func, args, kwargs, ttl_seconds, tags)
            )
            self._refreshing[key] = task
        task.add_done_callback(lambda _t: self._refreshing.pop(key, None))

    async def _refresh(self, label, key, func, args, kwargs, ttl_seconds, tags) -> None:
        start = time.monotonic()
        try:
            result = await func(*args, **kwargs)
        except Exception as exc:
            logger.warning(
                "cache_refresh name=%s key=%s result=failure error=%s duration_ms=%.0f",
                label, key, exc, (time.monotonic() - start) * 1000,
            )
            return
        self.set(key, result, ttl_seconds, tags)
        logger.debug(
            "cache_refresh name=%s key=%s result=success duration_ms=%.0f",
            label, key, (time.monotonic() - start) * 1000,
        )

    async def drain(self) -> None:
        """Wait for in-flight background refreshes (shutdown and tests)."""
        while self._refreshing:
            await asyncio.gather(*list(self._refreshing.values()), return_exceptions=True)
