"""
Fixed-window rate limiting for scan attempts.

The limiter counts hits per key inside fixed windows of
RATE_LIMIT_WINDOW_SECONDS; the (RATE_LIMIT_MAX_ATTEMPTS + 1)-th hit in a
window is denied until the window ends.

Counter stores:
    InMemoryCounterStore  - per-process dict guarded by a lock. Correct for a
                            single instance only: each process counts on its
                            own, so N instances allow N times the limit.
    CacheCounterStore     - Django cache (add + incr). Point the cache at
                            Redis/Memcached to share counters across instances.

Select with SCANMAN["COUNTER_STORE"] (dotted path).
"""

import logging
import threading
import time
from dataclasses import dataclass

from django.core.cache import caches

from scanman.conf import scanman_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single hit."""

    allowed: bool
    key: str
    count: int
    limit: int
    reset_at: float

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)


class InMemoryCounterStore:
    """
    In-process counter store.

    Entries expire at the end of their window. Expired entries are swept at
    most every ``sweep_interval`` seconds (on the next increment) and on
    demand via sweep(). When ``max_keys`` is reached, a sweep is forced and
    the oldest windows are dropped.
    """

    def __init__(self, sweep_interval: int | None = None, max_keys: int | None = None):
        self._counters: dict[str, tuple[int, float]] = {}
        self._lock = threading.Lock()
        self.sweep_interval = (
            scanman_settings.RATE_LIMIT_SWEEP_SECONDS if sweep_interval is None else sweep_interval
        )
        self.max_keys = scanman_settings.RATE_LIMIT_MAX_KEYS if max_keys is None else max_keys
        self._last_sweep = time.monotonic()

    def increment(self, key: str, expires_at: float, now: float | None = None) -> int:
        """Atomically add 1 to key and return the new count."""
        now = time.time() if now is None else now
        with self._lock:
            self._maybe_sweep(now)
            count, current_expiry = self._counters.get(key, (0, expires_at))
            if current_expiry <= now:
                count = 0
                current_expiry = expires_at
            count += 1
            self._counters[key] = (count, current_expiry)
            return count

    def _maybe_sweep(self, now: float) -> None:
        # Caller holds the lock.
        due = time.monotonic() - self._last_sweep >= self.sweep_interval
        if due or len(self._counters) >= self.max_keys:
            self._sweep_locked(now)
        if len(self._counters) >= self.max_keys:
            overflow = len(self._counters) - self.max_keys + 1
            oldest = sorted(self._counters.items(), key=lambda item: item[1][1])[:overflow]
            for key, _ in oldest:
                del self._counters[key]

    def _sweep_locked(self, now: float) -> int:
        expired = [k for k, (_, exp) in self._counters.items() if exp <= now]
        for key in expired:
            del self._counters[key]
        self._last_sweep = time.monotonic()
        return len(expired)

    def sweep(self, now: float | None = None) -> int:
        """Remove expired entries. Returns how many were removed."""
        now = time.time() if now is None else now
        with self._lock:
            removed = self._sweep_locked(now)
        if removed:
            logger.debug("Rate limit sweep removed %d expired counters", removed)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._counters.clear()

    def __len__(self) -> int:
        return len(self._counters)


class CacheCounterStore:
    """
    Counter store backed by a Django cache alias.

    cache.add() creates the counter only if absent and cache.incr() is atomic
    on Redis and Memcached, so concurrent instances share one count.
    """

    def __init__(self, alias: str = "default", prefix: str = "scanman:rl:"):
        self.alias = alias
        self.prefix = prefix

    @property
    def cache(self):
        return caches[self.alias]

    def increment(self, key: str, expires_at: float, now: float | None = None) -> int:
        now = time.time() if now is None else now
        timeout = max(1, int(expires_at - now) + 1)
        cache_key = f"{self.prefix}{key}"
        self.cache.add(cache_key, 0, timeout=timeout)
        try:
            return self.cache.incr(cache_key)
        except ValueError:
            # Evicted between add() and incr()
            self.cache.add(cache_key, 1, timeout=timeout)
            return 1

    def sweep(self, now: float | None = None) -> int:
        """Cache entries expire on their own."""
        return 0

    def clear(self) -> None:
        self.cache.clear()


class RateLimiter:
    """Fixed-window limiter over a counter store."""

    def __init__(self, store, limit: int, window_seconds: int):
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds

    def window_bounds(self, now: float) -> tuple[int, int]:
        start = int(now // self.window_seconds) * self.window_seconds
        return start, start + self.window_seconds

    def hit(self, key: str, now: float | None = None) -> RateLimitResult:
        """Count one attempt for key and decide whether it is allowed."""
        now = time.time() if now is None else now
        window_start, window_end = self.window_bounds(now)
        count = self.store.increment(f"{key}:{window_start}", expires_at=window_end, now=now)
        return RateLimitResult(
            allowed=count <= self.limit,
            key=key,
            count=count,
            limit=self.limit,
            reset_at=window_end,
        )


def scan_key(scanner_business_id, source_address: str) -> str:
    """Rate limit key for a (scanner, source address) pair."""
    return f"scan:{scanner_business_id}:{source_address or '-'}"
