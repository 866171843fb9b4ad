"""TTL caches for game snapshots.

Two backends share the same read-after-TTL contract:

- ``TTLCache``: in-process dict with an injectable clock (default
  ``time.monotonic``).
- ``DiskTTLCache``: diskcache.FanoutCache so a worker process and an API
  process can share snapshots.

``GameStateCache`` sits on either backend and selects the TTL from the
snapshot's own status: short while live, long otherwise. An entry older than
its TTL is treated as absent; the caller fetches upstream.

Example:
    cache = GameStateCache(live_ttl=10, static_ttl=300)
    cache.put(745123, snapshot)
    cache.get(745123)  # snapshot, or None once 10s (live) have passed
"""

import time
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, TypeVar

from diskcache import FanoutCache

from mlb_prediction_sync.feed.models import GameSnapshot
from mlb_prediction_sync.monitoring.metrics import CacheMetrics

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """Cached value with its fetch time and the TTL it was stored under."""

    value: V
    fetched_at: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.fetched_at <= self.ttl


class TTLCache(Generic[K, V]):
    """Generic in-memory TTL cache.

    ``put`` is an unconditional overwrite. ``get`` returns None for missing
    and expired keys; expired entries stay until overwritten or purged so
    stats() can report them.
    """

    def __init__(self, default_ttl: float, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[K, CacheEntry[V]] = {}
        self.metrics = CacheMetrics()

    def get(self, key: K) -> V | None:
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def get_entry(self, key: K) -> CacheEntry[V] | None:
        """Return the fresh entry for key, or None."""
        entry = self._entries.get(key)
        if entry is None:
            self.metrics.misses += 1
            return None
        if not entry.is_fresh(self._clock()):
            self.metrics.expired += 1
            return None
        self.metrics.hits += 1
        return entry

    def peek(self, key: K) -> CacheEntry[V] | None:
        """Return the entry regardless of age, without touching metrics."""
        return self._entries.get(key)

    def put(self, key: K, value: V, ttl: float | None = None) -> None:
        self._entries[key] = CacheEntry(
            value=value,
            fetched_at=self._clock(),
            ttl=self.default_ttl if ttl is None else ttl,
        )

    def purge_expired(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._clock()
        stale = [key for key, entry in self._entries.items() if not entry.is_fresh(now)]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def entries(self) -> list[tuple[K, CacheEntry[V]]]:
        return list(self._entries.items())

    def stats(self) -> dict:
        now = self._clock()
        stale = sum(1 for entry in self._entries.values() if not entry.is_fresh(now))
        return {
            "entries": len(self._entries),
            "stale_entries": stale,
            **self.metrics.to_dict(),
        }

    def clear(self) -> None:
        self._entries.clear()


class DiskTTLCache(Generic[K, V]):
    """TTL cache persisted with diskcache.FanoutCache.

    Stores ``(value, fetched_at, ttl)`` tuples and applies the same freshness
    rule as TTLCache, with wall-clock ``time.time()`` since entries outlive
    the process. diskcache's own expiry removes entries well after they stop
    being served.
    """

    # Multiple of the TTL after which diskcache drops an entry outright
    RETENTION_FACTOR = 30

    def __init__(self, cache_dir: str, default_ttl: float):
        self.default_ttl = default_ttl
        self._cache = FanoutCache(
            directory=cache_dir,
            shards=4,
            timeout=0.01,
        )
        self.metrics = CacheMetrics()

    def get(self, key: K) -> V | None:
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def get_entry(self, key: K) -> CacheEntry[V] | None:
        entry = self.peek(key)
        if entry is None:
            self.metrics.misses += 1
            return None
        if not entry.is_fresh(time.time()):
            self.metrics.expired += 1
            return None
        self.metrics.hits += 1
        return entry

    def peek(self, key: K) -> CacheEntry[V] | None:
        cached = self._cache.get(str(key), default=None)
        if cached is None:
            return None
        value, fetched_at, ttl = cached
        return CacheEntry(value=value, fetched_at=fetched_at, ttl=ttl)

    def put(self, key: K, value: V, ttl: float | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        self._cache.set(str(key), (value, time.time(), ttl), expire=ttl * self.RETENTION_FACTOR)

    def purge_expired(self) -> int:
        return self._cache.expire()

    def entries(self) -> list[tuple[str, CacheEntry[V]]]:
        result = []
        for key in self._cache:
            entry = self.peek(key)
            if entry is not None:
                result.append((key, entry))
        return result

    def stats(self) -> dict:
        now = time.time()
        entries = [entry for _, entry in self.entries()]
        return {
            "entries": len(entries),
            "stale_entries": sum(1 for entry in entries if not entry.is_fresh(now)),
            **self.metrics.to_dict(),
        }

    def clear(self) -> None:
        """Clear entire cache (for testing)."""
        self._cache.clear()

    def close(self) -> None:
        self._cache.close()


class GameStateCache:
    """Latest known snapshot per game, with status-dependent TTLs.

    Attributes:
        live_ttl: Seconds a live game's snapshot may be served
        static_ttl: Seconds a scheduled, final, or postponed game's snapshot may be served
    """

    def __init__(
        self,
        live_ttl: float = 10,
        static_ttl: float = 300,
        backend: TTLCache | DiskTTLCache | None = None,
    ):
        self.live_ttl = live_ttl
        self.static_ttl = static_ttl
        self._backend = backend if backend is not None else TTLCache(default_ttl=static_ttl)

    def ttl_for(self, snapshot: GameSnapshot) -> float:
        return self.live_ttl if snapshot.is_live else self.static_ttl

    def get(self, game_pk: int) -> GameSnapshot | None:
        """Return the cached snapshot if still within its TTL."""
        value = self._backend.get(game_pk)
        if value is None:
            return None
        if isinstance(value, dict):
            return GameSnapshot.model_validate(value)
        return value

    def put(self, game_pk: int, snapshot: GameSnapshot) -> None:
        """Overwrite the entry for game_pk and reset its fetch time."""
        value = snapshot if isinstance(self._backend, TTLCache) else snapshot.model_dump(mode="json")
        self._backend.put(game_pk, value, ttl=self.ttl_for(snapshot))

    def stats(self) -> dict:
        entries = self._backend.entries()
        live = 0
        for _, entry in entries:
            value = entry.value
            status = value.get("status") if isinstance(value, dict) else value.status.value
            if status == "live":
                live += 1
        stats = self._backend.stats()
        return {
            "entries": stats["entries"],
            "live_entries": live,
            "stale_entries": stats["stale_entries"],
            "metrics": {k: stats[k] for k in ("hits", "misses", "expired", "hit_rate")},
        }

    def clear(self) -> None:
        self._backend.clear()

    def close(self) -> None:
        if isinstance(self._backend, DiskTTLCache):
            self._backend.close()
