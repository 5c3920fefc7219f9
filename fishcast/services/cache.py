"""Versioned TTL cache over a string key/value store."""

import logging
import math
from datetime import datetime
from typing import Any, Callable, Protocol, TypeVar

from cachetools import LRUCache
from pydantic import BaseModel, ValidationError

from fishcast.config import get_settings

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
T = TypeVar("T")


class CacheEntry(BaseModel):
    """A stored value with its write time and time-to-live."""

    value: Any
    stored_at: datetime
    ttl_seconds: float
    rollover: bool = False

    def age_seconds(self, now: datetime) -> float:
        """Seconds elapsed since the entry was written."""
        return (now - self.stored_at).total_seconds()

    def is_fresh(self, now: datetime) -> bool:
        """
        Check whether the entry may still be served.

        Rollover entries additionally expire on the first calendar day of
        any month after the one they were stored in.
        """
        if self.age_seconds(now) >= self.ttl_seconds:
            return False
        if self.rollover and now.day == 1:
            if (now.year, now.month) > (self.stored_at.year, self.stored_at.month):
                return False
        return True


class KeyValueStore(Protocol):
    """Protocol for string key/value storage backends."""

    def get(self, key: str) -> str | None:
        """Get the raw stored string for a key."""
        ...

    def set(self, key: str, data: str, ttl_seconds: float) -> None:
        """Store a raw string under a key."""
        ...

    def delete(self, key: str) -> None:
        """Remove a key if present."""
        ...

    def clear(self) -> None:
        """Remove every key."""
        ...


class InMemoryKeyValueStore:
    """Bounded in-memory store; least recently used keys are evicted."""

    def __init__(self, maxsize: int | None = None) -> None:
        """Initialize in-memory store with an LRU cache."""
        if maxsize is None:
            maxsize = get_settings().cache_max_entries
        self._cache: LRUCache = LRUCache(maxsize=maxsize)

    def get(self, key: str) -> str | None:
        return self._cache.get(key)

    def set(self, key: str, data: str, ttl_seconds: float) -> None:
        # Expiry is decided by VersionedCache, which knows the rollover rule
        self._cache[key] = data

    def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: str) -> bool:
        return key in self._cache


class RedisKeyValueStore:
    """Redis-backed store for production."""

    def __init__(self, redis_url: str) -> None:
        """
        Initialize Redis store.

        Args:
            redis_url: Redis connection URL.
        """
        import redis

        self._redis = redis.from_url(redis_url, decode_responses=True)
        logger.info("Redis cache store initialized")

    def get(self, key: str) -> str | None:
        try:
            return self._redis.get(key)
        except Exception as e:
            logger.error(f"Redis get error for {key}: {e}")
            return None

    def set(self, key: str, data: str, ttl_seconds: float) -> None:
        try:
            self._redis.setex(key, max(1, math.ceil(ttl_seconds)), data)
        except Exception as e:
            logger.error(f"Redis set error for {key}: {e}")

    def delete(self, key: str) -> None:
        try:
            self._redis.delete(key)
        except Exception as e:
            logger.error(f"Redis delete error for {key}: {e}")

    def clear(self) -> None:
        try:
            self._redis.flushdb()
        except Exception as e:
            logger.error(f"Redis clear error: {e}")


class VersionedCache:
    """
    Key -> (value, stored_at, ttl) cache with optional calendar rollover.

    Values must be JSON-serializable. Every write replaces the whole entry,
    so concurrent writers to one key leave the last writer's value.
    """

    def __init__(self, store: KeyValueStore, clock: Clock = datetime.now) -> None:
        self._store = store
        self._clock = clock

    def now(self) -> datetime:
        """Current time according to the cache clock."""
        return self._clock()

    def get_entry(self, key: str) -> CacheEntry | None:
        """
        Get the full entry for a key.

        Expired entries are deleted on read. Corrupt entries are logged,
        deleted and reported as a miss.

        Args:
            key: Versioned cache key.

        Returns:
            CacheEntry if present and fresh, None otherwise.
        """
        raw = self._store.get(key)
        if raw is None:
            return None

        try:
            entry = CacheEntry.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(
                f"Discarding unreadable cache entry: {e.error_count()} errors",
                extra={"cache_key": key},
            )
            self._store.delete(key)
            return None

        if not entry.is_fresh(self._clock()):
            self._store.delete(key)
            return None
        return entry

    def get(self, key: str) -> Any | None:
        """Get a cached value, or None on miss/expiry."""
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def get_as(self, key: str, parse: Callable[[Any], T]) -> T | None:
        """
        Get a cached value converted by `parse`.

        A value that `parse` rejects with a ValidationError is logged,
        deleted and reported as a miss.
        """
        value = self.get(key)
        if value is None:
            return None
        try:
            return parse(value)
        except ValidationError as e:
            self.discard(key, e)
            return None

    def discard(self, key: str, error: ValidationError) -> None:
        """Drop an entry whose value no longer fits its model."""
        logger.warning(
            f"Discarding cached value of the wrong shape: {error.error_count()} errors",
            extra={"cache_key": key},
        )
        self._store.delete(key)

    def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: float,
        rollover: bool = False,
    ) -> None:
        """
        Store a value under a key as a brand-new entry.

        Args:
            key: Versioned cache key.
            value: JSON-serializable value.
            ttl_seconds: Time-to-live in seconds.
            rollover: Also expire on the first day of a later month.
        """
        entry = CacheEntry(
            value=value,
            stored_at=self._clock(),
            ttl_seconds=ttl_seconds,
            rollover=rollover,
        )
        self._store.set(key, entry.model_dump_json(), ttl_seconds)

    def delete(self, key: str) -> None:
        """Delete a key."""
        self._store.delete(key)

    def delete_many(self, keys: list[str]) -> None:
        """Delete several keys."""
        for key in keys:
            self._store.delete(key)

    def clear(self) -> None:
        """Remove every entry."""
        self._store.clear()


# Singleton instance
_cache: VersionedCache | None = None


def get_cache() -> VersionedCache:
    """Get or create the shared cache instance."""
    global _cache
    if _cache is None:
        settings = get_settings()
        if settings.use_redis and settings.redis_url:
            _cache = VersionedCache(RedisKeyValueStore(settings.redis_url))
            logger.info("Using Redis cache store")
        else:
            _cache = VersionedCache(InMemoryKeyValueStore())
            logger.info("Using in-memory cache store")
    return _cache


def clear_cache() -> None:
    """Reset the shared cache instance."""
    global _cache
    _cache = None
