import fnmatch
import json
import logging
import time
from functools import lru_cache
from typing import Any, Callable, Optional

from cachetools import TLRUCache
from redis.asyncio import Redis, RedisError

from tasktracker.core.config import get_settings

logger = logging.getLogger(__name__)


def _entry_expiry(_key: str, entry: tuple[int, str], now: float) -> float:
    ttl, _raw = entry
    return now + ttl


class CacheLayer:
    """
    Key-value cache with per-entry TTL, backed by Redis.

    When no Redis DSN is configured, or Redis cannot be reached at
    startup, the layer degrades to a process-local TLRUCache so the API
    keeps working with a per-worker cache.

    Features:
    - JSON serialization of stored values
    - Lazy expiry (expired entries behave as absent)
    - Glob pattern deletion (SCAN based on Redis)
    - Automatic key namespacing
    - Every backing store failure is logged and counted, never raised
    """

    def __init__(
        self,
        redis_dsn: str | None = None,
        namespace: str = "tasktracker:",
        memory_maxsize: int = 2048,
        redis_pool_size: int = 5,
        redis: Redis | None = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.redis_dsn = redis_dsn
        self.namespace = namespace
        self.redis_pool_size = redis_pool_size
        self._redis: Redis | None = redis
        self.memory = TLRUCache(maxsize=memory_maxsize, ttu=_entry_expiry, timer=timer)
        self._initialized = False

        # Stats tracking
        self.stats = {
            "hits": 0,
            "misses": 0,
            "writes": 0,
            "invalidated": 0,
            "errors": 0,
        }

    @property
    def mode(self) -> str:
        return "redis" if self._redis is not None else "memory"

    async def init_cache(self):
        """Initialize the Redis connection, or fall back to memory."""
        if self._initialized:
            return

        try:
            if self._redis is None and self.redis_dsn:
                self._redis = Redis.from_url(
                    self.redis_dsn,
                    encoding="utf-8",
                    decode_responses=True,
                    max_connections=self.redis_pool_size,
                    socket_connect_timeout=5,
                    socket_keepalive=True,
                    health_check_interval=30,
                )

            if self._redis is not None:
                # Verify connection
                await self._redis.ping()
                logger.info("Redis connection established")

        except RedisError as e:
            logger.error(f"Redis initialization failed, using in-memory cache: {e}")
            # Allow degraded operation (memory only)
            self._redis = None

        self._initialized = True
        logger.info(f"Cache layer initialized ({self.mode})")

    def _key(self, key: str) -> str:
        """Build namespaced cache key."""
        return f"{self.namespace}{key}"

    def _serialize(self, value: Any) -> str:
        return json.dumps(value, default=str)

    def _deserialize(self, raw: str) -> Any:
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            # Return raw string if not valid JSON
            return raw

    async def get(self, key: str) -> Optional[Any]:
        """
        Look up a key.

        Returns None on a miss and when the backing store fails; the
        cache is an accelerator, callers fall through to the source.
        """
        await self.init_cache()
        full_key = self._key(key)

        raw = None
        if self._redis is not None:
            try:
                raw = await self._redis.get(full_key)
            except RedisError as e:
                logger.error(f"Redis GET error for {key}: {e}")
                self.stats["errors"] += 1
                return None
        else:
            entry = self.memory.get(full_key)
            if entry is not None:
                raw = entry[1]

        if raw is None:
            self.stats["misses"] += 1
            return None

        self.stats["hits"] += 1
        return self._deserialize(raw)

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        """Store a value for ``ttl`` seconds. Returns False when the write failed."""
        await self.init_cache()
        full_key = self._key(key)

        try:
            data = self._serialize(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Serialization failed for {key}: {e}")
            self.stats["errors"] += 1
            return False

        if self._redis is not None:
            try:
                await self._redis.set(full_key, data, ex=ttl)
            except RedisError as e:
                logger.error(f"Redis SET error for {key}: {e}")
                self.stats["errors"] += 1
                return False
        else:
            self.memory[full_key] = (ttl, data)

        self.stats["writes"] += 1
        logger.debug(f"Stored {key} (ttl={ttl}s)")
        return True

    async def delete(self, key: str):
        """Delete a single key."""
        await self.init_cache()
        full_key = self._key(key)

        if self._redis is not None:
            try:
                await self._redis.delete(full_key)
            except RedisError as e:
                logger.error(f"Redis DELETE error for {key}: {e}")
                self.stats["errors"] += 1
        else:
            self.memory.pop(full_key, None)

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching a glob pattern.

        Returns the number of keys removed. Deleting a pattern that
        matches nothing is a no-op.
        """
        await self.init_cache()
        full_pattern = self._key(pattern)
        deleted_count = 0

        if self._redis is not None:
            try:
                cursor = 0
                while True:
                    cursor, keys = await self._redis.scan(
                        cursor, match=full_pattern, count=100
                    )
                    if keys:
                        deleted_count += await self._redis.delete(*keys)
                    if cursor == 0:
                        break
            except RedisError as e:
                logger.error(f"Pattern delete error for {pattern}: {e}")
                self.stats["errors"] += 1
                return deleted_count
        else:
            self.memory.expire()
            for key in [k for k in self.memory.keys() if fnmatch.fnmatchcase(k, full_pattern)]:
                if self.memory.pop(key, None) is not None:
                    deleted_count += 1

        self.stats["invalidated"] += deleted_count
        logger.info(f"Pattern delete completed: {pattern} ({deleted_count} keys)")
        return deleted_count

    async def close(self):
        """Graceful shutdown of cache connections."""
        if self._redis is not None:
            try:
                await self._redis.aclose()
                logger.info("Redis connection closed")
            except RedisError as e:
                logger.error(f"Error closing Redis: {e}")

    def get_stats(self) -> dict:
        total = self.stats["hits"] + self.stats["misses"]
        return {
            **self.stats,
            "mode": self.mode,
            "memory_size": len(self.memory),
            "hit_rate": self.stats["hits"] / total if total > 0 else 0,
        }


@lru_cache
def get_cache_layer() -> CacheLayer:
    settings = get_settings()
    return CacheLayer(
        redis_dsn=settings.redis_dsn or None,
        namespace=settings.cache_namespace,
        memory_maxsize=settings.memory_cache_maxsize,
        redis_pool_size=settings.redis_pool_size,
    )
