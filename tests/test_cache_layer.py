"""
Unit tests for CacheLayer.
"""

from unittest.mock import AsyncMock

import pytest
from redis.asyncio import RedisError

from tasktracker.cache.layer import CacheLayer


class TestMemoryCache:
    """Behaviour when no Redis is configured."""

    @pytest.mark.asyncio
    async def test_set_then_get(self, cache):
        await cache.set("tasks:u1:/tasks", {"data": [1, 2]}, ttl=60)

        assert cache.mode == "memory"
        assert await cache.get("tasks:u1:/tasks") == {"data": [1, 2]}
        assert cache.stats["hits"] == 1
        assert cache.stats["writes"] == 1

    @pytest.mark.asyncio
    async def test_miss(self, cache):
        assert await cache.get("nope") is None
        assert cache.stats["misses"] == 1

    @pytest.mark.asyncio
    async def test_entries_expire_after_ttl(self, cache, clock):
        await cache.set("short", "v", ttl=10)
        await cache.set("long", "v", ttl=100)

        clock.advance(11)

        assert await cache.get("short") is None
        assert await cache.get("long") == "v"

    @pytest.mark.asyncio
    async def test_stored_values_are_copies(self, cache):
        value = {"data": ["a"]}
        await cache.set("k", value, ttl=60)
        value["data"].append("b")

        assert await cache.get("k") == {"data": ["a"]}

    @pytest.mark.asyncio
    async def test_delete(self, cache):
        await cache.set("k", 1, ttl=60)
        await cache.delete("k")
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_delete_pattern_is_scoped_and_idempotent(self, cache):
        await cache.set("tasks:u1:/tasks", 1, ttl=60)
        await cache.set("tasks:u1:/tasks?page=2", 2, ttl=60)
        await cache.set("tasks:u2:/tasks", 3, ttl=60)
        await cache.set("task:u1:/tasks/abc", 4, ttl=60)

        assert await cache.delete_pattern("tasks:u1*") == 2
        assert await cache.delete_pattern("tasks:u1*") == 0

        assert await cache.get("tasks:u1:/tasks") is None
        assert await cache.get("tasks:u1:/tasks?page=2") is None
        assert await cache.get("tasks:u2:/tasks") == 3
        assert await cache.get("task:u1:/tasks/abc") == 4
        assert cache.stats["invalidated"] == 2

    @pytest.mark.asyncio
    async def test_unserializable_value_is_not_stored(self, cache):
        circular = {}
        circular["self"] = circular

        assert await cache.set("circular", circular, ttl=60) is False
        assert await cache.get("circular") is None
        assert cache.stats["errors"] == 1

    def test_stats(self, cache):
        stats = cache.get_stats()
        assert stats["mode"] == "memory"
        assert stats["hit_rate"] == 0


@pytest.fixture
def redis_client():
    client = AsyncMock()
    client.ping.return_value = True
    client.get.return_value = None
    client.delete.return_value = 0
    client.scan.return_value = (0, [])
    return client


@pytest.fixture
def redis_cache(redis_client) -> CacheLayer:
    return CacheLayer(redis=redis_client, namespace="test:")


class TestRedisCache:
    @pytest.mark.asyncio
    async def test_init_pings_redis(self, redis_cache, redis_client):
        await redis_cache.init_cache()
        await redis_cache.init_cache()

        redis_client.ping.assert_awaited_once()
        assert redis_cache.mode == "redis"

    @pytest.mark.asyncio
    async def test_unreachable_redis_degrades_to_memory(self, redis_client):
        redis_client.ping.side_effect = RedisError("connection refused")
        layer = CacheLayer(redis=redis_client)

        await layer.init_cache()
        await layer.set("k", "v", ttl=60)

        assert layer.mode == "memory"
        assert await layer.get("k") == "v"
        redis_client.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_set_uses_namespaced_key_and_ttl(self, redis_cache, redis_client):
        await redis_cache.set("tasks:u1:/tasks", {"data": []}, ttl=300)

        redis_client.set.assert_awaited_once_with(
            "test:tasks:u1:/tasks", '{"data": []}', ex=300
        )

    @pytest.mark.asyncio
    async def test_get_hit(self, redis_cache, redis_client):
        redis_client.get.return_value = '{"data": [1]}'

        assert await redis_cache.get("k") == {"data": [1]}
        redis_client.get.assert_awaited_once_with("test:k")

    @pytest.mark.asyncio
    async def test_get_failure_is_a_miss(self, redis_cache, redis_client):
        redis_client.get.side_effect = RedisError("down")

        assert await redis_cache.get("k") is None
        assert redis_cache.stats["errors"] == 1

    @pytest.mark.asyncio
    async def test_set_failure_is_swallowed(self, redis_cache, redis_client):
        redis_client.set.side_effect = RedisError("down")

        assert await redis_cache.set("k", 1, ttl=60) is False
        assert redis_cache.stats["errors"] == 1

    @pytest.mark.asyncio
    async def test_delete_pattern_scans_until_cursor_returns_to_zero(
        self, redis_cache, redis_client
    ):
        redis_client.scan.side_effect = [
            (42, ["test:tasks:u1:/tasks"]),
            (0, ["test:tasks:u1:/tasks?page=2"]),
        ]
        redis_client.delete.return_value = 1

        assert await redis_cache.delete_pattern("tasks:u1*") == 2

        first_call = redis_client.scan.await_args_list[0]
        assert first_call.args == (0,)
        assert first_call.kwargs["match"] == "test:tasks:u1*"
        assert redis_client.scan.await_args_list[1].args == (42,)

    @pytest.mark.asyncio
    async def test_delete_pattern_without_matches(self, redis_cache, redis_client):
        assert await redis_cache.delete_pattern("tasks:u1*") == 0
        redis_client.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_pattern_failure_is_swallowed(self, redis_cache, redis_client):
        redis_client.scan.side_effect = RedisError("down")

        assert await redis_cache.delete_pattern("tasks:u1*") == 0
        assert redis_cache.stats["errors"] == 1

    @pytest.mark.asyncio
    async def test_close(self, redis_cache, redis_client):
        await redis_cache.init_cache()
        await redis_cache.close()
        redis_client.aclose.assert_awaited_once()
