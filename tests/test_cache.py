"""Tests for the token cache."""

from types import SimpleNamespace

import pytest

from dex_aggregator.schemas.token import TokenQuery
from dex_aggregator.services.cache import redis_client as cache_module
from dex_aggregator.services.cache.redis_client import TokenCache, make_cache_key


class BrokenRedis:
    async def get(self, key):
        raise ConnectionError("redis down")

    async def set(self, key, value, ex=None):
        raise ConnectionError("redis down")

    async def delete(self, key):
        raise ConnectionError("redis down")


class DictRedis:
    def __init__(self):
        self.store = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value

    async def delete(self, key):
        self.store.pop(key, None)


def test_cache_key_ignores_param_order_and_none():
    a = make_cache_key("tokens", {"sort_by": "volume", "limit": 20, "cursor": None})
    b = make_cache_key("tokens", {"limit": 20, "sort_by": "volume"})

    assert a == b == "tokens:limit=20:sort_by=volume"


@pytest.mark.asyncio
async def test_memory_round_trip(memory_cache):
    await memory_cache.set_json("token:AAA", {"price": 1.5})

    assert await memory_cache.get_json("token:AAA") == {"price": 1.5}


@pytest.mark.asyncio
async def test_memory_entries_expire(memory_cache, monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(cache_module, "time", SimpleNamespace(monotonic=lambda: now[0]))

    await memory_cache.set("k", "v", ttl=30)
    assert await memory_cache.get("k") == "v"

    now[0] += 31
    assert await memory_cache.get("k") is None


@pytest.mark.asyncio
async def test_delete(memory_cache):
    await memory_cache.set("k", "v")
    await memory_cache.delete("k")

    assert await memory_cache.get("k") is None


@pytest.mark.asyncio
async def test_unreadable_entry_is_a_miss(memory_cache):
    await memory_cache.set("k", "{not json")

    assert await memory_cache.get_json("k") is None


@pytest.mark.asyncio
async def test_redis_failure_falls_back_to_memory():
    cache = TokenCache(redis_client=BrokenRedis(), default_ttl=30)

    assert await cache.set_json("k", [1, 2]) is True
    assert await cache.get_json("k") == [1, 2]


@pytest.mark.asyncio
async def test_redis_used_when_available():
    redis_client = DictRedis()
    cache = TokenCache(redis_client=redis_client, default_ttl=30)

    await cache.set_json("k", {"a": 1})

    assert redis_client.store == {"k": '{"a": 1}'}
    assert await cache.get_json("k") == {"a": 1}


def test_cache_key_values_cannot_collide():
    smuggled = make_cache_key("tokens", {"cursor": "abc:limit=5"})
    separate = make_cache_key("tokens", {"cursor": "abc", "limit": 5})

    assert smuggled != separate


def test_cache_keys_for_distinct_queries_differ():
    a = make_cache_key("tokens", TokenQuery(cursor="abc:limit=5").cache_params())
    b = make_cache_key("tokens", TokenQuery(cursor="abc", limit=5).cache_params())

    assert a != b


@pytest.mark.asyncio
async def test_expired_entries_are_swept_on_write(memory_cache, monkeypatch):
    now = [0.0]
    monkeypatch.setattr(cache_module, "time", SimpleNamespace(monotonic=lambda: now[0]))

    for i in range(1000):
        await memory_cache.set(f"tokens:cursor={i}", "page", ttl=1)
        now[0] += 5

    assert len(memory_cache._memory_cache) == 1


@pytest.mark.asyncio
async def test_live_entries_are_capped_oldest_first(monkeypatch):
    monkeypatch.setattr(cache_module, "time", SimpleNamespace(monotonic=lambda: 0.0))
    cache = TokenCache(redis_client=None, default_ttl=30, max_memory_entries=3)

    for key in ("a", "b", "c", "d"):
        await cache.set(key, key)

    assert await cache.get("a") is None
    assert [await cache.get(k) for k in ("b", "c", "d")] == ["b", "c", "d"]


@pytest.mark.asyncio
async def test_rewrite_refreshes_position(monkeypatch):
    monkeypatch.setattr(cache_module, "time", SimpleNamespace(monotonic=lambda: 0.0))
    cache = TokenCache(redis_client=None, default_ttl=30, max_memory_entries=2)

    await cache.set("a", "1")
    await cache.set("b", "2")
    await cache.set("a", "3")
    await cache.set("c", "4")

    assert await cache.get("a") == "3"
    assert await cache.get("b") is None


@pytest.mark.asyncio
async def test_zero_ttl_is_not_cached():
    redis_client = DictRedis()
    cache = TokenCache(redis_client=redis_client, default_ttl=30)

    assert await cache.set("k", "v", ttl=0) is False
    assert redis_client.store == {}
    assert cache._memory_cache == {}
