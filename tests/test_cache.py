import time

import fakeredis
import pytest

from apextickets.cache import MemoryCache, RedisCache, new_cache


@pytest.fixture(params=["memory", "redis"])
async def cache(request):
    if request.param == "memory":
        yield new_cache("memory", ttl_seconds=60)
        return
    r = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield new_cache("redis", ttl_seconds=60, r=r)
    await r.aclose()


async def test_get_set_roundtrip(cache):
    assert await cache.get("events:all") is None
    await cache.set("events:all", {"events": [{"event_id": "1"}]})
    assert await cache.get("events:all") == {"events": [{"event_id": "1"}]}


async def test_invalidate_tag_only_drops_tagged_keys(cache):
    await cache.set("events:a=1", {"n": 1}, tags=("events",))
    await cache.set("event:9", {"n": 2}, tags=("events",))
    await cache.set("other", {"n": 3})

    assert await cache.invalidate_tag("events") == 2
    assert await cache.get("events:a=1") is None
    assert await cache.get("event:9") is None
    assert await cache.get("other") == {"n": 3}
    assert await cache.invalidate_tag("events") == 0


async def test_memory_entries_expire():
    cache = MemoryCache(ttl_seconds=10)
    await cache.set("k", {"v": 1})
    assert await cache.get("k") == {"v": 1}
    expires_at, value = cache._entries["k"]
    cache._entries["k"] = (time.monotonic() - 1, value)
    assert await cache.get("k") is None
    assert "k" not in cache._entries


async def test_redis_entries_carry_ttl():
    r = fakeredis.FakeAsyncRedis(decode_responses=True)
    cache = RedisCache(r=r, ttl_seconds=86400)
    await cache.set("k", {"v": 1}, tags=("events",))
    assert 0 < await r.ttl("cache:k") <= 86400
    assert await r.smembers("cachetag:events") == {"k"}
    await r.aclose()


def test_unknown_backend():
    with pytest.raises(RuntimeError):
        new_cache("memcached", ttl_seconds=1)
    with pytest.raises(RuntimeError):
        new_cache("redis", ttl_seconds=1)


async def test_memory_set_evicts_expired_keys_without_reads():
    cache = MemoryCache(ttl_seconds=0)
    for day in range(1000):
        await cache.set(f"events:date_stop=ge:day{day}", {"n": day},
                        tags=("events",))
    assert len(cache) <= 1
    assert len(cache._tags.get("events", ())) <= 1


async def test_memory_sweep_keeps_live_entries_and_tags():
    cache = MemoryCache(ttl_seconds=60)
    await cache.set("old", {"n": 1}, tags=("events",))
    await cache.set("live", {"n": 2}, tags=("events",))
    _, value = cache._entries["old"]
    cache._entries["old"] = (time.monotonic() - 1, value)

    await cache.set("new", {"n": 3})
    assert "old" not in cache._entries
    assert cache._tags["events"] == {"live"}
    assert await cache.get("live") == {"n": 2}
    assert await cache.invalidate_tag("events") == 1
    assert cache._tags == {}
