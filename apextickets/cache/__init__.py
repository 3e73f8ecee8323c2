from typing import Optional, Union
import redis.asyncio as redis

from ._memory import ResponseCache as MemoryCache
from ._redis import ResponseCache as RedisCache

ResponseCache = Union[MemoryCache, RedisCache]


def redis_from_url(url: str, max_connections: int = 64) -> redis.Redis:
    return redis.from_url(
        url,
        decode_responses=True,
        max_connections=max_connections,
        socket_timeout=2.0,
        socket_connect_timeout=2.0,
        retry_on_timeout=True,
    )


# Factory keeps server.py simple and constructor-agnostic:
def new_cache(backend: str, *, ttl_seconds: int,
              r: Optional[redis.Redis] = None) -> ResponseCache:
    if backend == "redis":
        if r is None:
            raise RuntimeError("ResponseCache(redis) requires r=redis.Redis")
        return RedisCache(r=r, ttl_seconds=ttl_seconds)
    if backend == "memory":
        return MemoryCache(ttl_seconds=ttl_seconds)
    raise RuntimeError(f"unknown CACHE_BACKEND: {backend!r}")


__all__ = [
    "ResponseCache", "MemoryCache", "RedisCache", "new_cache",
    "redis_from_url",
]
