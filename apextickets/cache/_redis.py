from __future__ import annotations
from typing import Optional, Dict, Any, Iterable
import orjson
import redis.asyncio as redis


# ---- keys
def k_entry(key: str) -> str: return f"cache:{key}"
def k_tag(tag: str) -> str: return f"cachetag:{tag}"


class ResponseCache:
    def __init__(self, r: redis.Redis, ttl_seconds: int) -> None:
        self.r = r
        self.ttl = ttl_seconds

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        raw = await self.r.get(k_entry(key))
        if raw is None:
            return None
        return orjson.loads(raw)

    async def set(
        self, key: str, value: Dict[str, Any], tags: Iterable[str] = ()
    ) -> None:
        # last write wins; concurrent fills for one key are equivalent
        pipe = self.r.pipeline(transaction=True)
        pipe.set(k_entry(key), orjson.dumps(value), ex=self.ttl)
        for tag in tags:
            pipe.sadd(k_tag(tag), key)
            pipe.expire(k_tag(tag), self.ttl + 60)
        await pipe.execute()

    async def invalidate_tag(self, tag: str) -> int:
        keys = await self.r.smembers(k_tag(tag))
        if not keys:
            return 0
        pipe = self.r.pipeline(transaction=True)
        for key in keys:
            pipe.delete(k_entry(key))
        pipe.delete(k_tag(tag))
        deleted = await pipe.execute()
        return sum(int(n) for n in deleted[:-1])
