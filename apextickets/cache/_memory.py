from __future__ import annotations
import time
from typing import Optional, Dict, Any, Iterable, Set, Tuple


class ResponseCache:
    """In-process TTL cache; one event loop, so no locks.

    Every entry shares one TTL, so ``_entries`` kept in insertion order is
    also expiry order: ``set`` sweeps expired entries off the front.
    """

    def __init__(self, ttl_seconds: int) -> None:
        self.ttl = ttl_seconds
        self._entries: Dict[str, Tuple[float, Dict[str, Any]]] = {}
        self._tags: Dict[str, Set[str]] = {}
        self._key_tags: Dict[str, Set[str]] = {}

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        hit = self._entries.get(key)
        if hit is None:
            return None
        expires_at, value = hit
        if expires_at <= time.monotonic():
            self._drop(key)
            return None
        return value

    async def set(
        self, key: str, value: Dict[str, Any], tags: Iterable[str] = ()
    ) -> None:
        now = time.monotonic()
        self._sweep(now)
        # re-insert so the key moves to the back of expiry order
        self._entries.pop(key, None)
        self._entries[key] = (now + self.ttl, value)
        for tag in tags:
            self._tags.setdefault(tag, set()).add(key)
            self._key_tags.setdefault(key, set()).add(tag)

    async def invalidate_tag(self, tag: str) -> int:
        keys = self._tags.pop(tag, set())
        dropped = 0
        for key in keys:
            if key in self._entries:
                dropped += 1
            self._drop(key)
        return dropped

    def __len__(self) -> int:
        return len(self._entries)

    def _sweep(self, now: float) -> None:
        expired = []
        for key, (expires_at, _) in self._entries.items():
            if expires_at > now:
                break
            expired.append(key)
        for key in expired:
            self._drop(key)

    def _drop(self, key: str) -> None:
        self._entries.pop(key, None)
        for tag in self._key_tags.pop(key, ()):
            keys = self._tags.get(tag)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                del self._tags[tag]
