# app/core/cache.py

import asyncio
import time
from typing import Callable, Dict, Optional, Tuple, Union

import redis.asyncio as redis

from app.core.config import settings


class Cache:
    """
    Redis cache wrapper. This is the key/value store that backs sessions
    and one-time passwords.

    - connect() / close() manage the client lifecycle.
    - ping() used by /health and startup checks.
    - get / set / delete for TTL'd values.
    - set_if_absent / delete_if_equals for short-lived locks and
      conditional unlinking.
    """

    # Delete KEYS[1] only while it still holds ARGV[1]
    _DELETE_IF_EQUALS_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
  return redis.call('DEL', KEYS[1])
end
return 0
"""

    def __init__(self, url: Optional[str] = None) -> None:
        self.url = url or settings.REDIS_URL
        self.redis: Optional[redis.Redis] = None
        self._delete_if_equals = None

    async def connect(self) -> None:
        if self.redis is not None:
            return

        self.redis = redis.from_url(
            self.url,
            decode_responses=True,
        )
        self._delete_if_equals = self.redis.register_script(
            self._DELETE_IF_EQUALS_SCRIPT
        )

    async def close(self) -> None:
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None
            self._delete_if_equals = None

    async def ping(self) -> bool:
        """
        Lightweight health check used by /health and startup.
        """
        try:
            if self.redis is None:
                await self.connect()
            return bool(await self.redis.ping())
        except Exception:
            return False

    async def get(self, key: str) -> Optional[str]:
        if self.redis is None:
            await self.connect()
        return await self.redis.get(key)

    async def set(self, key: str, value: str, ttl: int = 3600) -> None:
        if self.redis is None:
            await self.connect()
        await self.redis.set(key, value, ex=ttl)

    async def delete(self, key: str) -> int:
        if self.redis is None:
            await self.connect()
        return int(await self.redis.delete(key))

    async def set_if_absent(self, key: str, value: str, ttl: int) -> bool:
        if self.redis is None:
            await self.connect()
        return bool(await self.redis.set(key, value, ex=ttl, nx=True))

    async def delete_if_equals(self, key: str, value: str) -> bool:
        if self.redis is None:
            await self.connect()
        return bool(await self._delete_if_equals(keys=[key], args=[value]))


class InMemoryCache:
    """
    Process-local stand-in for Cache with the same coroutine interface.

    Expiry is evaluated lazily against `clock`, so tests can move time
    forward without sleeping. Every call yields to the event loop once,
    the way a network round-trip would.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self.clock = clock
        self._data: Dict[str, Tuple[str, float]] = {}

    async def connect(self) -> None:
        return None

    async def close(self) -> None:
        return None

    async def ping(self) -> bool:
        return True

    def clear(self) -> None:
        self._data.clear()

    def _live(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self.clock():
            del self._data[key]
            return None
        return value

    async def get(self, key: str) -> Optional[str]:
        await asyncio.sleep(0)
        return self._live(key)

    async def set(self, key: str, value: str, ttl: int = 3600) -> None:
        await asyncio.sleep(0)
        self._data[key] = (value, self.clock() + ttl)

    async def delete(self, key: str) -> int:
        await asyncio.sleep(0)
        if self._live(key) is None:
            return 0
        del self._data[key]
        return 1

    async def set_if_absent(self, key: str, value: str, ttl: int) -> bool:
        await asyncio.sleep(0)
        if self._live(key) is not None:
            return False
        self._data[key] = (value, self.clock() + ttl)
        return True

    async def delete_if_equals(self, key: str, value: str) -> bool:
        await asyncio.sleep(0)
        if self._live(key) != value:
            return False
        del self._data[key]
        return True

    async def ttl(self, key: str) -> Optional[float]:
        """Seconds left before `key` expires, or None if it is gone."""
        if self._live(key) is None:
            return None
        return self._data[key][1] - self.clock()


KeyValueStore = Union[Cache, InMemoryCache]


def build_cache() -> KeyValueStore:
    if settings.CACHE_BACKEND == "memory":
        return InMemoryCache()
    return Cache(settings.REDIS_URL)


cache = build_cache()
