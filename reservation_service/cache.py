"""Read-through cache for the service's read operations.

Only projections returned to callers are cached; ledger and lifecycle writes
never go through here. Entries are grouped into namespaces and every write
path invalidates the namespaces whose contents it may have changed.
"""
import json
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from reservation_service.config import settings

logger = logging.getLogger(__name__)

BOOKS = "books"
USERS = "users"
RESERVATIONS = "reservations"
USER_RESERVATIONS = "user_reservations"

ALL_NAMESPACES = (BOOKS, USERS, RESERVATIONS, USER_RESERVATIONS)


class ReadCache(ABC):
    """Interface shared by the cache backends. Values must be JSON-serialisable.

    Invalidation runs after the write it follows has committed, so backends
    must not let their own failures escape from it.
    """

    @abstractmethod
    async def get(self, namespace: str, key: str) -> Any | None: ...

    @abstractmethod
    async def set(self, namespace: str, key: str, value: Any) -> None: ...

    @abstractmethod
    async def invalidate(self, *namespaces: str) -> None: ...

    async def clear(self) -> None:
        await self.invalidate(*ALL_NAMESPACES)

    async def get_or_load(
        self, namespace: str, key: str, loader: Callable[[], Awaitable[Any]]
    ) -> Any:
        value = await self.get(namespace, key)
        if value is not None:
            return value
        value = await loader()
        await self.set(namespace, key, value)
        return value


class MemoryCache(ReadCache):
    """Process-local backend. Nothing below awaits, so each call is atomic on the event loop."""

    def __init__(self, ttl: float, max_entries: int = 1000):
        self.ttl = ttl
        self.max_entries = max_entries
        self._entries: dict[str, dict[str, tuple[float, Any]]] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._entries.values())

    async def get(self, namespace: str, key: str) -> Any | None:
        entries = self._entries.get(namespace, {})
        entry = entries.get(key)
        if entry is not None and entry[0] < time.monotonic():
            del entries[key]
            entry = None
        if entry is None:
            self.misses += 1
            return None
        self.hits += 1
        return entry[1]

    async def set(self, namespace: str, key: str, value: Any) -> None:
        entries = self._entries.setdefault(namespace, {})
        entries.pop(key, None)
        entries[key] = (time.monotonic() + self.ttl, value)
        if len(entries) > self.max_entries:
            # Every entry shares one TTL, so insertion order is expiry order.
            for stale in list(entries)[: max(1, self.max_entries // 10)]:
                del entries[stale]

    async def invalidate(self, *namespaces: str) -> None:
        for namespace in namespaces:
            self._entries.pop(namespace, None)


class RedisCache(ReadCache):
    """Redis backend. Lookups that fail are treated as misses."""

    prefix = "library_cache"

    def __init__(self, client: aioredis.Redis, ttl: int):
        self.client = client
        self.ttl = ttl

    def _make_key(self, namespace: str, key: str) -> str:
        return f"{self.prefix}:{namespace}:{key}"

    async def get(self, namespace: str, key: str) -> Any | None:
        try:
            raw = await self.client.get(self._make_key(namespace, key))
        except RedisError as exc:
            logger.warning("Cache lookup failed for %s/%s: %s", namespace, key, exc)
            return None
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, namespace: str, key: str, value: Any) -> None:
        try:
            await self.client.set(
                self._make_key(namespace, key), json.dumps(value, default=str), ex=self.ttl
            )
        except RedisError as exc:
            logger.warning("Cache store failed for %s/%s: %s", namespace, key, exc)

    async def invalidate(self, *namespaces: str) -> None:
        for namespace in namespaces:
            try:
                keys = [key async for key in self.client.scan_iter(match=f"{self.prefix}:{namespace}:*")]
                if keys:
                    await self.client.delete(*keys)
            except RedisError as exc:
                # Stale entries for this namespace live until their TTL runs out.
                logger.error("Cache invalidation failed for %s: %s", namespace, exc)


def build_cache() -> ReadCache:
    if settings.cache_url:
        logger.info("Using Redis read cache")
        return RedisCache(aioredis.from_url(settings.cache_url), settings.cache_ttl_seconds)
    return MemoryCache(settings.cache_ttl_seconds, settings.cache_max_entries)


read_cache = build_cache()
