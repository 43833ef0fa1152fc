# app/core/cache.py
"""
Key/value cache used on the product read path.

Two backends share the same tiny interface (get / set / delete):
  - MemoryCache: per-process, cachetools TLRU with per-entry TTL
  - RedisCache : shared between workers, values stored as JSON

Cache failures never fail a request: a broken Redis behaves like a miss.
"""
import json
import logging
import time
from typing import Any, Protocol

import redis
from cachetools import TLRUCache

logger = logging.getLogger(__name__)


class Cache(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    def delete(self, key: str) -> None: ...


def _expires_at(_key: str, value: tuple[Any, int], now: float) -> float:
    return now + value[1]


class MemoryCache:
    def __init__(self, maxsize: int = 1024):
        self._store: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_expires_at, timer=time.monotonic)

    def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        return None if entry is None else entry[0]

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._store[key] = (value, ttl_seconds)

    def delete(self, key: str) -> None:
        self._store.pop(key, None)


class RedisCache:
    def __init__(self, url: str):
        self._client = redis.Redis.from_url(url, decode_responses=True)

    def get(self, key: str) -> Any | None:
        try:
            raw = self._client.get(key)
        except redis.RedisError as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            self._client.setex(key, ttl_seconds, json.dumps(value))
        except redis.RedisError as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as exc:
            logger.warning("Cache delete failed for %s: %s", key, exc)
