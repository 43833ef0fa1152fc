# app/services/locks.py
"""
Keyed locks for read-modify-write sequences (cart lines, owner orders).

Two backends share the `hold(key)` interface:
  - KeyedLock     : in-process mutexes, enough for a single worker
  - RedisKeyedLock: Redis locks shared by every worker process; used
                    whenever REDIS_URL is configured
"""
import logging
import threading
from collections.abc import Hashable, Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Protocol

import redis
from redis.exceptions import LockNotOwnedError, RedisError

from app.core.errors import ConflictError, UpstreamError

logger = logging.getLogger(__name__)


class Locks(Protocol):
    def hold(self, key: Hashable) -> AbstractContextManager[None]: ...


class KeyedLock:
    """
    One mutex per key, created on demand and dropped when unused.
    Different keys never block each other.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1

        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._waiters[key] -= 1
                if self._waiters[key] == 0:
                    del self._waiters[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class RedisKeyedLock:
    """
    Redis-backed keyed lock.

    Key ("cart", 7, "abc") is stored as `storefront:lock:cart:7:abc`.
    The lock expires after `timeout` seconds even if its holder dies;
    waiting longer than `wait` seconds for it raises ConflictError (409).
    """

    def __init__(
        self,
        client: redis.Redis,
        timeout: float = 10.0,
        wait: float = 5.0,
        prefix: str = "storefront:lock",
    ):
        self._client = client
        self.timeout = timeout
        self.wait = wait
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisKeyedLock":
        return cls(redis.Redis.from_url(url), **kwargs)

    def name_for(self, key: Hashable) -> str:
        parts = key if isinstance(key, tuple) else (key,)
        return ":".join([self.prefix, *(str(part) for part in parts)])

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        name = self.name_for(key)
        lock = self._client.lock(name, timeout=self.timeout, blocking_timeout=self.wait)
        try:
            acquired = lock.acquire()
        except RedisError as exc:
            logger.exception("Could not acquire lock %s", name)
            raise UpstreamError() from exc
        if not acquired:
            logger.warning("Timed out after %ss waiting for lock %s", self.wait, name)
            raise ConflictError("Resource is busy, try again")

        try:
            yield
        finally:
            try:
                lock.release()
            except LockNotOwnedError:
                logger.warning("Lock %s expired before it was released", name)
