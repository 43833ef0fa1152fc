import threading
import time

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import LockNotOwnedError

from app.core.config import Settings
from app.core.errors import ConflictError, UpstreamError
from app.services.container import build_locks
from app.services.locks import KeyedLock, RedisKeyedLock


class TestKeyedLock:
    def test_same_key_is_serialized(self):
        locks = KeyedLock()
        inside = 0
        peak = 0
        guard = threading.Lock()

        def worker():
            nonlocal inside, peak
            with locks.hold(("u1", "p1")):
                with guard:
                    inside += 1
                    peak = max(peak, inside)
                time.sleep(0.01)
                with guard:
                    inside -= 1

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert peak == 1

    def test_different_keys_do_not_block_each_other(self):
        locks = KeyedLock()
        entered = threading.Event()

        def other():
            with locks.hold(("u1", "p2")):
                entered.set()

        with locks.hold(("u1", "p1")):
            t = threading.Thread(target=other)
            t.start()
            assert entered.wait(timeout=1)
            t.join()

    def test_unused_keys_are_dropped(self):
        locks = KeyedLock()
        with locks.hold("a"):
            assert len(locks) == 1
        assert len(locks) == 0

    def test_lock_is_released_on_error(self):
        locks = KeyedLock()
        with pytest.raises(RuntimeError):
            with locks.hold("a"):
                raise RuntimeError("boom")
        with locks.hold("a"):
            pass
        assert len(locks) == 0


class FakeRedisLock:
    def __init__(self, server: "FakeRedis", name: str):
        self.server = server
        self.name = name

    def acquire(self) -> bool:
        if self.server.down:
            raise RedisConnectionError("connection refused")
        if self.name in self.server.held:
            return False
        self.server.held.add(self.name)
        return True

    def release(self) -> None:
        if self.server.expire_before_release:
            self.server.held.discard(self.name)
            raise LockNotOwnedError("lock expired")
        self.server.held.remove(self.name)


class FakeRedis:
    """Just enough of redis.Redis.lock() for RedisKeyedLock."""

    def __init__(self):
        self.held: set[str] = set()
        self.requested: list[tuple[str, float, float]] = []
        self.down = False
        self.expire_before_release = False

    def lock(self, name, timeout=None, blocking_timeout=None):
        self.requested.append((name, timeout, blocking_timeout))
        return FakeRedisLock(self, name)


class TestRedisKeyedLock:
    def test_key_naming_and_settings(self):
        server = FakeRedis()
        locks = RedisKeyedLock(server, timeout=7, wait=3)
        with locks.hold(("cart", 7, "abc")):
            assert server.held == {"storefront:lock:cart:7:abc"}
        assert server.held == set()
        assert server.requested == [("storefront:lock:cart:7:abc", 7, 3)]

    def test_busy_key_is_a_conflict(self):
        server = FakeRedis()
        locks = RedisKeyedLock(server)
        with locks.hold(("order", 1)):
            with pytest.raises(ConflictError):
                with locks.hold(("order", 1)):
                    pass

    def test_released_on_error(self):
        server = FakeRedis()
        locks = RedisKeyedLock(server)
        with pytest.raises(RuntimeError):
            with locks.hold("a"):
                raise RuntimeError("boom")
        assert server.held == set()

    def test_unreachable_redis_is_upstream_error(self):
        server = FakeRedis()
        server.down = True
        with pytest.raises(UpstreamError):
            with RedisKeyedLock(server).hold("a"):
                pass

    def test_expired_lock_does_not_fail_the_caller(self):
        server = FakeRedis()
        server.expire_before_release = True
        with RedisKeyedLock(server).hold("a"):
            pass


class TestBuildLocks:
    def test_in_process_without_redis(self):
        settings = Settings(JWT_SECRET="0123456789abcdef", _env_file=None)
        assert isinstance(build_locks(settings), KeyedLock)

    def test_redis_when_configured(self):
        settings = Settings(
            JWT_SECRET="0123456789abcdef",
            REDIS_URL="redis://127.0.0.1:6379/0",
            LOCK_TIMEOUT_SECONDS=4,
            _env_file=None,
        )
        locks = build_locks(settings)
        assert isinstance(locks, RedisKeyedLock)
        assert locks.timeout == 4
