"""Tests for Redis-backed session locks."""

import asyncio

import pytest
from fakeredis import FakeAsyncRedis

from studybet.core.exceptions import SessionBusyError
from studybet.core.locking import SessionLock

pytestmark = pytest.mark.unit

KEY = "session:11111111-1111-1111-1111-111111111111"


@pytest.fixture
async def redis():
    fake_redis = FakeAsyncRedis(decode_responses=True)
    yield fake_redis
    await fake_redis.flushall()
    await fake_redis.aclose()


@pytest.fixture
def lock(redis):
    return SessionLock(redis, ttl=10)


async def test_acquire_and_release(lock):
    assert await lock.acquire(KEY, "worker-a") is True
    assert await lock.is_locked(KEY) is True

    assert await lock.release(KEY, "worker-a") is True
    assert await lock.is_locked(KEY) is False


async def test_second_owner_is_refused(lock):
    await lock.acquire(KEY, "worker-a")

    assert await lock.acquire(KEY, "worker-b") is False
    assert await lock.release(KEY, "worker-b") is False
    assert await lock.is_locked(KEY) is True


async def test_owner_can_reacquire(lock):
    await lock.acquire(KEY, "worker-a")
    assert await lock.acquire(KEY, "worker-a") is True


async def test_lock_key_has_prefix_and_ttl(lock, redis):
    await lock.acquire(KEY, "worker-a")

    value = await redis.get(f"studybet:lock:{KEY}")
    assert value.startswith("worker-a|")
    ttl = await redis.ttl(f"studybet:lock:{KEY}")
    assert 0 < ttl <= 10


async def test_hold_releases_on_exit(lock):
    async with lock.hold(KEY) as owner:
        assert owner
        assert await lock.is_locked(KEY) is True

    assert await lock.is_locked(KEY) is False


async def test_hold_releases_when_block_raises(lock):
    with pytest.raises(RuntimeError):
        async with lock.hold(KEY):
            raise RuntimeError("transition failed")

    assert await lock.is_locked(KEY) is False


async def test_hold_raises_busy_when_contended(lock):
    await lock.acquire(KEY, "someone-else")

    with pytest.raises(SessionBusyError):
        async with lock.hold(KEY, wait_timeout=0.1):
            pass


async def test_hold_waits_for_release(lock):
    await lock.acquire(KEY, "someone-else")

    async def release_soon():
        await asyncio.sleep(0.1)
        await lock.release(KEY, "someone-else")

    releaser = asyncio.create_task(release_soon())
    async with lock.hold(KEY, wait_timeout=2.0):
        assert await lock.is_locked(KEY) is True
    await releaser
