"""Per-session mutual exclusion using Redis.

Session transitions read-then-write status, focus cursor, stamina and gauge
without optimistic concurrency control, so every transition on one session
must be serialized. This module provides:
- Owner-token locks keyed by session id (or user id for session start)
- Short bounded wait on contention, then SessionBusyError
- Automatic expiry so a crashed worker never wedges a session
"""

import asyncio
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import redis.asyncio as redis
import structlog

from studybet.core.exceptions import SessionBusyError

logger = structlog.get_logger(__name__)


class SessionLock:
    """Manages distributed per-session locks using Redis."""

    LOCK_PREFIX = "studybet:lock:"
    DEFAULT_TTL = 30  # seconds
    DEFAULT_WAIT_TIMEOUT = 2.0  # seconds
    RETRY_INTERVAL = 0.05

    def __init__(self, redis_client: redis.Redis, ttl: int | None = None, wait_timeout: float | None = None):
        self.redis = redis_client
        self.ttl = ttl or self.DEFAULT_TTL
        self.wait_timeout = self.DEFAULT_WAIT_TIMEOUT if wait_timeout is None else wait_timeout

    def _lock_key(self, key: str) -> str:
        return f"{self.LOCK_PREFIX}{key}"

    async def acquire(self, key: str, owner: str, ttl: int | None = None) -> bool:
        """Attempt to acquire the lock for ``key``.

        Args:
            key: Lock subject, e.g. "session:<uuid>" or "user:<uuid>"
            owner: Token identifying this holder
            ttl: Lock time-to-live in seconds

        Returns:
            True if acquired (or already held by this owner), False otherwise
        """
        lock_key = self._lock_key(key)
        lock_value = f"{owner}|{datetime.now(UTC).isoformat()}"
        result = await self.redis.set(lock_key, lock_value, nx=True, ex=ttl or self.ttl)

        if result:
            return True

        current = await self.redis.get(lock_key)
        if current and current.startswith(f"{owner}|"):
            await self.redis.expire(lock_key, ttl or self.ttl)
            return True

        return False

    async def release(self, key: str, owner: str) -> bool:
        """Release the lock if ``owner`` holds it.

        Returns:
            True if released, False if not owned by this owner
        """
        lock_key = self._lock_key(key)
        current = await self.redis.get(lock_key)
        if current and current.startswith(f"{owner}|"):
            await self.redis.delete(lock_key)
            return True
        return False

    async def is_locked(self, key: str) -> bool:
        return bool(await self.redis.exists(self._lock_key(key)))

    @asynccontextmanager
    async def hold(self, key: str, wait_timeout: float | None = None) -> AsyncGenerator[str, None]:
        """Hold the lock for the duration of the block.

        Args:
            key: Lock subject
            wait_timeout: Seconds to keep retrying before giving up (default: the lock's own)

        Yields:
            The owner token used for this hold

        Raises:
            SessionBusyError: lock still held by someone else after wait_timeout
        """
        owner = uuid.uuid4().hex
        loop = asyncio.get_running_loop()
        deadline = loop.time() + (self.wait_timeout if wait_timeout is None else wait_timeout)

        while not await self.acquire(key, owner):
            if loop.time() >= deadline:
                logger.warning("session_lock_busy", key=key)
                raise SessionBusyError(key)
            await asyncio.sleep(self.RETRY_INTERVAL)

        try:
            yield owner
        finally:
            await self.release(key, owner)
