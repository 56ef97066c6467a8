"""Process-wide Redis client.

One pool serves the per-session locks (core/locking.py) and the session
update channels (services/notification_service.py). Both rely on
``decode_responses=True``: lock owners are compared as ``str`` prefixes.
"""

import redis.asyncio as redis

from studybet.core.config import get_settings

_redis: redis.Redis | None = None


async def init_redis(url: str | None = None) -> None:
    """Open the pool and fail fast if Redis does not answer. No-op if already open."""
    global _redis

    if _redis is not None:
        return

    client = redis.from_url(url or get_settings().redis_url, encoding="utf-8", decode_responses=True)
    await client.ping()
    _redis = client


async def close_redis() -> None:
    global _redis

    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_redis() -> redis.Redis:
    """Raises RuntimeError if init_redis() has not run."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


async def ping_redis() -> None:
    """Raises if Redis is unreachable or uninitialized."""
    await get_redis().ping()
