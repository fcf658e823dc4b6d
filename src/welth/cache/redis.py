"""Shared Redis connection pool.

Learn: One pool per process, opened in the app lifespan. Everything
that uses Redis (token buckets, page cache) treats it as optional:
`get_redis()` raises if the pool was never opened and callers degrade.
"""

from typing import Optional

import redis.asyncio as aioredis

from welth.config import settings

_redis: Optional[aioredis.Redis] = None


async def init_redis() -> aioredis.Redis:
    """Open the pool and verify the server answers."""
    global _redis
    client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    await client.ping()
    _redis = client
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    """Get the Redis connection (must be initialized first)."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis
