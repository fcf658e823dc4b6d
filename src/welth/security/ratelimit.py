"""Token bucket storage: Redis for production, in-process as a fallback.

Learn: A bucket holds up to `capacity` tokens and gains `refill_rate`
tokens every `interval` seconds. Each request takes `requested` tokens
or is denied. State per key is (tokens, refilled_at).

Redis state is updated by a Lua script so concurrent workers can't
double-spend a token. The in-memory store is per process only; it is
what runs when Redis is unavailable (and in tests).
"""

import asyncio
import math
import time
from dataclasses import dataclass
from typing import Callable, Protocol

import redis.asyncio as aioredis


@dataclass(frozen=True)
class BucketState:
    allowed: bool
    remaining: int
    reset: int  # seconds until the next refill


def take_tokens(
    tokens: float,
    refilled_at: float,
    now: float,
    *,
    capacity: int,
    refill_rate: int,
    interval: int,
    requested: int,
) -> tuple[BucketState, float, float]:
    """Refill, then try to take. Returns (state, new_tokens, new_refilled_at)."""
    elapsed = math.floor((now - refilled_at) / interval)
    if elapsed > 0:
        tokens = min(capacity, tokens + elapsed * refill_rate)
        refilled_at += elapsed * interval

    allowed = tokens >= requested
    if allowed:
        tokens -= requested

    reset = max(0, math.ceil(refilled_at + interval - now))
    return BucketState(allowed, int(tokens), reset), tokens, refilled_at


class TokenBucketStore(Protocol):
    async def take(
        self,
        key: str,
        *,
        capacity: int,
        refill_rate: int,
        interval: int,
        requested: int,
    ) -> BucketState: ...


class MemoryTokenBucketStore:
    """Process-local buckets."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._buckets: dict[str, tuple[float, float]] = {}
        self._lock = asyncio.Lock()

    async def take(self, key, *, capacity, refill_rate, interval, requested):
        async with self._lock:
            now = self._clock()
            tokens, refilled_at = self._buckets.get(key, (capacity, now))
            state, tokens, refilled_at = take_tokens(
                tokens,
                refilled_at,
                now,
                capacity=capacity,
                refill_rate=refill_rate,
                interval=interval,
                requested=requested,
            )
            self._buckets[key] = (tokens, refilled_at)
            return state


_TAKE_SCRIPT = """
local capacity = tonumber(ARGV[1])
local refill_rate = tonumber(ARGV[2])
local interval = tonumber(ARGV[3])
local requested = tonumber(ARGV[4])
local now = tonumber(ARGV[5])

local state = redis.call('HMGET', KEYS[1], 'tokens', 'refilled_at')
local tokens = tonumber(state[1])
local refilled_at = tonumber(state[2])
if tokens == nil then
  tokens = capacity
  refilled_at = now
end

local elapsed = math.floor((now - refilled_at) / interval)
if elapsed > 0 then
  tokens = math.min(capacity, tokens + elapsed * refill_rate)
  refilled_at = refilled_at + elapsed * interval
end

local allowed = 0
if tokens >= requested then
  tokens = tokens - requested
  allowed = 1
end

redis.call('HSET', KEYS[1], 'tokens', tokens, 'refilled_at', refilled_at)
local full_in = math.ceil((capacity - tokens) / refill_rate) * interval
redis.call('EXPIRE', KEYS[1], full_in + interval)

local reset = math.max(0, math.ceil(refilled_at + interval - now))
return {allowed, tokens, reset}
"""


class RedisTokenBucketStore:
    """Buckets shared by every worker through Redis."""

    def __init__(
        self,
        redis: aioredis.Redis,
        prefix: str = "welth:rl",
        clock: Callable[[], float] = time.time,
    ):
        self._prefix = prefix
        self._clock = clock
        self._script = redis.register_script(_TAKE_SCRIPT)

    async def take(self, key, *, capacity, refill_rate, interval, requested):
        allowed, remaining, reset = await self._script(
            keys=[f"{self._prefix}:{key}"],
            args=[capacity, refill_rate, interval, requested, int(self._clock())],
        )
        return BucketState(bool(int(allowed)), int(remaining), int(reset))
