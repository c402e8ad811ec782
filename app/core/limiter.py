"""
Sliding-window rate limiting on Redis sorted sets.

Each identifier owns a sorted set whose members are request markers scored by
their timestamp (milliseconds). A check trims members older than the window,
counts the survivors and either records a new marker or rejects. Store errors
fail open: rate limiting is a best-effort control.
"""
import logging
import random
import time
from dataclasses import dataclass
from typing import Callable

from redis import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


@dataclass
class RateLimitPolicy:
    """Rate limit configuration"""
    name: str
    limit: int
    window_seconds: int
    message: str = "Too many requests, please try again later."


@dataclass
class RateLimitResult:
    """Rate limit check result"""
    allowed: bool
    limit: int
    remaining: int
    reset_time_ms: int
    retry_after: int


class SlidingWindowRateLimiter:
    KEY_PREFIX = "rate_limit:"

    def __init__(self, redis_client: Redis, clock: Callable[[], float] = time.time):
        self.redis = redis_client
        self.clock = clock

    def check(self, identifier: str, limit: int, window_seconds: int) -> RateLimitResult:
        key = f"{self.KEY_PREFIX}{identifier}"
        now_ms = int(self.clock() * 1000)
        window_ms = window_seconds * 1000
        window_start = now_ms - window_ms

        try:
            pipe = self.redis.pipeline()
            pipe.zremrangebyscore(key, 0, window_start)
            pipe.zcard(key)
            _, current = pipe.execute()

            if current >= limit:
                oldest = self.redis.zrange(key, 0, 0, withscores=True)
                reset_time_ms = int(oldest[0][1]) + window_ms if oldest else now_ms + window_ms
                return RateLimitResult(
                    allowed=False,
                    limit=limit,
                    remaining=0,
                    reset_time_ms=reset_time_ms,
                    retry_after=max(0, -(-(reset_time_ms - now_ms) // 1000)),
                )

            pipe = self.redis.pipeline()
            # Random suffix keeps markers recorded in the same millisecond distinct
            pipe.zadd(key, {f"{now_ms}-{random.random()}": now_ms})
            pipe.expire(key, window_seconds)
            pipe.execute()

            return RateLimitResult(
                allowed=True,
                limit=limit,
                remaining=limit - current - 1,
                reset_time_ms=now_ms + window_ms,
                retry_after=0,
            )
        except RedisError as e:
            logger.error(f"Rate limit check failed, allowing request: {e}", extra={"key": key})
            return RateLimitResult(
                allowed=True,
                limit=limit,
                remaining=limit - 1,
                reset_time_ms=now_ms + window_ms,
                retry_after=0,
            )

