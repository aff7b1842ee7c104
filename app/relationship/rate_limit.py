"""
Daily friend-request limit.

Fixed window per actor. Every hit sends INCR and EXPIRE NX in one pipeline, so
a key always ends up with a TTL even if an earlier EXPIRE was lost, and the
window never slides.
Redis trouble fails open, the same as the other rate limits in the stack.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from app.core.logging import get_logger

logger = get_logger(__name__)

DAY_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: int = 0


class FriendRequestRateLimiter:
    def __init__(
        self,
        get_redis: Callable[[], Awaitable[aioredis.Redis]],
        limit: int,
        window_seconds: int = DAY_SECONDS,
        key_prefix: str = "ratelimit:send_friend_request",
    ):
        self.get_redis = get_redis
        self.limit = limit
        self.window_seconds = window_seconds
        self.key_prefix = key_prefix

    async def hit(self, user_id: str) -> RateLimitResult:
        key = f"{self.key_prefix}:{user_id}"
        try:
            r = await self.get_redis()
            async with r.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.expire(key, self.window_seconds, nx=True)
                pipe.ttl(key)
                count, _, ttl = await pipe.execute()
        except RedisError as e:
            logger.error("rate_limit.check_failed", key=key, error=str(e))
            return RateLimitResult(allowed=True, remaining=self.limit)

        if count <= self.limit:
            return RateLimitResult(allowed=True, remaining=self.limit - count)

        logger.warning("rate_limit.exceeded", key=key, limit=self.limit, window=self.window_seconds)
        return RateLimitResult(
            allowed=False,
            remaining=0,
            retry_after=ttl if ttl and ttl > 0 else self.window_seconds,
        )
