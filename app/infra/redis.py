"""
Redis infrastructure configuration

One async pool for request-path work (rate limits) and a sync client for RQ,
which only speaks the blocking redis API.
"""

from typing import Optional

import redis
from redis import asyncio as aioredis

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

SOCKET_TIMEOUT = 5.0
SOCKET_CONNECT_TIMEOUT = 5.0
HEALTH_CHECK_INTERVAL = 30

_redis: Optional[aioredis.Redis] = None


async def init_redis_pool() -> aioredis.Redis:
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(
            settings.redis_url,
            socket_timeout=SOCKET_TIMEOUT,
            socket_connect_timeout=SOCKET_CONNECT_TIMEOUT,
            health_check_interval=HEALTH_CHECK_INTERVAL,
            decode_responses=True,
        )
        logger.info("redis.pool_ready")
    return _redis


async def get_redis() -> aioredis.Redis:
    return await init_redis_pool()


async def close_redis_pool() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
        logger.info("redis.pool_closed")


def get_sync_redis() -> redis.Redis:
    return redis.Redis.from_url(
        settings.redis_url,
        socket_timeout=SOCKET_TIMEOUT,
        socket_connect_timeout=SOCKET_CONNECT_TIMEOUT,
    )
