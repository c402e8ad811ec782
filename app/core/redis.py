"""
Redis client management.
One connection pool per process; handlers receive the client through the
get_redis dependency so it can be swapped out in tests.
"""
import logging
from typing import Optional

from redis import Redis
from redis.connection import ConnectionPool

from app.core.config import settings

logger = logging.getLogger(__name__)

_pool: Optional[ConnectionPool] = None


def _get_pool() -> ConnectionPool:
    global _pool
    if _pool is None:
        _pool = ConnectionPool.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout,
            socket_connect_timeout=settings.redis_socket_timeout,
        )
    return _pool


def get_redis() -> Redis:
    """Redis client backed by the shared pool. Connections return to the pool on their own."""
    return Redis(connection_pool=_get_pool())


def close_redis() -> None:
    global _pool
    if _pool is not None:
        _pool.disconnect()
        _pool = None
        logger.info("Redis connection pool closed")
