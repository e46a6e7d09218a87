"""
Shared redis client for the media control stream.

REDIS_URL wins when set; otherwise the URL is assembled from the
host/port/password/db settings.
"""
from typing import Optional
import logging

import redis.asyncio as redis

from callsignal.config.settings import Settings, settings

logger = logging.getLogger(__name__)

_redis: Optional[redis.Redis] = None


def build_redis_url(config: Settings) -> str:
    if config.REDIS_URL:
        return config.REDIS_URL
    auth = f":{config.REDIS_PASSWORD}@" if config.REDIS_PASSWORD else ""
    return f"redis://{auth}{config.REDIS_HOST}:{config.REDIS_PORT}/{config.REDIS_DB}"


async def get_redis() -> redis.Redis:
    """Process-wide client, created on first use."""
    global _redis
    if _redis is None:
        _redis = redis.Redis.from_url(build_redis_url(settings), decode_responses=False)
        logger.info(f"[Redis] Client created for {settings.REDIS_HOST}:{settings.REDIS_PORT}")
    return _redis


async def close_redis():
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
