"""
Redis client

Used by RedisKeyValueStore when STORAGE_BACKEND=redis.
"""
import logging
from typing import Optional

import redis.asyncio as redis

from storefront.core.config import settings

logger = logging.getLogger(__name__)

# Global Redis client (initialized lazily)
_redis_client: Optional[redis.Redis] = None


async def get_redis(url: Optional[str] = None) -> redis.Redis:
    """Get Redis client, initializing and pinging it on first use."""
    global _redis_client

    url = url or settings.REDIS_URL
    if not url:
        raise RuntimeError("REDIS_URL is not configured")

    if _redis_client is None:
        client = redis.from_url(url, encoding="utf-8", decode_responses=True)
        # Test connection
        await client.ping()
        logger.info("Redis connection established")
        _redis_client = client

    return _redis_client


async def close_redis():
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.close()
        _redis_client = None
