"""
Redis client initialization and connection management.

Redis backs the short-lived live-locations cache.
"""

import redis.asyncio as redis
from tracking_service.app.core.config import settings


# Create async Redis client
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """
    Get Redis client instance.

    Used as a FastAPI dependency so tests can substitute a fake.
    """
    return redis_client


async def ping_redis(client=None) -> bool:
    """
    Test Redis connection.

    Returns:
        True if connection successful, False otherwise
    """
    client = client or redis_client
    try:
        return bool(await client.ping())
    except Exception:
        return False
