"""
Caching Service.

Short-lived Redis cache for the live-locations snapshot. Payloads are stored
as JSON; entries expire on their own and are dropped on every accepted
position report.
"""

import json
import logging
from typing import Any, Optional

from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

LIVE_LOCATIONS_KEY = "tracking:live_locations"


class CacheService:
    """JSON cache over an async Redis client. Cache failures never fail a request."""

    def __init__(self, client):
        self.client = client

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self.client.get(key)
        except RedisError as exc:
            logger.warning("Cache read failed", extra={"key": key, "error": str(exc)})
            return None

        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, data: Any, ttl_seconds: int = 300) -> None:
        try:
            await self.client.set(key, json.dumps(data), ex=ttl_seconds)
        except RedisError as exc:
            logger.warning("Cache write failed", extra={"key": key, "error": str(exc)})

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except RedisError as exc:
            logger.warning("Cache invalidation failed", extra={"key": key, "error": str(exc)})
