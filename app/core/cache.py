import json
import logging
from typing import Any, Dict, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class CacheService:
    """Best-effort Redis cache for tenant dashboard summaries.

    With no client configured every call is a no-op, and a Redis error
    is logged and treated as a miss. The database stays the source of
    truth, so a cache outage never fails a request.
    """

    def __init__(self, redis_client: Optional[Redis] = None) -> None:
        self._redis: Optional[Redis] = redis_client

    async def get(self, key: str) -> Optional[str]:
        if self._redis is None:
            return None
        try:
            return await self._redis.get(key)
        except RedisError:
            logger.warning("Redis GET failed for key %s", key)
            return None

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """Store a raw string value, with an expiry in seconds when *ttl* is set."""
        if self._redis is None:
            return
        try:
            if ttl:
                await self._redis.setex(key, ttl, value)
            else:
                await self._redis.set(key, value)
        except RedisError:
            logger.warning("Redis SET failed for key %s", key)

    async def delete(self, key: str) -> None:
        """Drop *key*; called after every health write for the tenant."""
        if self._redis is None:
            return
        try:
            await self._redis.delete(key)
        except RedisError:
            logger.warning("Redis DELETE failed for key %s", key)

    async def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Invalid JSON in cache key %s", key)
            return None

    async def set_json(
        self, key: str, data: Dict[str, Any], ttl: int | None = None
    ) -> None:
        try:
            payload = json.dumps(data, default=str)
        except (TypeError, ValueError):
            logger.warning("Failed to serialise data for cache key %s", key)
            return
        await self.set(key, payload, ttl=ttl)
