"""Redis-backed helpers of the search API.

One client serves two small stores:
- ``ProjectIdsCache`` remembers the project ids each search actor may view
- ``SearchRateLimiter`` counts searches per actor in fixed windows

Both are optional: callers skip them while Redis is down. The arq job
queue opens its own pool from the same URL.
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis

from ..config import settings

logger = logging.getLogger(__name__)


class RedisService:
    """Owns the shared Redis client of the process."""

    def __init__(self, url: Optional[str] = None) -> None:
        self.url = url or settings.redis_url
        self._redis: Optional[aioredis.Redis] = None

    async def connect(self) -> None:
        client = aioredis.from_url(
            self.url,
            max_connections=settings.redis_max_connections,
            socket_timeout=settings.redis_socket_timeout,
            retry_on_timeout=settings.redis_retry_on_timeout,
            decode_responses=True,
        )
        await client.ping()
        self._redis = client
        logger.info("Redis connected at %s", self.url)

    async def disconnect(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    @property
    def client(self) -> aioredis.Redis:
        if self._redis is None:
            raise RuntimeError("Redis not connected")
        return self._redis

    @property
    def is_connected(self) -> bool:
        return self._redis is not None

    async def health_check(self) -> dict[str, Any]:
        """Connection state and memory usage, for the /health endpoint."""
        if not self.is_connected:
            return {"status": "disconnected"}
        try:
            info = await self.client.info("memory")
        except Exception as e:
            return {"status": "error", "error": str(e)}
        return {
            "status": "healthy",
            "used_memory_human": info.get("used_memory_human", "unknown"),
        }


class ProjectIdsCache:
    """Allowed project ids per search actor, stored as JSON lists.

    Args:
        redis_service: Shared client holder
        ttl: Seconds an entry lives; membership changes show up after it
    """

    KEY_PREFIX = "search:projects:"

    def __init__(self, redis_service: RedisService, ttl: int = 30):
        self.redis_service = redis_service
        self.ttl = ttl

    @property
    def available(self) -> bool:
        return self.redis_service.is_connected

    def key(self, actor_key: Any) -> str:
        return f"{self.KEY_PREFIX}{actor_key}"

    async def load(self, actor_key: Any) -> Optional[list[int]]:
        """Cached ids, or None on a miss. A corrupted entry is dropped."""
        key = self.key(actor_key)
        raw = await self.redis_service.client.get(key)
        if raw is None:
            return None
        try:
            project_ids = json.loads(raw)
        except ValueError:
            project_ids = None
        if not isinstance(project_ids, list):
            logger.warning("Corrupted project scope cache %s, deleting key", key)
            await self.redis_service.client.delete(key)
            return None
        return project_ids

    async def store(self, actor_key: Any, project_ids: list[int]) -> None:
        await self.redis_service.client.setex(
            self.key(actor_key), self.ttl, json.dumps(project_ids)
        )


class SearchRateLimiter:
    """Fixed window counter: ``limit`` searches per ``window`` seconds."""

    KEY_PREFIX = "ratelimit:search:"

    def __init__(self, redis_service: RedisService, limit: int = 30, window: int = 60):
        self.redis_service = redis_service
        self.limit = limit
        self.window = window

    async def hit(self, actor_key: Any) -> tuple[bool, int]:
        """Count one search of ``actor_key``.

        Returns:
            Tuple of (allowed, searches so far in the window)
        """
        key = f"{self.KEY_PREFIX}{actor_key}"
        current = await self.redis_service.client.incr(key)
        if current == 1:
            await self.redis_service.client.expire(key, self.window)
        return current <= self.limit, current


# Process-wide instances
redis_service = RedisService()
search_rate_limiter = SearchRateLimiter(redis_service)


async def get_rate_limiter() -> SearchRateLimiter:
    """FastAPI dependency for the search rate limiter."""
    return search_rate_limiter
