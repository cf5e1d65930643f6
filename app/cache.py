import json
import logging
from typing import Any

import redis.asyncio as redis

from app.config import settings

logger = logging.getLogger(__name__)

ARTICLE_KEY_PREFIX = "article:"
ARTICLE_LIST_PREFIX = "article:list:"


def article_key(article_id: str) -> str:
    return f"{ARTICLE_KEY_PREFIX}{article_id}"


class CacheManager:
    """
    Cache-aside manager backed by Redis.

    Values are stored as JSON strings.  Backend errors are not suppressed:
    a failing GET/SET/DEL propagates to the caller and fails the enclosing
    operation.  When no client is configured (``CACHE_ENABLED=false``)
    every read misses and every write is a no-op.
    """

    def __init__(self, client: redis.Redis | None = None, default_ttl: int | None = None) -> None:
        self._redis = client
        self._default_ttl = default_ttl if default_ttl is not None else settings.CACHE_TTL_DEFAULT

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self, url: str | None = None) -> None:
        """Open the connection pool.  Called once at application startup."""
        url = url or settings.REDIS_URL
        self._redis = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        # Surface mis-configuration at startup rather than on first request.
        await self._redis.ping()
        logger.info("Redis connected: %s", url)

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any:
        """Return the decoded value for *key*, or None on a miss."""
        if not self._redis:
            return None
        data = await self._redis.get(key)
        if data is None:
            logger.debug("Cache MISS key=%r", key)
            return None
        try:
            value = json.loads(data)
        except ValueError:
            logger.warning("Cache value for key=%r is not valid JSON; treating as a miss", key)
            return None
        logger.debug("Cache HIT key=%r", key)
        return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Persist *value* under *key*; *ttl* (seconds) defaults to the configured TTL."""
        if not self._redis:
            return
        serialised = json.dumps(value, default=str)
        await self._redis.set(key, serialised, ex=ttl or self._default_ttl)

    async def delete(self, key: str) -> None:
        if not self._redis:
            return
        await self._redis.delete(key)

    async def delete_pattern(self, pattern: str) -> None:
        """
        Delete all keys matching *pattern* using SCAN (avoids blocking KEYS).
        """
        if not self._redis:
            return
        keys: list[str] = []
        async for key in self._redis.scan_iter(match=pattern):
            keys.append(key)
        if keys:
            await self._redis.delete(*keys)
            logger.debug("Cache invalidated %d key(s) matching %r", len(keys), pattern)

    # ------------------------------------------------------------------
    # Domain-level invalidation helpers
    # ------------------------------------------------------------------

    async def invalidate_article(self, article_id: str | None = None) -> None:
        """
        Invalidate article-related caches on any write operation.

        Always purges every listing page (any write can change any page's
        contents or totals).  When *article_id* is provided the detail
        entry for that article is removed as well.
        """
        if article_id is not None:
            await self.delete(article_key(article_id))
        await self.delete_pattern(f"{ARTICLE_LIST_PREFIX}*")


# Module-level singleton shared across all request handlers.
cache = CacheManager()
