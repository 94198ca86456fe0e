"""
Redis cache client for aggregated token data.

Stores finished token pages and single-token lookups for a short TTL so
repeated queries skip the provider fan-out. Any Redis problem degrades to
an in-process cache; a cache failure is only ever a miss.
"""

import json
import logging
import time
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import quote

import redis.asyncio as redis

from dex_aggregator.core.config import settings

logger = logging.getLogger(__name__)

# Upper bound on in-process fallback entries
MAX_MEMORY_ENTRIES = 1000

# Global Redis connection pool
_redis_pool: Optional[redis.Redis] = None


async def init_redis() -> Optional[redis.Redis]:
    """
    Initialize Redis connection pool.
    Called on application startup.
    """
    global _redis_pool

    if _redis_pool is not None:
        return _redis_pool

    try:
        _redis_pool = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        # Test connection
        await _redis_pool.ping()
        logger.info(f"Redis connected: {settings.redis_url}")
        return _redis_pool
    except Exception as e:
        logger.warning(f"Redis connection failed: {e}. Using in-memory fallback.")
        _redis_pool = None
        return None


async def close_redis() -> None:
    """Close Redis connection pool."""
    global _redis_pool
    if _redis_pool:
        await _redis_pool.aclose()
        _redis_pool = None
        logger.info("Redis connection closed")


def make_cache_key(prefix: str, params: Mapping[str, Any]) -> str:
    """
    Canonical key for a parameter set.

    Keys are sorted and None values dropped, so equivalent parameter sets
    map to the same key whatever order they were built in. Names and values
    are percent-encoded so a value containing ":" or "=" cannot collide
    with another parameter set.
    """
    parts = [
        f"{quote(str(key), safe='')}={quote(str(params[key]), safe='')}"
        for key in sorted(params)
        if params[key] is not None
    ]
    return ":".join([prefix, *parts])


class TokenCache:
    """
    Redis-based cache for aggregated token data.

    Keys:
    - tokens:{sorted query params} → JSON TokenPage
    - token:{address} → JSON Token
    """

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        default_ttl: Optional[int] = None,
        max_memory_entries: int = MAX_MEMORY_ENTRIES,
    ):
        self._redis = redis_client
        self.default_ttl = default_ttl if default_ttl is not None else settings.cache_ttl_seconds
        self.max_memory_entries = max_memory_entries
        # In-memory fallback when Redis is unavailable: key -> (expires_at, value),
        # oldest write first
        self._memory_cache: Dict[str, Tuple[float, str]] = {}

    @property
    def redis(self) -> Optional[redis.Redis]:
        return self._redis or _redis_pool

    def _memory_get(self, key: str) -> Optional[str]:
        """Fallback to memory cache."""
        entry = self._memory_cache.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= time.monotonic():
            del self._memory_cache[key]
            return None
        return value

    def _memory_set(self, key: str, value: str, ex: int) -> None:
        """Fallback to memory cache. Drops expired entries, then the oldest over the cap."""
        now = time.monotonic()
        expired = [k for k, (expires_at, _) in self._memory_cache.items() if expires_at <= now]
        for k in expired:
            del self._memory_cache[k]

        # Re-inserting moves the key to the newest position
        self._memory_cache.pop(key, None)
        self._memory_cache[key] = (now + ex, value)

        while len(self._memory_cache) > self.max_memory_entries:
            del self._memory_cache[next(iter(self._memory_cache))]

    async def get(self, key: str) -> Optional[str]:
        """Raw cached string, or None on a miss or any cache failure."""
        if self.redis:
            try:
                return await self.redis.get(key)
            except Exception as e:
                logger.debug(f"Redis get failed for {key}: {e}")

        return self._memory_get(key)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        ttl = ttl if ttl is not None else self.default_ttl
        if ttl <= 0:
            # A non-positive TTL means "do not cache"
            return False

        if self.redis:
            try:
                await self.redis.set(key, value, ex=ttl)
                return True
            except Exception as e:
                logger.debug(f"Redis set failed for {key}: {e}")

        self._memory_set(key, value, ttl)
        return True

    async def delete(self, key: str) -> None:
        if self.redis:
            try:
                await self.redis.delete(key)
            except Exception as e:
                logger.debug(f"Redis delete failed for {key}: {e}")

        self._memory_cache.pop(key, None)

    async def get_json(self, key: str) -> Optional[Any]:
        value = await self.get(key)
        if not value:
            return None
        try:
            return json.loads(value)
        except ValueError as e:
            logger.debug(f"Discarding unreadable cache entry {key}: {e}")
            return None

    async def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        return await self.set(key, json.dumps(value), ttl)


# Singleton instance
_token_cache: Optional[TokenCache] = None


def get_token_cache() -> TokenCache:
    """Get the token cache singleton."""
    global _token_cache
    if _token_cache is None:
        _token_cache = TokenCache()
    return _token_cache
