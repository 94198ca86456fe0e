"""
Cache module for the token aggregator.

Provides Redis caching for aggregated token pages.
"""

from dex_aggregator.services.cache.redis_client import (
    TokenCache,
    get_token_cache,
    make_cache_key,
    init_redis,
    close_redis,
)

__all__ = [
    "TokenCache",
    "get_token_cache",
    "make_cache_key",
    "init_redis",
    "close_redis",
]
