"""
Cache Service Singleton - Connected Capacity Bundle Engine
connected_capacity/services/cache.py

Provides a singleton Redis cache instance and profile cache keys.
Returns None when Redis is unavailable so callers run uncached.
"""
from typing import Optional

import redis
import structlog

from connected_capacity.config import settings
from connected_capacity.services.redis_cache import RedisCache

logger = structlog.get_logger(__name__)

# Singleton instance
_cache: Optional[RedisCache] = None


def get_cache() -> Optional[RedisCache]:
    """
    Get or create Redis cache instance.

    Returns:
        RedisCache instance if Redis is available, None otherwise.
    """
    global _cache
    if _cache is None:
        try:
            _cache = RedisCache()
            _cache.client.ping()  # Test connection
        except (redis.RedisError, ConnectionError) as e:
            logger.warning("redis_unavailable", error=str(e))
            _cache = None
    return _cache


def reset_cache() -> None:
    """Reset the cache singleton."""
    global _cache
    _cache = None


def profile_cache_key(patient_id: str) -> str:
    return f"{settings.CACHE_PREFIX_PROFILE}{patient_id}"
