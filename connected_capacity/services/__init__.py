"""
Services module for the Connected Capacity Bundle Engine.

The bundle, ingestion and event logging services are imported from their
own modules; only the cache helpers are re-exported here.
"""

from connected_capacity.services.cache import get_cache, profile_cache_key, reset_cache
from connected_capacity.services.redis_cache import RedisCache

__all__ = [
    "get_cache",
    "profile_cache_key",
    "reset_cache",
    "RedisCache",
]
