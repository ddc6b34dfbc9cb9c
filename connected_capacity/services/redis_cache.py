"""
Redis Cache - Connected Capacity Bundle Engine
connected_capacity/services/redis_cache.py

Pydantic-aware Redis wrapper. Values are stored as model JSON with a TTL.
"""
from typing import Optional, Type, TypeVar

import redis
from pydantic import BaseModel

from connected_capacity.config import settings

T = TypeVar("T", bound=BaseModel)


class RedisCache:
    def __init__(self, url: Optional[str] = None):
        self.client = redis.from_url(
            url or settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
        )

    def get(self, key: str, model: Type[T]) -> Optional[T]:
        """Get cached item and deserialize to Pydantic model."""
        data = self.client.get(key)
        if data:
            return model.model_validate_json(data)
        return None

    def set(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        """Cache Pydantic model with TTL."""
        self.client.setex(
            key,
            ttl_seconds,
            value.model_dump_json(),
        )

    def delete(self, key: str) -> None:
        """Invalidate single cache entry."""
        self.client.delete(key)

    def ping(self) -> bool:
        return bool(self.client.ping())

