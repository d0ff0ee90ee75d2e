import json
import logging
import redis
from typing import Optional, Any

from pos_api.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# Create Redis client
redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)


class CacheService:
    """
    Redis cache service for serialized product reads.

    This service provides methods for:
    - Setting cache with TTL
    - Getting cached values
    - Invalidating single keys or whole namespaces

    Redis errors are treated as cache misses and never reach the caller.
    """

    def __init__(self, client: redis.Redis = None, ttl: int = None, enabled: bool = None):
        self.client = client or redis_client
        self.ttl = ttl or settings.CACHE_TTL
        self.enabled = settings.CACHE_ENABLED if enabled is None else enabled

    def _make_key(self, prefix: str, key: str) -> str:
        """Create a namespaced cache key."""
        return f"{prefix}:{key}"

    def get(self, prefix: str, key: str) -> Optional[Any]:
        """
        Get a value from cache.

        Args:
            prefix: Cache key prefix (e.g., 'product')
            key: Unique identifier

        Returns:
            Cached value or None if not found
        """
        if not self.enabled:
            return None
        cache_key = self._make_key(prefix, key)
        try:
            value = self.client.get(cache_key)
            if value:
                return json.loads(value)
            return None
        except (redis.RedisError, json.JSONDecodeError) as e:
            logger.debug(f"Cache read failed for {cache_key}: {e}")
            return None

    def set(self, prefix: str, key: str, value: Any, ttl: int = None) -> bool:
        """
        Set a value in cache with TTL.

        Args:
            prefix: Cache key prefix
            key: Unique identifier
            value: Value to cache (will be JSON serialized)
            ttl: Time to live in seconds (optional, uses default if not provided)

        Returns:
            True if successful, False otherwise
        """
        if not self.enabled:
            return False
        cache_key = self._make_key(prefix, key)
        ttl = ttl or self.ttl
        try:
            serialized = json.dumps(value, default=str)
            self.client.setex(cache_key, ttl, serialized)
            return True
        except (redis.RedisError, TypeError) as e:
            logger.debug(f"Cache write failed for {cache_key}: {e}")
            return False

    def delete(self, prefix: str, key: str) -> bool:
        """Delete a value from cache. Returns True if the call reached Redis."""
        if not self.enabled:
            return False
        cache_key = self._make_key(prefix, key)
        try:
            self.client.delete(cache_key)
            return True
        except redis.RedisError:
            return False

    def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching a pattern.

        Args:
            pattern: Redis key pattern (e.g., 'product:*')

        Returns:
            Number of keys deleted
        """
        if not self.enabled:
            return 0
        try:
            keys = list(self.client.scan_iter(match=pattern))
            if keys:
                return self.client.delete(*keys)
            return 0
        except redis.RedisError:
            return 0

    def ping(self) -> bool:
        """Check that Redis answers. Raises redis.RedisError if it doesn't."""
        return bool(self.client.ping())


# Singleton cache service instance
cache_service = CacheService()
