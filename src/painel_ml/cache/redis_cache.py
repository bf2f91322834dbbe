"""
Redis cache for short-lived application state.

Keys are namespaced as ``painel:{namespace}:{key}``. Used for the OAuth
state store, where each pending authorization keeps its PKCE verifier until
the callback arrives.
"""

import os
import json
from typing import Optional, Any

import redis
from redis.connection import ConnectionPool

from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)


class RedisCache:
    """
    Redis cache with connection pooling and JSON values.

    Read and write failures are logged and reported as a miss (None) or
    False so callers decide how to degrade.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        default_ttl: int = 300,
        max_connections: int = 20,
        decode_responses: bool = True
    ):
        """
        Args:
            redis_url: Redis connection URL (default from env REDIS_URL)
            default_ttl: Default TTL in seconds
            max_connections: Maximum pool connections
            decode_responses: Auto-decode bytes to strings
        """
        self.redis_url = redis_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self.default_ttl = default_ttl

        self.pool = ConnectionPool.from_url(
            self.redis_url,
            max_connections=max_connections,
            decode_responses=decode_responses
        )
        self.client = redis.Redis(connection_pool=self.pool)

        logger.info(f"Redis cache initialized (ttl={default_ttl}s, pool={max_connections})")

    def _make_key(self, namespace: str, key: str) -> str:
        return f"painel:{namespace}:{key}"

    def get(self, namespace: str, key: str) -> Optional[Any]:
        cache_key = self._make_key(namespace, key)

        try:
            value = self.client.get(cache_key)
        except redis.RedisError as e:
            logger.error(f"Cache get error for {cache_key}: {e}")
            return None

        if value is None:
            logger.debug(f"Cache miss: {cache_key}")
            return None

        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.error(f"Cache JSON decode error for {cache_key}: {e}")
            return None

    def set(self, namespace: str, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Store a JSON-serializable value with a TTL.

        Returns:
            True if stored, False otherwise
        """
        cache_key = self._make_key(namespace, key)
        ttl = ttl or self.default_ttl

        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Cache serialization error for {cache_key}: {e}")
            return False

        try:
            self.client.setex(cache_key, ttl, serialized)
        except redis.RedisError as e:
            logger.error(f"Cache set error for {cache_key}: {e}")
            return False

        logger.debug(f"Cache set: {cache_key} (ttl={ttl}s)")
        return True

    def pop(self, namespace: str, key: str) -> Optional[Any]:
        """Read and delete a value atomically. Returns None when absent."""
        cache_key = self._make_key(namespace, key)

        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.get(cache_key)
            pipe.delete(cache_key)
            value, _ = pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Cache pop error for {cache_key}: {e}")
            return None

        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.error(f"Cache JSON decode error for {cache_key}: {e}")
            return None

    def delete(self, namespace: str, key: str) -> bool:
        cache_key = self._make_key(namespace, key)

        try:
            return self.client.delete(cache_key) > 0
        except redis.RedisError as e:
            logger.error(f"Cache delete error for {cache_key}: {e}")
            return False

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.error(f"Redis ping failed: {e}")
            return False

    def close(self):
        self.pool.disconnect()
        logger.info("Redis connection pool closed")


_cache: Optional[RedisCache] = None


def get_cache() -> RedisCache:
    """Get or create the process-wide cache."""
    global _cache
    if _cache is None:
        _cache = RedisCache()
    return _cache
