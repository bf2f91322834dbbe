"""Redis-backed key/value cache."""

from .redis_cache import RedisCache, get_cache

__all__ = ["RedisCache", "get_cache"]
