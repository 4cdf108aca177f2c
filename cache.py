"""
Redis read-through cache for list and detail queries.

Redis is only a cache; MongoDB is always authoritative. Keys follow:
- {namespace}:{resource}:list:{digest}   list queries (products:list, brands:list, ...)
- {namespace}:{resource}:{id}:{digest}   detail queries
- {namespace}:cart:{user_id}:{digest}    per-user cart / wishlist reads

The digest is a hash of the canonical (key-sorted, None-free) query parameters,
so equivalent queries share a key regardless of parameter order. Every failure
talking to Redis degrades to a cache miss / no-op and is logged, never raised.
"""

import hashlib
import json
import os
from typing import Any, Callable, Dict, Optional

import redis

from logger import get_logger

logger = get_logger(__name__)

DEFAULT_TTL = int(os.getenv("CACHE_DEFAULT_TTL", "3600"))
PROMOTION_TTL = 30 * 24 * 60 * 60  # 30 days


def canonicalize(value: Any) -> Any:
    """Recursively sort mapping keys and drop None values."""
    if isinstance(value, dict):
        return {str(k): canonicalize(v) for k, v in sorted(value.items(), key=lambda kv: str(kv[0])) if v is not None}
    if isinstance(value, (list, tuple)):
        return [canonicalize(v) for v in value]
    return value


class CacheClient:
    """Best-effort Redis cache with deterministic keys and pattern invalidation."""

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        namespace: Optional[str] = None,
        default_ttl: Optional[int] = None,
    ):
        if client is None:
            client = redis.Redis.from_url(
                os.getenv("REDIS_URL", "redis://localhost:6379/0"),
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
        self.client = client
        self.namespace = namespace or os.getenv("CACHE_NAMESPACE", "shop")
        self.default_ttl = default_ttl or DEFAULT_TTL

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    @staticmethod
    def derive_key(resource: str, params: Optional[Dict[str, Any]] = None) -> str:
        raw = json.dumps(canonicalize(params or {}), sort_keys=True, separators=(",", ":"), default=str)
        return f"{resource}:{hashlib.sha256(raw.encode()).hexdigest()[:16]}"

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on a miss or a store failure."""
        try:
            cached = self.client.get(self._key(key))
        except redis.RedisError as e:
            logger.warning("Cache read failed", key=key, error=str(e))
            return None
        if cached is None:
            logger.debug("Cache miss", key=key)
            return None
        try:
            value = json.loads(cached)
        except ValueError as e:
            logger.warning("Cache entry unreadable", key=key, error=str(e))
            return None
        logger.debug("Cache hit", key=key)
        return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        try:
            payload = json.dumps(value, default=str)
            self.client.setex(self._key(key), ttl or self.default_ttl, payload)
            return True
        except (redis.RedisError, TypeError, ValueError) as e:
            logger.warning("Cache write failed", key=key, error=str(e))
            return False

    def invalidate(self, key_or_pattern: str) -> int:
        """Delete one key, or every key matching a glob pattern such as ``products:list:*``."""
        try:
            if "*" in key_or_pattern:
                keys = list(self.client.scan_iter(match=self._key(key_or_pattern), count=500))
                deleted = self.client.delete(*keys) if keys else 0
            else:
                deleted = self.client.delete(self._key(key_or_pattern))
        except redis.RedisError as e:
            logger.warning("Cache invalidation failed", pattern=key_or_pattern, error=str(e))
            return 0
        if deleted:
            logger.debug("Cache invalidated", pattern=key_or_pattern, count=deleted)
        return deleted

    def read_through(self, key: str, loader: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        """Serve ``key`` from cache, or compute it with ``loader`` and populate the cache."""
        cached = self.get(key)
        if cached is not None:
            return cached
        value = loader()
        if value is not None:
            self.set(key, value, ttl)
        return value


cache_client = CacheClient()
