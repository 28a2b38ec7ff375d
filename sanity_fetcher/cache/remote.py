"""
Redis-backed shared cache tier.

Every failure here (connectivity, serialization, malformed payloads) is
logged and absorbed. A broken Redis makes requests slower, never failing.
"""
import json
import logging
from typing import Any, List, Optional
from urllib.parse import urlparse

import redis

from config.settings import settings
from .core import CacheEntry, CacheTier

logger = logging.getLogger("sanity_fetcher.cache.remote")


class RedisLayer(CacheTier):
    """Redis cache tier shared by every process using the same keyspace."""

    name = "redis"

    def __init__(self, client: Any, url: Optional[str] = None):
        """
        Args:
            client: redis.Redis instance created with decode_responses=True
            url: Connection URL, kept for status reporting only
        """
        self._redis = client
        self.url = url

    @property
    def host(self) -> Optional[str]:
        return urlparse(self.url).hostname if self.url else None

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the stored entry, or None on miss or any failure."""
        try:
            blob = self._redis.get(key)
        except (redis.RedisError, UnicodeDecodeError) as e:
            logger.warning(f"Redis cache read error: {e}")
            return None

        if blob is None:
            return None

        try:
            return CacheEntry.from_dict(json.loads(blob))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding malformed Redis cache entry {key[:50]}: {e}")
            return None

    def set(self, key: str, entry: CacheEntry, ttl_seconds: float) -> bool:
        """Store an entry with a Redis expiry of at least one second."""
        try:
            payload = json.dumps(entry.to_dict(), ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.warning(f"Redis cache serialization error for {key[:50]}: {e}")
            return False

        try:
            self._redis.set(key, payload, ex=max(1, int(ttl_seconds)))
            return True
        except redis.RedisError as e:
            logger.warning(f"Redis cache write error: {e}")
            return False

    def delete(self, *keys: str) -> int:
        """Delete keys; returns the number removed."""
        if not keys:
            return 0
        try:
            return int(self._redis.delete(*keys))
        except redis.RedisError as e:
            logger.warning(f"Redis cache delete error: {e}")
            return 0

    def keys_matching(self, pattern: str) -> List[str]:
        """List keys matching a glob pattern (SCAN, not KEYS)."""
        try:
            return list(self._redis.scan_iter(match=pattern))
        except (redis.RedisError, UnicodeDecodeError) as e:
            logger.warning(f"Redis cache scan error: {e}")
            return []

    def ping(self) -> bool:
        try:
            return bool(self._redis.ping())
        except redis.RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    # CacheTier interface

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        entry = self.get(key)
        if entry is None or not entry.is_live():
            return None
        return entry

    def put_entry(self, key: str, entry: CacheEntry) -> bool:
        return self.set(key, entry, entry.remaining_seconds)

    def clear_matching(self, pattern: Optional[str] = None) -> int:
        pattern = pattern or "*sanity:*"
        keys = self.keys_matching(pattern)
        if not keys:
            return 0
        deleted = self.delete(*keys)
        logger.info(f"Cleared {deleted} Redis cache entries matching '{pattern}'")
        return deleted


def get_remote_layer(app_settings=None) -> Optional[RedisLayer]:
    """
    Probe for the remote cache tier.

    Returns a RedisLayer when REDIS_URL is configured and a client can be
    created. Otherwise returns None and the cache runs memory-only.
    """
    app_settings = app_settings or settings
    url = app_settings.redis_url

    if not url:
        logger.info("Redis not configured, remote cache tier disabled")
        return None

    try:
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=app_settings.redis_socket_timeout_seconds,
            socket_timeout=app_settings.redis_socket_timeout_seconds,
        )
    except (ValueError, redis.RedisError) as e:
        logger.warning(f"Failed to initialize Redis client: {e}")
        return None

    layer = RedisLayer(client, url=url)
    logger.info(f"Using Redis remote cache tier at {layer.host}")
    return layer
