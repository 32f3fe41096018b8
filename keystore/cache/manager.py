"""Cache manager for the volatile tier.

This module provides the CacheManager class: the narrow get/set/delete/
enumerate/flush interface the keystore uses against Redis. Redis failures
are raised as CacheError so the caller decides how to degrade.
"""

from typing import Optional, Sequence, Union

import structlog
from redis.exceptions import RedisError

from keystore.cache.connection import RedisCache
from keystore.cache.keys import KeyNamespace
from keystore.cache.ttl import CacheTTL
from keystore.exceptions import CacheError

logger = structlog.get_logger(__name__)

# Keys requested per SCAN round trip
SCAN_COUNT = 500


class CacheManager:
    """
    Volatile cache adapter over a pooled Redis connection.

    Attributes:
        connection: RedisCache owning the pool
    """

    def __init__(self, connection: RedisCache) -> None:
        """Initialize cache manager with a (not yet connected) Redis cache."""
        self.connection = connection

    @classmethod
    def from_url(cls, url: str, **pool_options) -> "CacheManager":
        """Build a manager for the Redis server at ``url``."""
        return cls(RedisCache(url, **pool_options))

    @property
    def redis(self):
        """Underlying client; raises CacheError when not connected."""
        client = self.connection.client
        if client is None:
            raise CacheError("Redis client not connected", operation="connect")
        return client

    async def connect(self) -> None:
        await self.connection.connect()

    async def close(self) -> None:
        await self.connection.close()

    async def ping(self) -> bool:
        return await self.connection.ping()

    async def get(self, key: str) -> Optional[str]:
        """
        Retrieve cached value by key.

        Args:
            key: Cache key to retrieve

        Returns:
            Cached value, or None if not found

        Raises:
            CacheError: If Redis is unavailable or the command fails
        """
        client = self.redis

        try:
            value = await client.get(key)
        except RedisError as e:
            logger.error(
                "cache_get_error",
                key=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise CacheError(str(e), operation="get", key=key) from e

        if value is None:
            logger.debug("cache_miss", key=key)
        else:
            logger.debug("cache_hit", key=key)

        return value

    async def set(self, key: str, value: str, ttl: Optional[float] = None) -> bool:
        """
        Store value in cache, optionally with a TTL.

        Args:
            key: Cache key
            value: Text to cache
            ttl: Time to live in seconds; None means no expiry

        Returns:
            True once Redis acknowledged the write

        Raises:
            CacheError: If Redis is unavailable or the command fails
        """
        client = self.redis
        expire = CacheTTL.normalize(ttl)

        try:
            # SET with EX in one command so the entry never exists without its TTL
            await client.set(key, value, ex=expire)
        except RedisError as e:
            logger.error(
                "cache_set_error",
                key=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise CacheError(str(e), operation="set", key=key) from e

        logger.debug("cache_set", key=key, ttl=expire, data_size=len(value))

        return True

    async def delete(self, keys: Union[str, Sequence[str]]) -> int:
        """
        Delete one key or a batch of keys.

        Args:
            keys: A single key or a sequence of keys

        Returns:
            Number of keys actually removed

        Raises:
            CacheError: If Redis is unavailable or the command fails
        """
        batch = [keys] if isinstance(keys, str) else list(keys)

        if not batch:
            return 0

        client = self.redis
        label = batch[0] if len(batch) == 1 else None

        try:
            removed = await client.delete(*batch)
        except RedisError as e:
            logger.error(
                "cache_delete_error",
                keys=len(batch),
                key=label,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise CacheError(str(e), operation="delete", key=label) from e

        logger.debug("cache_delete", keys=len(batch), deleted=removed)

        return int(removed)

    async def keys_by_prefix(self, prefix: str) -> list[str]:
        """
        Enumerate keys that start with ``prefix``.

        Uses incremental SCAN rather than KEYS so a large keyspace does not
        block the server.

        Raises:
            CacheError: If Redis is unavailable or the command fails
        """
        client = self.redis
        pattern = KeyNamespace(prefix).match_pattern()

        try:
            found = [key async for key in client.scan_iter(match=pattern, count=SCAN_COUNT)]
        except RedisError as e:
            logger.error(
                "cache_scan_error",
                prefix=prefix,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise CacheError(str(e), operation="scan", key=prefix) from e

        # SCAN may return a key more than once
        keys = sorted(set(found))
        logger.debug("cache_scan", prefix=prefix, found=len(keys))

        return keys

    async def flush_all(self) -> bool:
        """
        Remove every key from the configured Redis database.

        Raises:
            CacheError: If Redis is unavailable or the command fails
        """
        client = self.redis

        try:
            await client.flushdb()
        except RedisError as e:
            logger.error(
                "cache_flush_error",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise CacheError(str(e), operation="flush") from e

        logger.info("cache_flushed")

        return True
