"""Redis connection and pooling management.

This module provides the RedisCache class for managing the Redis connection
pool that backs the volatile tier.
"""

from typing import Optional

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

import structlog

from keystore.exceptions import KeystoreConnectionError
from keystore.utils.logger import redact_url

logger = structlog.get_logger(__name__)


class RedisCache:
    """
    Redis cache connection manager with connection pooling.

    The pool is created by connect() and released by close(); nothing is
    opened at construction time.

    Attributes:
        url: Redis URL
        pool: Redis connection pool (None until connected)
        client: Redis client instance (None until connected)
    """

    def __init__(
        self,
        url: str,
        max_connections: int = 20,
        socket_timeout: float = 5,
    ) -> None:
        """
        Initialize Redis cache settings.

        Args:
            url: Redis URL, e.g. redis://localhost:6379/0
            max_connections: Upper bound of pooled connections
            socket_timeout: Socket and connect timeout in seconds
        """
        self.url = url
        self.max_connections = max_connections
        self.socket_timeout = socket_timeout
        self.pool: Optional[ConnectionPool] = None
        self.client: Optional[redis.Redis] = None

    async def connect(self) -> None:
        """
        Create the connection pool and verify the server answers PING.

        Raises:
            KeystoreConnectionError: If the pool cannot be created or PING fails
        """
        if self.client is not None:
            return

        safe_url = redact_url(self.url)

        try:
            self.pool = ConnectionPool.from_url(
                self.url,
                max_connections=self.max_connections,
                decode_responses=True,  # Values are text
                socket_timeout=self.socket_timeout,
                socket_connect_timeout=self.socket_timeout,
                retry_on_timeout=True,
            )
            self.client = redis.Redis(connection_pool=self.pool)
            await self.client.ping()

        except (RedisError, OSError, ValueError) as e:
            logger.error(
                "redis_connection_failed",
                redis_url=safe_url,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self.close()
            raise KeystoreConnectionError(
                f"Could not connect to Redis at {safe_url}: {e}", tier="volatile"
            ) from e

        logger.info(
            "redis_pool_initialized",
            max_connections=self.max_connections,
            redis_url=safe_url,
        )

    async def ping(self) -> bool:
        """
        Check Redis connection health.

        Returns:
            True if Redis is healthy, False otherwise
        """
        if not self.client:
            logger.warning("redis_ping_failed", reason="client_not_initialized")
            return False

        try:
            result = await self.client.ping()
            logger.debug("redis_ping_success", result=result)
            return bool(result)

        except RedisError as e:
            logger.error(
                "redis_ping_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    async def close(self) -> None:
        """
        Close Redis connection pool gracefully.

        Safe to call more than once.
        """
        client, pool = self.client, self.pool
        self.client = None
        self.pool = None

        try:
            if client:
                await client.aclose()
                logger.info("redis_client_closed")

            if pool:
                await pool.disconnect()
                logger.info("redis_pool_disconnected")

        except (RedisError, OSError) as e:
            logger.error(
                "redis_close_error",
                error=str(e),
                error_type=type(e).__name__,
            )

    def is_available(self) -> bool:
        """
        Check if Redis client is available.

        Note:
            This only checks if the client exists, not if Redis is reachable.
            Use ping() for a real health check.
        """
        return self.client is not None
