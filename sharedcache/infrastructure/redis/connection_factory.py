"""
Redis Connection Factory

Connection management for the shared document store. One blocking and one
async connection pool are created lazily from settings and shared by every
collection built on top of them.
"""

import threading
import time
from typing import Any, Dict, Optional

import redis
import redis.asyncio
import structlog

from ...core.config import Settings
from .collection import AsyncRedisDocumentCollection, RedisDocumentCollection
from .exceptions import CacheConfigurationException

logger = structlog.get_logger()


class RedisConnectionFactory:
    """
    Factory for creating and sharing Redis connections.

    Constructed once per process and injected into the collections that need
    it. Holds no cache state of its own.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._lock = threading.Lock()
        self._pool: Optional[redis.ConnectionPool] = None
        self._client: Optional[redis.Redis] = None
        self._async_pool: Optional[redis.asyncio.ConnectionPool] = None
        self._async_client: Optional[redis.asyncio.Redis] = None

    @property
    def settings(self) -> Settings:
        return self._settings

    def _connection_kwargs(self) -> Dict[str, Any]:
        return {
            "max_connections": self._settings.REDIS_MAX_CONNECTIONS,
            "socket_connect_timeout": self._settings.REDIS_CONNECTION_TIMEOUT,
            "socket_timeout": self._settings.REDIS_OPERATION_TIMEOUT,
            # Cache values are opaque bytes
            "decode_responses": False,
        }

    def get_client(self) -> redis.Redis:
        """Shared blocking client."""
        if self._client is not None:
            return self._client

        with self._lock:
            if self._client is None:
                try:
                    self._pool = redis.ConnectionPool.from_url(
                        self._settings.REDIS_URL, **self._connection_kwargs()
                    )
                except ValueError as e:
                    raise CacheConfigurationException(
                        message=f"Invalid Redis URL: {e}",
                        config_key="REDIS_URL",
                        original_error=e,
                    ) from e
                self._client = redis.Redis(connection_pool=self._pool)
                logger.info(
                    "Redis blocking connection pool created",
                    max_connections=self._settings.REDIS_MAX_CONNECTIONS,
                )
        return self._client

    def get_async_client(self) -> redis.asyncio.Redis:
        """Shared async client."""
        if self._async_client is not None:
            return self._async_client

        with self._lock:
            if self._async_client is None:
                try:
                    self._async_pool = redis.asyncio.ConnectionPool.from_url(
                        self._settings.REDIS_URL, **self._connection_kwargs()
                    )
                except ValueError as e:
                    raise CacheConfigurationException(
                        message=f"Invalid Redis URL: {e}",
                        config_key="REDIS_URL",
                        original_error=e,
                    ) from e
                self._async_client = redis.asyncio.Redis(
                    connection_pool=self._async_pool
                )
                logger.info(
                    "Redis async connection pool created",
                    max_connections=self._settings.REDIS_MAX_CONNECTIONS,
                )
        return self._async_client

    def collection(self, name: str) -> RedisDocumentCollection:
        """Blocking collection ``name`` in the configured logical database."""
        return RedisDocumentCollection(
            self.get_client(), self._settings.CACHE_DATABASE, name
        )

    def async_collection(self, name: str) -> AsyncRedisDocumentCollection:
        """Async collection ``name`` in the configured logical database."""
        return AsyncRedisDocumentCollection(
            self.get_async_client(), self._settings.CACHE_DATABASE, name
        )

    async def health_check(self) -> Dict[str, Any]:
        """
        Ping the store.

        Returns:
            Health status with round-trip latency, or the error on failure
        """
        health_status: Dict[str, Any] = {
            "status": "unhealthy",
            "timestamp": time.time(),
            "database": self._settings.CACHE_DATABASE,
        }

        try:
            client = self.get_async_client()
            start_time = time.time()
            await client.ping()
            response_time = time.time() - start_time

            health_status["status"] = "healthy"
            health_status["response_time_ms"] = round(response_time * 1000, 2)
        except (redis.RedisError, OSError, CacheConfigurationException) as e:
            health_status["error"] = str(e)
            logger.error("Redis health check failed", error=str(e))

        return health_status

    def close(self) -> None:
        """Close the blocking connection pool."""
        with self._lock:
            if self._client is not None:
                self._client.close()
            if self._pool is not None:
                self._pool.disconnect()
            self._client = None
            self._pool = None
        logger.info("Redis blocking connection pool closed")

    async def aclose(self) -> None:
        """Close the async connection pool."""
        client, pool = self._async_client, self._async_pool
        self._async_client = None
        self._async_pool = None

        if client is not None:
            await client.aclose()
        if pool is not None:
            await pool.disconnect()
        logger.info("Redis async connection pool closed")

    def get_metrics(self) -> Dict[str, Any]:
        """Get connection factory metrics."""
        return {
            "blocking_pool": self._pool is not None,
            "async_pool": self._async_pool is not None,
            "max_connections": self._settings.REDIS_MAX_CONNECTIONS,
        }
