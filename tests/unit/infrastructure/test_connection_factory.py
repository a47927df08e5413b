"""
Unit tests for RedisConnectionFactory.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from redis.exceptions import ConnectionError as RedisConnectionError

from sharedcache.core.config import Settings
from sharedcache.infrastructure.redis.collection import (
    AsyncRedisDocumentCollection,
    RedisDocumentCollection,
)
from sharedcache.infrastructure.redis.connection_factory import RedisConnectionFactory
from sharedcache.infrastructure.redis.exceptions import CacheConfigurationException


@pytest.fixture
def settings():
    return Settings(
        REDIS_URL="redis://cache.internal:6380/2",
        REDIS_MAX_CONNECTIONS=7,
        CACHE_DATABASE="app",
    )


@pytest.fixture
def factory(settings):
    return RedisConnectionFactory(settings)


class TestClients:
    def test_blocking_client_is_shared(self, factory):
        client = factory.get_client()
        assert factory.get_client() is client

        kwargs = client.connection_pool.connection_kwargs
        assert kwargs["host"] == "cache.internal"
        assert kwargs["port"] == 6380
        assert kwargs["db"] == 2
        assert kwargs.get("decode_responses", False) is False
        assert client.connection_pool.max_connections == 7

    def test_async_client_is_shared(self, factory):
        client = factory.get_async_client()
        assert factory.get_async_client() is client
        assert client.connection_pool.max_connections == 7

    def test_invalid_url_raises_configuration_error(self, settings):
        broken = settings.model_copy(update={"REDIS_URL": "redis://host:notaport"})
        factory = RedisConnectionFactory(broken)
        with pytest.raises(CacheConfigurationException) as exc_info:
            factory.get_client()
        assert exc_info.value.details["config_key"] == "REDIS_URL"

    def test_collections_share_clients(self, factory):
        cache = factory.collection("cache_entries")
        keys = factory.collection("data_protection_keys")
        async_cache = factory.async_collection("cache_entries")

        assert isinstance(cache, RedisDocumentCollection)
        assert isinstance(async_cache, AsyncRedisDocumentCollection)
        assert cache.make_key("k") == "app:cache_entries:k"
        assert keys.make_key("k") == "app:data_protection_keys:k"
        assert factory.get_metrics()["blocking_pool"] is True


class TestHealthCheck:
    @pytest.mark.asyncio
    async def test_healthy(self, factory):
        client = MagicMock()
        client.ping = AsyncMock(return_value=True)
        with patch.object(factory, "get_async_client", return_value=client):
            status = await factory.health_check()

        assert status["status"] == "healthy"
        assert status["database"] == "app"
        assert "response_time_ms" in status

    @pytest.mark.asyncio
    async def test_unhealthy(self, factory):
        client = MagicMock()
        client.ping = AsyncMock(side_effect=RedisConnectionError("refused"))
        with patch.object(factory, "get_async_client", return_value=client):
            status = await factory.health_check()

        assert status["status"] == "unhealthy"
        assert "refused" in status["error"]


class TestClose:
    def test_close_resets_blocking_pool(self, factory):
        first = factory.get_client()
        factory.close()
        assert factory.get_metrics()["blocking_pool"] is False
        assert factory.get_client() is not first

    @pytest.mark.asyncio
    async def test_aclose_resets_async_pool(self, factory):
        client = factory.get_async_client()
        with patch.object(client, "aclose", new=AsyncMock()) as aclose, patch.object(
            client.connection_pool, "disconnect", new=AsyncMock()
        ) as disconnect:
            await factory.aclose()

        aclose.assert_awaited_once()
        disconnect.assert_awaited_once()
        assert factory.get_metrics()["async_pool"] is False
