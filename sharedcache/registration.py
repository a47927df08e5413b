"""
Shared cache wiring.

Assembles the connection factory, the two collections, the cache and the
key-ring repository from settings. Nothing here is a module-level global:
callers own the returned services and their lifetime.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import structlog

from .core.config import Settings, get_settings
from .infrastructure.redis.connection_factory import RedisConnectionFactory
from .infrastructure.redis.exceptions import CacheConfigurationException
from .infrastructure.repositories.key_ring_repository import KeyRingRepository
from .services.cache.distributed_cache import DistributedCache

logger = structlog.get_logger()


@dataclass
class SharedCacheServices:
    """Everything built by :func:`build_shared_cache`."""

    settings: Settings
    factory: RedisConnectionFactory
    cache: DistributedCache
    key_ring: KeyRingRepository

    def close(self) -> None:
        self.factory.close()

    async def aclose(self) -> None:
        await self.factory.aclose()
        await asyncio.to_thread(self.factory.close)


def build_shared_cache(
    settings: Optional[Settings] = None,
    factory: Optional[RedisConnectionFactory] = None,
) -> SharedCacheServices:
    """
    Build the shared cache and the key-ring repository.

    Args:
        settings: Settings to use; ``get_settings()`` if omitted
        factory: Connection factory to reuse; a new one is created if omitted

    Raises:
        CacheConfigurationException: If both stores would share a collection
    """
    settings = settings or get_settings()
    factory = factory or RedisConnectionFactory(settings)

    if settings.CACHE_COLLECTION == settings.KEY_RING_COLLECTION:
        raise CacheConfigurationException(
            message="Cache entries and key-ring elements need separate collections",
            config_key="KEY_RING_COLLECTION",
            config_value=settings.KEY_RING_COLLECTION,
        )

    cache = DistributedCache(
        collection=factory.collection(settings.CACHE_COLLECTION),
        async_collection=factory.async_collection(settings.CACHE_COLLECTION),
        enforce_expiration=settings.CACHE_ENFORCE_EXPIRATION,
    )
    key_ring = KeyRingRepository(
        collection=factory.collection(settings.KEY_RING_COLLECTION),
        async_collection=factory.async_collection(settings.KEY_RING_COLLECTION),
    )

    logger.info(
        "Shared cache configured",
        database=settings.CACHE_DATABASE,
        cache_collection=settings.CACHE_COLLECTION,
        key_ring_collection=settings.KEY_RING_COLLECTION,
        enforce_expiration=settings.CACHE_ENFORCE_EXPIRATION,
    )

    return SharedCacheServices(
        settings=settings, factory=factory, cache=cache, key_ring=key_ring
    )
