"""
FastAPI integration for the shared cache.

Services live on ``app.state.shared_cache``; route handlers receive them
through the dependency providers below.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import Depends, FastAPI, Request

from ..core.config import Settings
from ..infrastructure.redis.exceptions import (
    CacheConfigurationException,
    SharedCacheHTTPException,
)
from ..infrastructure.repositories.key_ring_repository import KeyRingRepository
from ..registration import SharedCacheServices, build_shared_cache
from ..services.cache.distributed_cache import DistributedCache

logger = structlog.get_logger()

STATE_ATTRIBUTE = "shared_cache"


def install_shared_cache(app: FastAPI, services: SharedCacheServices) -> None:
    """Bind ``services`` as the application's shared cache."""
    setattr(app.state, STATE_ATTRIBUTE, services)


def shared_cache_lifespan(settings: Optional[Settings] = None):
    """
    Build a FastAPI lifespan that owns the shared cache.

    Services are built on startup and the connection pools closed on
    shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        services = build_shared_cache(settings)
        install_shared_cache(app, services)
        logger.info("Shared cache installed")

        try:
            yield
        finally:
            await services.aclose()
            logger.info("Shared cache closed")

    return lifespan


def get_shared_cache_services(request: Request) -> SharedCacheServices:
    services = getattr(request.app.state, STATE_ATTRIBUTE, None)
    if services is None:
        raise SharedCacheHTTPException(
            CacheConfigurationException(
                "Shared cache is not installed on this application"
            ),
            status_code=500,
        )
    return services


def get_distributed_cache(
    services: SharedCacheServices = Depends(get_shared_cache_services),
) -> DistributedCache:
    return services.cache


def get_key_ring_repository(
    services: SharedCacheServices = Depends(get_shared_cache_services),
) -> KeyRingRepository:
    return services.key_ring
