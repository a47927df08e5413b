"""
FastAPI integration: lifespan, dependency providers and health endpoint.
"""

from .dependencies import (
    install_shared_cache,
    shared_cache_lifespan,
    get_shared_cache_services,
    get_distributed_cache,
    get_key_ring_repository,
)
from .health import router as health_router

__all__ = [
    "install_shared_cache",
    "shared_cache_lifespan",
    "get_shared_cache_services",
    "get_distributed_cache",
    "get_key_ring_repository",
    "health_router",
]
