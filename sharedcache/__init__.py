"""
SharedCache

Distributed cache and key-ring persistence for stateless application
instances that share one document store.
"""

from .core.config import Settings, get_settings
from .core.logging import configure_logging
from .domain.cache.entities import CacheEntry, KeyRingElement
from .domain.cache.value_objects import CacheEntryOptions, CacheKey
from .infrastructure.redis import (
    RedisConnectionFactory,
    SharedCacheException,
    CacheConfigurationException,
    CacheDocumentFormatException,
)
from .infrastructure.repositories import KeyRingRepository
from .services.cache import DistributedCache
from .registration import SharedCacheServices, build_shared_cache

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "CacheEntry",
    "KeyRingElement",
    "CacheEntryOptions",
    "CacheKey",
    "RedisConnectionFactory",
    "SharedCacheException",
    "CacheConfigurationException",
    "CacheDocumentFormatException",
    "KeyRingRepository",
    "DistributedCache",
    "SharedCacheServices",
    "build_shared_cache",
]
