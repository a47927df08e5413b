"""
Redis Infrastructure Module

Redis-backed document store for the shared cache.

This module provides:
- RedisConnectionFactory: shared blocking and async connection pools
- RedisDocumentCollection / AsyncRedisDocumentCollection: one hash per document
- Package exceptions
"""

from .exceptions import (
    SharedCacheException,
    CacheConfigurationException,
    CacheDocumentFormatException,
    SharedCacheHTTPException,
)
from .collection import (
    RedisDocumentCollection,
    AsyncRedisDocumentCollection,
    UPDATE_IF_EXISTS_SCRIPT,
    DELETE_IF_MATCHES_SCRIPT,
)
from .connection_factory import RedisConnectionFactory

__all__ = [
    # Connection management
    "RedisConnectionFactory",
    # Collections
    "RedisDocumentCollection",
    "AsyncRedisDocumentCollection",
    "UPDATE_IF_EXISTS_SCRIPT",
    "DELETE_IF_MATCHES_SCRIPT",
    # Exceptions
    "SharedCacheException",
    "CacheConfigurationException",
    "CacheDocumentFormatException",
    "SharedCacheHTTPException",
]
