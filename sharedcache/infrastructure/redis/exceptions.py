"""
Shared Cache Exceptions

Package-specific exceptions. Store and transport failures raised by redis-py
are not wrapped: they reach the caller as the original ``RedisError``.
"""

from typing import Optional, Any
from fastapi import HTTPException

from ...domain.cache.exceptions import (
    CacheDocumentFormatException,
    SharedCacheException,
)


class CacheConfigurationException(SharedCacheException):
    """Raised when cache wiring or settings are invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key
        if config_value is not None:
            details["config_value"] = str(config_value)
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=message, error_code="CACHE_CONFIGURATION_ERROR", details=details
        )
        if original_error:
            self.__cause__ = original_error


# HTTP Exceptions for API layer
class SharedCacheHTTPException(HTTPException):
    """HTTP exception wrapper for shared cache errors."""

    def __init__(self, cache_exception: SharedCacheException, status_code: int = 503):
        self.cache_exception = cache_exception
        super().__init__(
            status_code=status_code,
            detail={
                "error": cache_exception.error_code,
                "message": cache_exception.message,
                "details": cache_exception.details,
            },
        )


__all__ = [
    "SharedCacheException",
    "CacheConfigurationException",
    "CacheDocumentFormatException",
    "SharedCacheHTTPException",
]
