"""
Cache Domain Exceptions

Raised by domain entities when stored documents cannot be turned back into
entities. Infrastructure exceptions build on :class:`SharedCacheException`.
"""

from typing import Any, Dict, Optional


class SharedCacheException(Exception):
    """Base exception for shared cache errors raised by this package."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class CacheDocumentFormatException(SharedCacheException):
    """Raised when a stored document cannot be decoded into an entity."""

    def __init__(
        self,
        document_id: str,
        field: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        """Initialize exception.

        Args:
            document_id: Id of the offending document
            field: Document field that failed to decode, if known
            original_error: Decoding error, chained as the cause
        """
        details: Dict[str, Any] = {"document_id": document_id}
        if field:
            details["field"] = field
        if original_error:
            details["original_error"] = str(original_error)

        message = f"Malformed document: {document_id}"
        if field:
            message = f"{message} (field: {field})"

        super().__init__(
            message=message, error_code="CACHE_DOCUMENT_FORMAT_ERROR", details=details
        )
        if original_error:
            self.__cause__ = original_error
