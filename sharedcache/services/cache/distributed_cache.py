"""
Distributed Cache Service

Byte-blob cache over one shared document collection. Every operation is a
round trip to the store: there is no in-process layer, which is what lets
several stateless application instances see the same entries.

Store failures (``redis.RedisError``) and ``asyncio.CancelledError`` are
never caught here; they reach the caller unchanged.
"""

from datetime import datetime
from typing import Callable, Optional, Union

import structlog
from opentelemetry import trace

from ...domain.cache.entities import (
    CacheEntry,
    LAST_ACCESS_TIME_FIELD,
    encode_timestamp,
)
from ...domain.cache.repository_interfaces import (
    AsyncDocumentCollection,
    Document,
    DocumentCollection,
)
from ...domain.cache.value_objects import CacheEntryOptions, CacheKey, utc_now

logger = structlog.get_logger()
tracer = trace.get_tracer(__name__)

BytesLike = Union[bytes, bytearray, memoryview]


def _check_value(value: BytesLike) -> bytes:
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise TypeError(
            f"Cache value must be bytes-like, got {type(value).__name__}"
        )
    return bytes(value)


class DistributedCache:
    """
    Shared cache with absolute and sliding expiration.

    Reads of entries with a sliding expiration touch the entry: the stored
    last access time is moved to now. The touch is a conditional partial
    update, so it never recreates an entry removed concurrently, never
    overwrites a value written concurrently and never moves the stored
    access time backwards.

    Args:
        collection: Blocking collection of cache-entry documents
        async_collection: Async view of the same collection
        clock: Source of the current UTC time
        enforce_expiration: Treat entries past their deadline as missing and
            delete them on read. Off by default: whatever document exists is
            returned, expired or not.
    """

    def __init__(
        self,
        collection: DocumentCollection,
        async_collection: AsyncDocumentCollection,
        clock: Callable[[], datetime] = utc_now,
        enforce_expiration: bool = False,
    ):
        self._collection = collection
        self._async_collection = async_collection
        self._clock = clock
        self._enforce_expiration = enforce_expiration

    @property
    def enforce_expiration(self) -> bool:
        return self._enforce_expiration

    @property
    def collection_name(self) -> str:
        return self._collection.name

    # Blocking API

    def get(self, key: str) -> Optional[bytes]:
        """Return the value stored under ``key`` or None if there is none."""
        key = CacheKey(key).value
        with tracer.start_as_current_span("shared_cache.get") as span:
            span.set_attribute("cache.key", key)

            document = self._collection.find_by_id(key)
            if document is None:
                span.set_attribute("cache.hit", False)
                logger.debug("Cache miss", key=key, collection=self.collection_name)
                return None

            entry = CacheEntry.from_document(key, document)
            now = self._clock()

            if self._is_stale(entry, now):
                self._delete_stale(key, document)
                span.set_attribute("cache.hit", False)
                logger.debug(
                    "Expired cache entry removed",
                    key=key,
                    collection=self.collection_name,
                )
                return None

            if entry.touch(now):
                self._touch(entry)

            span.set_attribute("cache.hit", True)
            return entry.value

    def get_str(self, key: str, encoding: str = "utf-8") -> Optional[str]:
        """:meth:`get` decoded as text."""
        value = self.get(key)
        return value.decode(encoding) if value is not None else None

    def set(
        self,
        key: str,
        value: BytesLike,
        options: Optional[CacheEntryOptions] = None,
    ) -> None:
        """Store ``value`` under ``key``, replacing any previous entry."""
        entry = self._new_entry(key, value, options)
        with tracer.start_as_current_span("shared_cache.set") as span:
            span.set_attribute("cache.key", entry.id)
            self._collection.upsert(entry.id, entry.to_document())
            logger.debug(
                "Cache entry stored",
                key=entry.id,
                collection=self.collection_name,
                size_bytes=len(entry.value),
            )

    def set_str(
        self,
        key: str,
        value: str,
        options: Optional[CacheEntryOptions] = None,
        encoding: str = "utf-8",
    ) -> None:
        """:meth:`set` for text values."""
        self.set(key, value.encode(encoding), options)

    def remove(self, key: str) -> None:
        """Delete the entry under ``key``. Absent keys are ignored."""
        key = CacheKey(key).value
        with tracer.start_as_current_span("shared_cache.remove") as span:
            span.set_attribute("cache.key", key)
            removed = self._collection.delete_by_id(key)
            logger.debug(
                "Cache entry removed",
                key=key,
                collection=self.collection_name,
                existed=removed,
            )

    def refresh(self, key: str) -> None:
        """Reset the sliding expiration of ``key`` without reading its value."""
        key = CacheKey(key).value
        with tracer.start_as_current_span("shared_cache.refresh") as span:
            span.set_attribute("cache.key", key)

            document = self._collection.find_by_id(key)
            if document is None:
                return

            entry = CacheEntry.from_document(key, document)
            now = self._clock()

            if self._is_stale(entry, now):
                self._delete_stale(key, document)
                return

            if entry.touch(now):
                self._touch(entry)

    # Async API

    async def aget(self, key: str) -> Optional[bytes]:
        """Async :meth:`get`."""
        key = CacheKey(key).value
        with tracer.start_as_current_span("shared_cache.aget") as span:
            span.set_attribute("cache.key", key)

            document = await self._async_collection.find_by_id(key)
            if document is None:
                span.set_attribute("cache.hit", False)
                logger.debug("Cache miss", key=key, collection=self.collection_name)
                return None

            entry = CacheEntry.from_document(key, document)
            now = self._clock()

            if self._is_stale(entry, now):
                await self._adelete_stale(key, document)
                span.set_attribute("cache.hit", False)
                logger.debug(
                    "Expired cache entry removed",
                    key=key,
                    collection=self.collection_name,
                )
                return None

            if entry.touch(now):
                await self._atouch(entry)

            span.set_attribute("cache.hit", True)
            return entry.value

    async def aget_str(self, key: str, encoding: str = "utf-8") -> Optional[str]:
        """Async :meth:`get_str`."""
        value = await self.aget(key)
        return value.decode(encoding) if value is not None else None

    async def aset(
        self,
        key: str,
        value: BytesLike,
        options: Optional[CacheEntryOptions] = None,
    ) -> None:
        """Async :meth:`set`."""
        entry = self._new_entry(key, value, options)
        with tracer.start_as_current_span("shared_cache.aset") as span:
            span.set_attribute("cache.key", entry.id)
            await self._async_collection.upsert(entry.id, entry.to_document())
            logger.debug(
                "Cache entry stored",
                key=entry.id,
                collection=self.collection_name,
                size_bytes=len(entry.value),
            )

    async def aset_str(
        self,
        key: str,
        value: str,
        options: Optional[CacheEntryOptions] = None,
        encoding: str = "utf-8",
    ) -> None:
        """Async :meth:`set_str`."""
        await self.aset(key, value.encode(encoding), options)

    async def aremove(self, key: str) -> None:
        """Async :meth:`remove`."""
        key = CacheKey(key).value
        with tracer.start_as_current_span("shared_cache.aremove") as span:
            span.set_attribute("cache.key", key)
            removed = await self._async_collection.delete_by_id(key)
            logger.debug(
                "Cache entry removed",
                key=key,
                collection=self.collection_name,
                existed=removed,
            )

    async def arefresh(self, key: str) -> None:
        """Async :meth:`refresh`."""
        key = CacheKey(key).value
        with tracer.start_as_current_span("shared_cache.arefresh") as span:
            span.set_attribute("cache.key", key)

            document = await self._async_collection.find_by_id(key)
            if document is None:
                return

            entry = CacheEntry.from_document(key, document)
            now = self._clock()

            if self._is_stale(entry, now):
                await self._adelete_stale(key, document)
                return

            if entry.touch(now):
                await self._atouch(entry)

    # Helpers

    def _new_entry(
        self, key: str, value: BytesLike, options: Optional[CacheEntryOptions]
    ) -> CacheEntry:
        key = CacheKey(key).value
        return CacheEntry.create(key, _check_value(value), options, now=self._clock())

    def _is_stale(self, entry: CacheEntry, now: datetime) -> bool:
        return self._enforce_expiration and entry.is_expired(now)

    @staticmethod
    def _touch_fields(entry: CacheEntry):
        return {LAST_ACCESS_TIME_FIELD: encode_timestamp(entry.last_access_time)}

    def _touch(self, entry: CacheEntry) -> None:
        self._collection.update_if_exists(
            entry.id, self._touch_fields(entry), only_if_greater=LAST_ACCESS_TIME_FIELD
        )

    async def _atouch(self, entry: CacheEntry) -> None:
        await self._async_collection.update_if_exists(
            entry.id, self._touch_fields(entry), only_if_greater=LAST_ACCESS_TIME_FIELD
        )

    def _delete_stale(self, key: str, document: Document) -> None:
        # Only the version that was read; a newer write or touch survives
        self._collection.delete_if_matches(
            key, LAST_ACCESS_TIME_FIELD, document[LAST_ACCESS_TIME_FIELD]
        )

    async def _adelete_stale(self, key: str, document: Document) -> None:
        await self._async_collection.delete_if_matches(
            key, LAST_ACCESS_TIME_FIELD, document[LAST_ACCESS_TIME_FIELD]
        )
