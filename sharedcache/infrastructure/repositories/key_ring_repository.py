"""
Key Ring Repository

Persists opaque key-ring elements (serialized key material) so that every
application instance loads the same key ring. One document per element.
"""

from datetime import datetime
from typing import Callable, List, Optional

import structlog
from opentelemetry import trace

from ...domain.cache.entities import KeyRingElement
from ...domain.cache.repository_interfaces import (
    AsyncDocumentCollection,
    DocumentCollection,
)
from ...domain.cache.value_objects import utc_now

logger = structlog.get_logger()
tracer = trace.get_tracer(__name__)


class KeyRingRepository:
    """Storage seam for the key ring. Does not inspect the elements it stores."""

    def __init__(
        self,
        collection: DocumentCollection,
        async_collection: AsyncDocumentCollection,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._collection = collection
        self._async_collection = async_collection
        self._clock = clock

    @property
    def collection_name(self) -> str:
        return self._collection.name

    def get_all_elements(self) -> List[str]:
        """Every stored element, oldest first."""
        with tracer.start_as_current_span("key_ring.get_all_elements"):
            documents = self._collection.find_all()
            return self._ordered(documents)

    def store_element(self, element: str, friendly_name: Optional[str] = None) -> str:
        """
        Store one element.

        Args:
            element: Serialized key material
            friendly_name: Document id to use; a random id is generated if omitted

        Returns:
            Id of the stored document
        """
        record = KeyRingElement.create(element, friendly_name, now=self._clock())
        with tracer.start_as_current_span("key_ring.store_element") as span:
            span.set_attribute("key_ring.element_id", record.id)
            self._collection.upsert(record.id, record.to_document())
        logger.info(
            "Key-ring element stored",
            element_id=record.id,
            collection=self.collection_name,
        )
        return record.id

    async def aget_all_elements(self) -> List[str]:
        """Async :meth:`get_all_elements`."""
        with tracer.start_as_current_span("key_ring.aget_all_elements"):
            documents = await self._async_collection.find_all()
            return self._ordered(documents)

    async def astore_element(
        self, element: str, friendly_name: Optional[str] = None
    ) -> str:
        """Async :meth:`store_element`."""
        record = KeyRingElement.create(element, friendly_name, now=self._clock())
        with tracer.start_as_current_span("key_ring.astore_element") as span:
            span.set_attribute("key_ring.element_id", record.id)
            await self._async_collection.upsert(record.id, record.to_document())
        logger.info(
            "Key-ring element stored",
            element_id=record.id,
            collection=self.collection_name,
        )
        return record.id

    @staticmethod
    def _ordered(documents) -> List[str]:
        records = [
            KeyRingElement.from_document(document_id, document)
            for document_id, document in documents
        ]
        records.sort(key=lambda record: (record.created_at, record.id))
        return [record.element for record in records]
