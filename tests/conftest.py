"""
Main pytest configuration for the shared cache tests.

Test environment, in-memory collection doubles and a controllable clock.
"""

import os
import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import pytest

# Set test environment variables before importing package modules
os.environ["ENVIRONMENT"] = "test"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["LOG_LEVEL"] = "DEBUG"

from sharedcache.domain.cache.repository_interfaces import (  # noqa: E402
    AsyncDocumentCollection,
    Document,
    DocumentCollection,
    DocumentFields,
)
from sharedcache.services.cache.distributed_cache import DistributedCache  # noqa: E402


def _to_bytes(value) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


class InMemoryStore:
    """Documents of one collection, shared by the blocking and async views."""

    def __init__(self, name: str):
        self.name = name
        self.documents: Dict[str, Document] = {}
        self.lock = threading.Lock()
        self.writes: List[Tuple[str, str]] = []

    def find_by_id(self, document_id: str) -> Optional[Document]:
        with self.lock:
            document = self.documents.get(document_id)
            return dict(document) if document is not None else None

    def upsert(self, document_id: str, document: DocumentFields) -> None:
        with self.lock:
            self.documents[document_id] = {
                k: _to_bytes(v) for k, v in document.items()
            }
            self.writes.append(("upsert", document_id))

    def delete_by_id(self, document_id: str) -> bool:
        with self.lock:
            self.writes.append(("delete", document_id))
            return self.documents.pop(document_id, None) is not None

    def delete_if_matches(self, document_id: str, field: str, expected) -> bool:
        with self.lock:
            document = self.documents.get(document_id)
            if document is None or document.get(field) != _to_bytes(expected):
                return False
            del self.documents[document_id]
            self.writes.append(("delete", document_id))
            return True

    def update_if_exists(
        self,
        document_id: str,
        fields: DocumentFields,
        only_if_greater: Optional[str] = None,
    ) -> bool:
        with self.lock:
            document = self.documents.get(document_id)
            if document is None:
                return False
            if only_if_greater is not None:
                current = document.get(only_if_greater)
                if current is not None and current >= _to_bytes(
                    fields[only_if_greater]
                ):
                    return False
            document.update({k: _to_bytes(v) for k, v in fields.items()})
            self.writes.append(("update", document_id))
            return True

    def find_all(self) -> List[Tuple[str, Document]]:
        with self.lock:
            return [(k, dict(v)) for k, v in self.documents.items()]


class InMemoryDocumentCollection(DocumentCollection):
    def __init__(self, store: InMemoryStore):
        self.store = store

    @property
    def name(self) -> str:
        return self.store.name

    def find_by_id(self, document_id):
        return self.store.find_by_id(document_id)

    def upsert(self, document_id, document):
        self.store.upsert(document_id, document)

    def delete_by_id(self, document_id):
        return self.store.delete_by_id(document_id)

    def delete_if_matches(self, document_id, field, expected):
        return self.store.delete_if_matches(document_id, field, expected)

    def update_if_exists(self, document_id, fields, only_if_greater=None):
        return self.store.update_if_exists(document_id, fields, only_if_greater)

    def find_all(self):
        return self.store.find_all()


class AsyncInMemoryDocumentCollection(AsyncDocumentCollection):
    def __init__(self, store: InMemoryStore):
        self.store = store

    @property
    def name(self) -> str:
        return self.store.name

    async def find_by_id(self, document_id):
        return self.store.find_by_id(document_id)

    async def upsert(self, document_id, document):
        self.store.upsert(document_id, document)

    async def delete_by_id(self, document_id):
        return self.store.delete_by_id(document_id)

    async def delete_if_matches(self, document_id, field, expected):
        return self.store.delete_if_matches(document_id, field, expected)

    async def update_if_exists(self, document_id, fields, only_if_greater=None):
        return self.store.update_if_exists(document_id, fields, only_if_greater)

    async def find_all(self):
        return self.store.find_all()


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    """Controllable clock starting at 2026-01-01 12:00 UTC."""
    return FakeClock()


@pytest.fixture
def cache_store():
    return InMemoryStore("cache_entries")


@pytest.fixture
def key_ring_store():
    return InMemoryStore("data_protection_keys")


@pytest.fixture
def cache(cache_store, clock):
    """Distributed cache over in-memory collections."""
    return DistributedCache(
        collection=InMemoryDocumentCollection(cache_store),
        async_collection=AsyncInMemoryDocumentCollection(cache_store),
        clock=clock,
    )


@pytest.fixture
def enforcing_cache(cache_store, clock):
    """Distributed cache that treats expired entries as missing."""
    return DistributedCache(
        collection=InMemoryDocumentCollection(cache_store),
        async_collection=AsyncInMemoryDocumentCollection(cache_store),
        clock=clock,
        enforce_expiration=True,
    )


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "redis: marks tests as Redis-related")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
