"""
Redis Document Collections

Redis implementation of the document collection contract. A collection is a
key namespace ``"{database}:{collection}:"`` and each document is one Redis
hash stored under ``"{database}:{collection}:{id}"``.

Atomicity:
- reads are a single HGETALL
- upserts replace the whole hash inside a MULTI/EXEC transaction
- partial updates and conditional deletes run as one Lua script each
"""

from typing import Dict, List, Optional, Tuple, Union

from redis import Redis
from redis.asyncio import Redis as AsyncRedis

from ...domain.cache.repository_interfaces import (
    AsyncDocumentCollection,
    Document,
    DocumentCollection,
    DocumentFields,
)

# Overwrite hash fields only while the hash exists, so a concurrent delete
# is never undone by a partial update. ARGV[1] optionally names a guard
# field whose stored value must sort strictly before the new one.
UPDATE_IF_EXISTS_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 0 then
    return 0
end
local guard = ARGV[1]
if guard ~= '' then
    local current = redis.call('HGET', KEYS[1], guard)
    for i = 2, #ARGV, 2 do
        if ARGV[i] == guard and current and current >= ARGV[i + 1] then
            return 0
        end
    end
end
for i = 2, #ARGV, 2 do
    redis.call('HSET', KEYS[1], ARGV[i], ARGV[i + 1])
end
return 1
"""

# Delete the hash only if ARGV[1] still holds ARGV[2]; a rewrite in between
# keeps the document.
DELETE_IF_MATCHES_SCRIPT = """
if redis.call('HGET', KEYS[1], ARGV[1]) == ARGV[2] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""

_GLOB_SPECIAL = "\\*?[]"

SCAN_BATCH_SIZE = 100


def _escape_glob(value: str) -> str:
    """Escape Redis glob metacharacters in a literal key prefix."""
    return "".join(f"\\{char}" if char in _GLOB_SPECIAL else char for char in value)


def _decode_hash(raw: Dict) -> Document:
    """Normalize HGETALL output to ``{str: bytes}``."""
    document: Document = {}
    for field_name, value in raw.items():
        if isinstance(field_name, bytes):
            field_name = field_name.decode("utf-8")
        if isinstance(value, str):
            value = value.encode("utf-8")
        document[field_name] = value
    return document


def _update_args(fields: DocumentFields, only_if_greater: Optional[str]) -> List:
    if only_if_greater is not None and only_if_greater not in fields:
        raise ValueError(f"Guard field {only_if_greater!r} is not being updated")
    flat: List = [only_if_greater or ""]
    for field_name, value in fields.items():
        flat.extend((field_name, value))
    return flat


class _RedisCollectionBase:
    """Key layout shared by the blocking and async collections."""

    def __init__(self, database: str, collection: str):
        if not database or not collection:
            raise ValueError("Database and collection names cannot be empty")
        self._database = database
        self._collection = collection
        self._prefix = f"{database}:{collection}:"

    @property
    def name(self) -> str:
        return self._collection

    @property
    def database(self) -> str:
        return self._database

    @property
    def key_prefix(self) -> str:
        return self._prefix

    def make_key(self, document_id: str) -> str:
        """Redis key holding the document ``document_id``."""
        if not document_id:
            raise ValueError("Document id cannot be empty")
        return f"{self._prefix}{document_id}"

    def extract_id(self, key) -> str:
        if isinstance(key, bytes):
            key = key.decode("utf-8")
        return key[len(self._prefix) :]

    @property
    def match_pattern(self) -> str:
        return f"{_escape_glob(self._prefix)}*"

    @staticmethod
    def _check_document(document: DocumentFields) -> None:
        if not document:
            raise ValueError("Document must contain at least one field")


class RedisDocumentCollection(_RedisCollectionBase, DocumentCollection):
    """Blocking document collection over a ``redis.Redis`` client."""

    def __init__(self, client: Redis, database: str, collection: str):
        super().__init__(database, collection)
        self._client = client
        self._update_script = client.register_script(UPDATE_IF_EXISTS_SCRIPT)
        self._delete_script = client.register_script(DELETE_IF_MATCHES_SCRIPT)

    def find_by_id(self, document_id: str) -> Optional[Document]:
        raw = self._client.hgetall(self.make_key(document_id))
        if not raw:
            return None
        return _decode_hash(raw)

    def upsert(self, document_id: str, document: DocumentFields) -> None:
        self._check_document(document)
        key = self.make_key(document_id)
        with self._client.pipeline(transaction=True) as pipe:
            pipe.delete(key)
            pipe.hset(key, mapping=dict(document))
            pipe.execute()

    def delete_by_id(self, document_id: str) -> bool:
        return bool(self._client.delete(self.make_key(document_id)))

    def delete_if_matches(
        self, document_id: str, field: str, expected: Union[bytes, str]
    ) -> bool:
        result = self._delete_script(
            keys=[self.make_key(document_id)], args=[field, expected]
        )
        return bool(result)

    def update_if_exists(
        self,
        document_id: str,
        fields: DocumentFields,
        only_if_greater: Optional[str] = None,
    ) -> bool:
        self._check_document(fields)
        result = self._update_script(
            keys=[self.make_key(document_id)],
            args=_update_args(fields, only_if_greater),
        )
        return bool(result)

    def find_all(self) -> List[Tuple[str, Document]]:
        documents: List[Tuple[str, Document]] = []
        for key in self._client.scan_iter(
            match=self.match_pattern, count=SCAN_BATCH_SIZE
        ):
            raw = self._client.hgetall(key)
            # Deleted between SCAN and HGETALL
            if not raw:
                continue
            documents.append((self.extract_id(key), _decode_hash(raw)))
        return documents


class AsyncRedisDocumentCollection(_RedisCollectionBase, AsyncDocumentCollection):
    """Async document collection over a ``redis.asyncio.Redis`` client."""

    def __init__(self, client: AsyncRedis, database: str, collection: str):
        super().__init__(database, collection)
        self._client = client
        self._update_script = client.register_script(UPDATE_IF_EXISTS_SCRIPT)
        self._delete_script = client.register_script(DELETE_IF_MATCHES_SCRIPT)

    async def find_by_id(self, document_id: str) -> Optional[Document]:
        raw = await self._client.hgetall(self.make_key(document_id))
        if not raw:
            return None
        return _decode_hash(raw)

    async def upsert(self, document_id: str, document: DocumentFields) -> None:
        self._check_document(document)
        key = self.make_key(document_id)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.delete(key)
            pipe.hset(key, mapping=dict(document))
            await pipe.execute()

    async def delete_by_id(self, document_id: str) -> bool:
        return bool(await self._client.delete(self.make_key(document_id)))

    async def delete_if_matches(
        self, document_id: str, field: str, expected: Union[bytes, str]
    ) -> bool:
        result = await self._delete_script(
            keys=[self.make_key(document_id)], args=[field, expected]
        )
        return bool(result)

    async def update_if_exists(
        self,
        document_id: str,
        fields: DocumentFields,
        only_if_greater: Optional[str] = None,
    ) -> bool:
        self._check_document(fields)
        result = await self._update_script(
            keys=[self.make_key(document_id)],
            args=_update_args(fields, only_if_greater),
        )
        return bool(result)

    async def find_all(self) -> List[Tuple[str, Document]]:
        documents: List[Tuple[str, Document]] = []
        async for key in self._client.scan_iter(
            match=self.match_pattern, count=SCAN_BATCH_SIZE
        ):
            raw = await self._client.hgetall(key)
            if not raw:
                continue
            documents.append((self.extract_id(key), _decode_hash(raw)))
        return documents
