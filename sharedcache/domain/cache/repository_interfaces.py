"""
Document Collection Interfaces

Abstract contracts for the shared document store. A collection holds
documents keyed by id; a document is a flat mapping of field name to bytes.
Every operation exists in a blocking and an async flavour.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Mapping, Optional, Tuple, Union

Document = Dict[str, bytes]
DocumentFields = Mapping[str, Union[bytes, str]]


class DocumentCollection(ABC):
    """
    Blocking document collection.

    Single-document operations are atomic; sequences of them are not.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Collection name."""
        pass

    @abstractmethod
    def find_by_id(self, document_id: str) -> Optional[Document]:
        """Return the document stored under ``document_id`` or None."""
        pass

    @abstractmethod
    def upsert(self, document_id: str, document: DocumentFields) -> None:
        """Replace the document under ``document_id``, inserting if absent."""
        pass

    @abstractmethod
    def delete_by_id(self, document_id: str) -> bool:
        """Delete the document. Returns True if a document was removed."""
        pass

    @abstractmethod
    def delete_if_matches(
        self, document_id: str, field: str, expected: Union[bytes, str]
    ) -> bool:
        """Atomically delete the document if ``field`` still holds ``expected``.

        Returns False, without deleting, if the document is absent or the
        field was changed in the meantime.
        """
        pass

    @abstractmethod
    def update_if_exists(
        self,
        document_id: str,
        fields: DocumentFields,
        only_if_greater: Optional[str] = None,
    ) -> bool:
        """Atomically overwrite ``fields`` of an existing document.

        Returns False, without writing anything, if the document is absent.
        When ``only_if_greater`` names one of ``fields``, nothing is written
        unless its new value sorts strictly after the stored one.
        """
        pass

    @abstractmethod
    def find_all(self) -> List[Tuple[str, Document]]:
        """Return every ``(document_id, document)`` pair of the collection."""
        pass


class AsyncDocumentCollection(ABC):
    """
    Async document collection.

    Mirrors :class:`DocumentCollection`. Cancelling the awaiting task aborts
    the in-flight store call.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Collection name."""
        pass

    @abstractmethod
    async def find_by_id(self, document_id: str) -> Optional[Document]:
        pass

    @abstractmethod
    async def upsert(self, document_id: str, document: DocumentFields) -> None:
        pass

    @abstractmethod
    async def delete_by_id(self, document_id: str) -> bool:
        pass

    @abstractmethod
    async def delete_if_matches(
        self, document_id: str, field: str, expected: Union[bytes, str]
    ) -> bool:
        pass

    @abstractmethod
    async def update_if_exists(
        self,
        document_id: str,
        fields: DocumentFields,
        only_if_greater: Optional[str] = None,
    ) -> bool:
        pass

    @abstractmethod
    async def find_all(self) -> List[Tuple[str, Document]]:
        pass
