"""Abstract storage interfaces."""

from abc import ABC, abstractmethod
from typing import Any, Optional

# Import entities directly to avoid circular import through domain/__init__.py
from farmsync.domain.entities import Collection, Record


class KeyValueStorage(ABC):
    """Synchronous persistent key-value storage holding serialized blobs."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the storage backend."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Release the storage backend."""
        pass

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None if absent."""
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove key if present."""
        pass


class RemoteStore(ABC):
    """Boundary to the remote document store.

    Implementations translate timestamps between domain datetimes and the
    backend's native encoding. Errors are propagated as raised by the backend;
    interpreting them is left to the error classifier.
    """

    @abstractmethod
    async def create(self, collection: Collection, record: Record) -> str:
        """Insert a document for record. Returns the remote-assigned id."""
        pass

    @abstractmethod
    async def update(self, collection: Collection, document_id: str, patch: dict[str, Any]) -> None:
        """Patch fields of an existing document.

        Raises:
            RemoteNotFoundError: If the document does not exist
        """
        pass

    @abstractmethod
    async def delete(self, collection: Collection, document_id: str) -> None:
        """Remove a document.

        Raises:
            RemoteNotFoundError: If the document does not exist
        """
        pass

    @abstractmethod
    async def query(
        self,
        collection: Collection,
        owner_id: str,
        filters: Optional[dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> list[Record]:
        """List documents owned by owner_id.

        Args:
            collection: Collection to read
            owner_id: Owning user id
            filters: Optional field equality filters
            limit: Optional maximum number of documents
        """
        pass
