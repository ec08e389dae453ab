"""
Record Store Base

Abstract interface for the remote record server.
Implementations: HTTP (json-server compatible), In-memory (for development).
"""

from abc import ABC, abstractmethod
from typing import Any

from roof4u.contracts.records import Record, RecordId


class StoreError(Exception):
    """Error from a record store."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.retryable = retryable


class TransportError(StoreError):
    """The store could not be reached or answered with a non-success status."""


class NotFoundError(StoreError):
    """The requested id is absent from the collection."""

    def __init__(self, collection: str, record_id: RecordId, details: dict[str, Any] | None = None):
        super().__init__(
            f"{collection}/{record_id} not found",
            code="NOT_FOUND",
            details=details,
        )
        self.collection = collection
        self.record_id = record_id


class RecordStore(ABC):
    """
    Abstract interface for the remote record server.

    Records are addressed by collection name and id. Implementations must:
    - Return plain JSON-compatible dicts
    - Raise NotFoundError for unknown ids
    - Raise TransportError for every other failure, including timeouts
    """

    @abstractmethod
    async def list(
        self,
        collection: str,
        params: dict[str, Any] | None = None,
    ) -> list[Record]:
        """
        List records of a collection.

        Args:
            collection: Collection name (e.g., "properties")
            params: Optional equality filters (e.g., {"username": "admin"})

        Returns:
            Records in server order
        """
        ...

    @abstractmethod
    async def get(self, collection: str, record_id: RecordId) -> Record:
        """
        Get a single record.

        Raises:
            NotFoundError: if the id is absent
        """
        ...

    @abstractmethod
    async def create(self, collection: str, record: Record) -> Record:
        """
        Create a record.

        Returns:
            The stored record, including the server-assigned id
        """
        ...

    @abstractmethod
    async def replace(self, collection: str, record_id: RecordId, record: Record) -> Record:
        """
        Overwrite a record (full replace, not a patch).

        Returns:
            The stored record
        """
        ...

    @abstractmethod
    async def delete(self, collection: str, record_id: RecordId) -> Record:
        """
        Delete a record.

        Returns:
            The removed record (empty dict if the server does not echo it)
        """
        ...

    async def close(self) -> None:
        """Release any held resources."""
        return None
