"""
In-Memory Record Store

Development store that keeps collections in process memory and logs all
operations. Mirrors the record server's behaviour closely enough for local
development and testing:

- Assigns ids on create (next integer after the highest numeric id)
- PUT overwrites the whole record
- DELETE returns the removed record
- Can be configured to fail specific operations
"""

import copy
import logging
from typing import Any

from roof4u.contracts.records import Record, RecordId, same_id
from roof4u.stores.base import NotFoundError, RecordStore, TransportError

logger = logging.getLogger(__name__)

ANY_COLLECTION = "*"


class InMemoryRecordStore(RecordStore):
    """
    In-memory store for development and testing.

    - Logs every operation
    - Keeps a call journal in `calls` as (operation, collection, record_id)
    - Returns deep copies so callers never share state with the store
    """

    def __init__(self, seed: dict[str, list[Record]] | None = None):
        self.collections: dict[str, list[Record]] = {
            name: copy.deepcopy(records) for name, records in (seed or {}).items()
        }
        self.calls: list[tuple[str, str, RecordId | None]] = []
        self._failures: set[tuple[str, str]] = set()

    def fail_on(self, operation: str, collection: str = ANY_COLLECTION) -> None:
        """Make every `operation` call on `collection` raise TransportError."""
        self._failures.add((operation, collection))

    def clear_failures(self) -> None:
        """Stop simulating failures."""
        self._failures.clear()

    def calls_for(self, operation: str, collection: str | None = None) -> list[tuple[str, str, RecordId | None]]:
        """Journal entries for an operation, optionally limited to a collection."""
        return [
            call for call in self.calls
            if call[0] == operation and (collection is None or call[1] == collection)
        ]

    def _record_call(self, operation: str, collection: str, record_id: RecordId | None = None) -> None:
        self.calls.append((operation, collection, record_id))

        if (operation, collection) in self._failures or (operation, ANY_COLLECTION) in self._failures:
            logger.warning(
                f"[MEMORY] Simulated {operation} failure on {collection}",
                extra={"operation": operation, "collection": collection},
            )
            raise TransportError(
                message=f"Simulated {operation} failure on {collection}",
                code="SIMULATED_FAILURE",
                retryable=True,
            )

    def _index_of(self, collection: str, record_id: RecordId) -> int:
        for index, record in enumerate(self.collections.get(collection, [])):
            if same_id(record.get("id"), record_id):
                return index
        raise NotFoundError(collection, record_id)

    def _next_id(self, collection: str) -> int:
        numeric_ids = []
        for record in self.collections.get(collection, []):
            try:
                numeric_ids.append(int(record.get("id")))
            except (TypeError, ValueError):
                continue
        return max(numeric_ids, default=0) + 1

    async def list(
        self,
        collection: str,
        params: dict[str, Any] | None = None,
    ) -> list[Record]:
        """List records, applying equality filters compared as strings."""
        self._record_call("list", collection)

        records = self.collections.get(collection, [])
        if params:
            records = [
                record for record in records
                if all(str(record.get(key)) == str(value) for key, value in params.items())
            ]

        logger.debug(f"[MEMORY] Listed {collection}", extra={"count": len(records)})
        return copy.deepcopy(records)

    async def get(self, collection: str, record_id: RecordId) -> Record:
        """Get a single record."""
        self._record_call("get", collection, record_id)
        index = self._index_of(collection, record_id)
        return copy.deepcopy(self.collections[collection][index])

    async def create(self, collection: str, record: Record) -> Record:
        """Store a record, assigning an id when none is given."""
        self._record_call("create", collection, record.get("id"))

        stored = copy.deepcopy(record)
        if stored.get("id") is None:
            stored["id"] = self._next_id(collection)
        self.collections.setdefault(collection, []).append(stored)

        logger.info(
            f"[MEMORY] Created {collection}/{stored['id']}",
            extra={"collection": collection, "record_id": stored["id"]},
        )
        return copy.deepcopy(stored)

    async def replace(self, collection: str, record_id: RecordId, record: Record) -> Record:
        """Overwrite a record, keeping its stored id."""
        self._record_call("replace", collection, record_id)

        index = self._index_of(collection, record_id)
        stored = copy.deepcopy(record)
        stored["id"] = self.collections[collection][index]["id"]
        self.collections[collection][index] = stored

        logger.info(
            f"[MEMORY] Replaced {collection}/{record_id}",
            extra={"collection": collection, "record_id": record_id},
        )
        return copy.deepcopy(stored)

    async def delete(self, collection: str, record_id: RecordId) -> Record:
        """Remove a record and return it."""
        self._record_call("delete", collection, record_id)

        index = self._index_of(collection, record_id)
        removed = self.collections[collection].pop(index)

        logger.info(
            f"[MEMORY] Deleted {collection}/{record_id}",
            extra={"collection": collection, "record_id": record_id},
        )
        return removed
