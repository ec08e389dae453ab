"""
Repository Cache

In-memory mirror of the record server, one ordered list per collection.
Every mutation goes through the store first; the cache only changes after
the store call succeeded.
"""

import logging
from collections.abc import Callable, Iterable

from roof4u.contracts.records import Record, RecordId
from roof4u.stores.base import NotFoundError, RecordStore, StoreError

logger = logging.getLogger(__name__)

Predicate = Callable[[Record], bool]


def _key(record_id: RecordId) -> str:
    return str(record_id)


class RepositoryCache:
    """
    Cache of remote collections.

    Keeps, per collection:
    - the records in server order (what callers see)
    - an id -> record index for constant-time lookups

    Both are replaced or updated together; they never disagree.
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self._records: dict[str, list[Record]] = {}
        self._index: dict[str, dict[str, Record]] = {}

    # =========================================================================
    # Reads
    # =========================================================================

    @property
    def collections(self) -> list[str]:
        """Names of the collections loaded so far."""
        return list(self._records)

    def records(self, collection: str) -> list[Record]:
        """All cached records of a collection, in server order."""
        return list(self._records.get(collection, []))

    def count(self, collection: str) -> int:
        return len(self._records.get(collection, []))

    def find(self, collection: str, predicate: Predicate | None = None) -> list[Record]:
        """Cached records matching a predicate (all records if none given)."""
        records = self._records.get(collection, [])
        if predicate is None:
            return list(records)
        return [record for record in records if predicate(record)]

    def find_by_id(self, collection: str, record_id: RecordId | None) -> Record | None:
        """Cached record with the given id, or None."""
        if record_id is None:
            return None
        return self._index.get(collection, {}).get(_key(record_id))

    def require(self, collection: str, record_id: RecordId) -> Record:
        """
        Cached record with the given id.

        Raises:
            NotFoundError: if the id is not cached
        """
        record = self.find_by_id(collection, record_id)
        if record is None:
            raise NotFoundError(collection, record_id)
        return record

    # =========================================================================
    # Loading
    # =========================================================================

    def _load(self, collection: str, records: list[Record]) -> None:
        self._records[collection] = list(records)
        self._index[collection] = {
            _key(record["id"]): record for record in records if record.get("id") is not None
        }

    async def refresh(self, collection: str) -> list[Record]:
        """
        Reload a collection from the store, replacing the cached list wholesale.

        Read failures are logged and degrade to an empty collection.

        Returns:
            The records now cached
        """
        try:
            records = await self.store.list(collection)
        except StoreError as e:
            logger.error(
                f"Error fetching {collection}: {e}",
                extra={"collection": collection, "code": e.code},
            )
            self._load(collection, [])
            return []

        self._load(collection, records)
        logger.debug(f"Refreshed {collection}", extra={"count": len(records)})
        return self.records(collection)

    async def refresh_all(self, collections: Iterable[str]) -> None:
        """Refresh several collections, one after the other."""
        for collection in collections:
            await self.refresh(collection)

    # =========================================================================
    # Writes
    # =========================================================================

    async def add(self, collection: str, record: Record) -> Record:
        """
        Create a record remotely, then append the stored version.

        Raises:
            StoreError: the create failed; the cache is unchanged
        """
        created = await self.store.create(collection, record)

        self._records.setdefault(collection, []).append(created)
        if created.get("id") is not None:
            self._index.setdefault(collection, {})[_key(created["id"])] = created
        return created

    async def update(self, collection: str, record_id: RecordId, record: Record) -> Record:
        """
        Replace a record remotely, then overwrite the cached entry in place.

        A record missing from the cache is appended so the cache keeps
        mirroring the store.

        Raises:
            StoreError: the replace failed; the cache is unchanged
        """
        updated = await self.store.replace(collection, record_id, record)

        records = self._records.setdefault(collection, [])
        index = self._index.setdefault(collection, {})
        key = _key(record_id)

        for position, cached in enumerate(records):
            if _key(cached.get("id")) == key:
                records[position] = updated
                break
        else:
            logger.warning(
                f"Updated {collection}/{record_id} was not cached; appending",
                extra={"collection": collection, "record_id": record_id},
            )
            records.append(updated)

        index.pop(key, None)
        index[_key(updated.get("id", record_id))] = updated
        return updated

    def _evict(self, collection: str, record_id: RecordId) -> None:
        key = _key(record_id)
        self._records[collection] = [
            record for record in self._records.get(collection, [])
            if _key(record.get("id")) != key
        ]
        self._index.get(collection, {}).pop(key, None)

    async def remove(self, collection: str, record_id: RecordId) -> Record:
        """
        Delete a record remotely, then drop it from the cache.

        Callers must have checked the integrity rules first.

        Raises:
            NotFoundError: the store does not know the id (it is evicted anyway)
            StoreError: the delete failed; the cache is unchanged
        """
        try:
            removed = await self.store.delete(collection, record_id)
        except NotFoundError:
            self._evict(collection, record_id)
            raise

        self._evict(collection, record_id)
        return removed
