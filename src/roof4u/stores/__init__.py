"""
Record Stores

Store implementations for the remote record server.
Supports HTTP (json-server compatible) and In-memory (development).
"""

from roof4u.core.config import get_api_url, get_request_timeout, get_store_type
from roof4u.stores.base import (
    NotFoundError,
    RecordStore,
    StoreError,
    TransportError,
)
from roof4u.stores.http import HttpRecordStore
from roof4u.stores.memory import InMemoryRecordStore


def get_store(store_type: str | None = None) -> RecordStore:
    """
    Get the configured record store.

    Uses ROOF4U_STORE env var if store_type not specified.
    """
    store_type = store_type or get_store_type()

    if store_type == "memory":
        return InMemoryRecordStore()
    return HttpRecordStore(get_api_url(), timeout=get_request_timeout())


__all__ = [
    "HttpRecordStore",
    "InMemoryRecordStore",
    "NotFoundError",
    "RecordStore",
    "StoreError",
    "TransportError",
    "get_store",
]
