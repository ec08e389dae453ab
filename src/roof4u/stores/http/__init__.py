"""HTTP record store (json-server compatible)."""

from roof4u.stores.http.client import HttpRecordStore

__all__ = [
    "HttpRecordStore",
]
