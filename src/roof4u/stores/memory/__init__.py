"""In-memory record store for development and tests."""

from roof4u.stores.memory.client import InMemoryRecordStore

__all__ = [
    "InMemoryRecordStore",
]
