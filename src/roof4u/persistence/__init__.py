"""
Roof4U Persistence

Client-side cache mirroring the remote record server.
"""

from roof4u.persistence.cache import RepositoryCache

__all__ = [
    "RepositoryCache",
]
