"""
Storage backends for habits and their daily records.

``RelationalBackend`` keeps them in SQL tables through the Django ORM,
``KeyValueBackend`` keeps them as JSON blobs in a Django cache.
"""

from .base import StorageBackend, reopen_once
from .keyvalue import KeyValueBackend
from .relational import RelationalBackend

__all__ = [
    "StorageBackend",
    "reopen_once",
    "KeyValueBackend",
    "RelationalBackend",
]
