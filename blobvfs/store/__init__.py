"""
Blob store port and implementations.

- BlobStore: protocol the virtual filesystem depends on
- MemoryBlobStore: dict-backed store for tests and ephemeral use
- SQLBlobStore: SQLAlchemy-backed store (SQLite by default)
- CachingBlobStore: read-through LRU/TTL wrapper for any store
"""

from .base import BlobStore, VirtualFileRecord, build_metadata, content_hash, utc_now
from .memory import MemoryBlobStore
from .sql import SQLBlobStore
from .cache import CachingBlobStore, TTLCache

__all__ = [
    "BlobStore",
    "VirtualFileRecord",
    "MemoryBlobStore",
    "SQLBlobStore",
    "CachingBlobStore",
    "TTLCache",
    "build_metadata",
    "content_hash",
    "utc_now",
]
