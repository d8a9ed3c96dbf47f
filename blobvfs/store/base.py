"""
Blob store port.

The virtual filesystem core talks to persistence only through the
``BlobStore`` protocol defined here. Records are keyed by
``(namespace, virtual_path)`` and are always read and written whole.
"""

import posixpath
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from ..utils import build_metadata, content_hash, utc_now  # noqa: F401


@dataclass(frozen=True)
class VirtualFileRecord:
    """One stored virtual file, detached from any backend session."""

    id: int
    namespace: str
    virtual_path: str
    content: bytes
    mime_type: Optional[str]
    created_at: datetime
    updated_at: datetime
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def content_hash(self) -> str:
        return self.metadata.get("content_hash") or content_hash(self.content)

    @property
    def name(self) -> str:
        """Base name of the virtual path."""
        return posixpath.basename(self.virtual_path)


@runtime_checkable
class BlobStore(Protocol):
    """Record-oriented persistence keyed by (namespace, virtual_path).

    Implementations must:
    - treat put() as an upsert: an existing key is fully replaced, never
      duplicated, and keeps its id and created_at
    - refresh updated_at, size and the content hash on every mutation
    - return list() results sorted by virtual_path
    - raise StoreIOError when the backend fails
    """

    def get(self, namespace: str, path: str) -> Optional[VirtualFileRecord]:
        """Fetch a record, or None when absent."""
        ...

    def put(self, namespace: str, path: str, data: bytes,
            mime_type: Optional[str] = None) -> VirtualFileRecord:
        """Insert or replace a record and return the stored version."""
        ...

    def replace(self, namespace: str, path: str, data: bytes) -> bool:
        """Replace the content of an existing record. False if absent."""
        ...

    def delete(self, namespace: str, path: str) -> bool:
        """Delete a record. True when something was removed."""
        ...

    def list(self, namespace: str, prefix: str = "") -> List[VirtualFileRecord]:
        """Records whose virtual_path starts with prefix, sorted by path."""
        ...

    def exists(self, namespace: str, path: str) -> bool:
        """Check whether a record exists."""
        ...

    def usage(self, namespace: str) -> int:
        """Total stored bytes for a namespace."""
        ...
