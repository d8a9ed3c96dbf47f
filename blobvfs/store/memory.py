"""MemoryBlobStore: dict-based blob storage for development and testing."""

import itertools
import logging
from dataclasses import replace as dc_replace
from typing import Dict, List, Optional, Tuple

from .base import VirtualFileRecord, build_metadata, utc_now

logger = logging.getLogger(__name__)


class MemoryBlobStore:
    """In-memory blob store with the same semantics as SQLBlobStore."""

    def __init__(self):
        self._records: Dict[Tuple[str, str], VirtualFileRecord] = {}
        self._ids = itertools.count(1)

    def get(self, namespace: str, path: str) -> Optional[VirtualFileRecord]:
        return self._records.get((namespace, path))

    def put(self, namespace: str, path: str, data: bytes,
            mime_type: Optional[str] = None) -> VirtualFileRecord:
        data = bytes(data)
        now = utc_now()
        existing = self._records.get((namespace, path))
        if existing is not None:
            record = dc_replace(
                existing,
                content=data,
                mime_type=mime_type,
                updated_at=now,
                metadata=build_metadata(path, data),
            )
        else:
            record = VirtualFileRecord(
                id=next(self._ids),
                namespace=namespace,
                virtual_path=path,
                content=data,
                mime_type=mime_type,
                created_at=now,
                updated_at=now,
                metadata=build_metadata(path, data),
            )
        self._records[(namespace, path)] = record
        logger.debug(f"Stored {namespace}/{path} ({len(data)} bytes)")
        return record

    def replace(self, namespace: str, path: str, data: bytes) -> bool:
        existing = self._records.get((namespace, path))
        if existing is None:
            return False
        data = bytes(data)
        self._records[(namespace, path)] = dc_replace(
            existing,
            content=data,
            updated_at=utc_now(),
            metadata=build_metadata(path, data),
        )
        return True

    def delete(self, namespace: str, path: str) -> bool:
        return self._records.pop((namespace, path), None) is not None

    def list(self, namespace: str, prefix: str = "") -> List[VirtualFileRecord]:
        # Plain string prefix, like SQL LIKE 'prefix%'; "c1" also matches "c10/x"
        records = [
            record for (ns, vpath), record in self._records.items()
            if ns == namespace and vpath.startswith(prefix)
        ]
        return sorted(records, key=lambda r: r.virtual_path)

    def exists(self, namespace: str, path: str) -> bool:
        return (namespace, path) in self._records

    def usage(self, namespace: str) -> int:
        return sum(r.size for (ns, _), r in self._records.items() if ns == namespace)

    def __len__(self) -> int:
        return len(self._records)
