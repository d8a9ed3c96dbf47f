"""
CachingBlobStore: read-through LRU cache with a per-entry TTL.

Only get() results are cached, and only hits: a miss always goes to the
wrapped store so that a record written by another process becomes visible
immediately. Writes through this wrapper invalidate the affected key, but
writes made directly against the wrapped store (or by other processes) can
be served stale for up to ``ttl_seconds``.
"""

import logging
import time
from collections import OrderedDict
from typing import Callable, List, Optional, Tuple

from .base import BlobStore, VirtualFileRecord

logger = logging.getLogger(__name__)

Key = Tuple[str, str]


class TTLCache:
    """
    Bounded mapping whose entries expire ``ttl_seconds`` after insertion.

    The least recently used entry is evicted once ``max_entries`` is reached.
    """

    def __init__(self, ttl_seconds: float, max_entries: int = 256,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._backing: "OrderedDict[Key, Tuple[VirtualFileRecord, float]]" = OrderedDict()

    def get(self, key: Key) -> Optional[VirtualFileRecord]:
        try:
            value, inserted = self._backing[key]
        except KeyError:
            return None
        if self._clock() - inserted > self.ttl_seconds:
            del self._backing[key]
            return None
        self._backing.move_to_end(key)
        return value

    def set(self, key: Key, value: VirtualFileRecord) -> None:
        self._backing[key] = (value, self._clock())
        self._backing.move_to_end(key)
        while len(self._backing) > self.max_entries:
            self._backing.popitem(last=False)

    def discard(self, key: Key) -> None:
        self._backing.pop(key, None)

    def clear(self) -> None:
        self._backing.clear()

    def __contains__(self, key: Key) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._backing)


class CachingBlobStore:
    """BlobStore wrapper that serves repeated reads from a TTLCache."""

    def __init__(self, store: BlobStore, ttl_seconds: float = 3600, max_entries: int = 256,
                 clock: Callable[[], float] = time.monotonic):
        self.store = store
        self.cache = TTLCache(ttl_seconds, max_entries=max_entries, clock=clock)
        self.hits = 0
        self.misses = 0

    def get(self, namespace: str, path: str) -> Optional[VirtualFileRecord]:
        key = (namespace, path)
        record = self.cache.get(key)
        if record is not None:
            self.hits += 1
            logger.debug(f"Cache hit for {namespace}/{path}")
            return record
        self.misses += 1
        record = self.store.get(namespace, path)
        if record is not None:
            self.cache.set(key, record)
        return record

    def put(self, namespace: str, path: str, data: bytes,
            mime_type: Optional[str] = None) -> VirtualFileRecord:
        self.cache.discard((namespace, path))
        record = self.store.put(namespace, path, data, mime_type)
        self.cache.set((namespace, path), record)
        return record

    def replace(self, namespace: str, path: str, data: bytes) -> bool:
        self.cache.discard((namespace, path))
        return self.store.replace(namespace, path, data)

    def delete(self, namespace: str, path: str) -> bool:
        self.cache.discard((namespace, path))
        return self.store.delete(namespace, path)

    def list(self, namespace: str, prefix: str = "") -> List[VirtualFileRecord]:
        return self.store.list(namespace, prefix)

    def exists(self, namespace: str, path: str) -> bool:
        if (namespace, path) in self.cache:
            return True
        return self.store.exists(namespace, path)

    def usage(self, namespace: str) -> int:
        return self.store.usage(namespace)

    def clear(self) -> None:
        self.cache.clear()
