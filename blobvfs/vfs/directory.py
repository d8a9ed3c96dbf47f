"""Directory enumeration over stored records.

Directories are not stored; they are implied by path prefixes. A
DirectoryHandle is a point-in-time snapshot of the records found under a
namespace + prefix when it was opened, replayable with rewinddir().
"""

import posixpath
from typing import Iterator, List, Optional, Sequence

from blobvfs.store.base import VirtualFileRecord


class DirectoryHandle:
    """Open directory listing.

    Usage:
        with fs.opendir("blobvfs://grassblade/course1") as d:
            while (name := d.readdir()) is not None:
                print(name)
    """

    def __init__(self, namespace: str, prefix: str, entries: Sequence[VirtualFileRecord] = ()):
        self.namespace = namespace
        self.prefix = prefix
        self._entries: List[VirtualFileRecord] = list(entries)
        self._index = 0
        self._closed = False

    @property
    def entries(self) -> List[VirtualFileRecord]:
        """Snapshot records, sorted by virtual_path."""
        return list(self._entries)

    def readdir(self) -> Optional[str]:
        """Return the next entry's base name, or None when exhausted."""
        if self._closed or self._index >= len(self._entries):
            return None
        entry = self._entries[self._index]
        self._index += 1
        return posixpath.basename(entry.virtual_path)

    def rewinddir(self) -> bool:
        self._index = 0
        return True

    def closedir(self) -> bool:
        self._index = 0
        self._entries = []
        self._closed = True
        return True

    def __iter__(self) -> Iterator[str]:
        while True:
            name = self.readdir()
            if name is None:
                return
            yield name

    def __len__(self) -> int:
        return len(self._entries)

    def __enter__(self) -> 'DirectoryHandle':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.closedir()

    def __repr__(self) -> str:
        return f"DirectoryHandle('{self.namespace}/{self.prefix}', entries={len(self._entries)})"
