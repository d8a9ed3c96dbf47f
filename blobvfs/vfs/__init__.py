"""Virtual File System backed by a record-oriented blob store.

File I/O against ``scheme://namespace/relative/path`` identifiers is
served from whole records in a BlobStore instead of a real filesystem.

Architecture:

    ```
    raw path ──> PathRouter.normalize / split ──> (namespace, relative)
                                                        │
                 VirtualFile.open(store, router, path, mode)
                                                        │
                 read / write / seek / tell / eof on an in-memory buffer
                                                        │
                 close() ──> BlobStore.put (upsert)
    ```

Components:

    - PathRouter: normalization, namespace extraction, substring routing
    - VirtualFile: stream handle state machine (open/read/write/seek/close)
    - DirectoryHandle: snapshot listing with readdir/rewinddir/closedir
    - VirtualFilesystem: facade wiring the three to an injected store

Usage Example:

    ```python
    from blobvfs.store import MemoryBlobStore
    from blobvfs.vfs import VirtualFilesystem

    fs = VirtualFilesystem(MemoryBlobStore())
    with fs.open("blobvfs://scorm/pkg/a.txt", "w") as f:
        f.write(b"ABCDE")
        f.seek(1)
        f.write(b"xy")

    fs.read_bytes("blobvfs://scorm/pkg/a.txt")   # b"AxyDE"
    ```
"""

from blobvfs.vfs.router import PathRouter
from blobvfs.vfs.stream import OpenMode, VirtualFile, VirtualStat, Whence
from blobvfs.vfs.directory import DirectoryHandle
from blobvfs.vfs.filesystem import VirtualFilesystem

__all__ = [
    # Main entry point
    "VirtualFilesystem",
    # Core classes
    "VirtualFile",
    "VirtualStat",
    "OpenMode",
    "Whence",
    "DirectoryHandle",
    # Path routing
    "PathRouter",
]
