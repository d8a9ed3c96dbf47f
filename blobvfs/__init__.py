"""
blobvfs - virtual files stored as whole records in a database blob store.

Main API:
    from blobvfs import SQLBlobStore, VFSConfig, VirtualFilesystem

    # Open or create a store
    store = SQLBlobStore.open("sqlite:///files.db")
    fs = VirtualFilesystem(store, VFSConfig(enabled_paths=["scorm"]))

    # Write, then read back
    with fs.open("blobvfs://scorm/course1/index.html", "w") as f:
        f.write(b"<html></html>")
    data = fs.read_bytes("blobvfs://scorm/course1/index.html")

    # List a directory
    fs.listdir("blobvfs://scorm/course1")    # ['index.html']

    # Always close when done
    store.close()
"""

from .config import VFSConfig
from .store import CachingBlobStore, MemoryBlobStore, SQLBlobStore
from .upload import UploadInterceptor
from .vfs import VirtualFilesystem

__version__ = "0.1.0"
__all__ = [
    "VFSConfig",
    "VirtualFilesystem",
    "SQLBlobStore",
    "MemoryBlobStore",
    "CachingBlobStore",
    "UploadInterceptor",
]
