"""Main VirtualFilesystem class - entry point for virtual file access."""

import logging
from typing import List, Optional, Union

from blobvfs.config import VFSConfig
from blobvfs.errors import InvalidPathError, NotFoundError
from blobvfs.store.base import BlobStore
from blobvfs.store.cache import CachingBlobStore
from blobvfs.vfs.directory import DirectoryHandle
from blobvfs.vfs.router import PathRouter
from blobvfs.vfs.stream import OpenMode, VirtualFile, VirtualStat

logger = logging.getLogger(__name__)


class VirtualFilesystem:
    """Virtual File System over a blob store.

    Each operation runs the same explicit pipeline: normalize the path,
    route it to a namespace, then open/read/write against the store, and
    persist on close. The store is injected; nothing is process-global.

    Usage:
        >>> store = SQLBlobStore.open("sqlite:///vfs.db")
        >>> fs = VirtualFilesystem(store, VFSConfig(enabled_paths=["grassblade"]))
        >>>
        >>> with fs.open("blobvfs://grassblade/course/index.html", "w") as f:
        >>>     f.write(b"<html></html>")
        >>>
        >>> fs.stat("blobvfs://grassblade/course/index.html").size
        13
        >>> fs.listdir("blobvfs://grassblade/course")
        ['index.html']
    """

    def __init__(self, store: BlobStore, config: Optional[VFSConfig] = None):
        """Initialize the filesystem.

        Args:
            store: Blob store backing all files
            config: Configuration (defaults to VFSConfig())
        """
        self.config = config or VFSConfig()
        self.router = PathRouter(self.config.enabled_paths, scheme=self.config.scheme)

        cache = self.config.cache
        if cache.enabled and cache.ttl > 0:
            store = CachingBlobStore(store, ttl_seconds=cache.ttl, max_entries=cache.max_entries)
            logger.debug(f"Read cache enabled (ttl={cache.ttl}s, max_entries={cache.max_entries})")
        self.store = store

    def open(self, path: str, mode: Union[OpenMode, str] = OpenMode.READ) -> VirtualFile:
        """Open a virtual file (see VirtualFile.open)."""
        return VirtualFile.open(self.store, self.router, path, mode)

    def stat(self, path: str) -> VirtualStat:
        """Stat a virtual file.

        Raises:
            InvalidPathError: If the path has no namespace
            NotFoundError: If no record exists
        """
        namespace, relative = self.router.split(path)
        record = self.store.get(namespace, relative)
        if record is None:
            raise NotFoundError(namespace, relative)
        return VirtualStat.from_record(record)

    def exists(self, path: str) -> bool:
        try:
            namespace, relative = self.router.split(path)
        except InvalidPathError:
            return False
        return bool(relative) and self.store.exists(namespace, relative)

    def unlink(self, path: str) -> bool:
        """Delete a virtual file.

        Deleting a missing file is not an error; the store's result is
        returned (False when nothing was removed).
        """
        namespace, relative = self.router.split(path)
        deleted = self.store.delete(namespace, relative)
        logger.debug(f"unlink {namespace}/{relative}: {deleted}")
        return deleted

    def mkdir(self, path: str) -> bool:
        """Directories are implied by file paths; nothing to create."""
        return True

    def rmdir(self, path: str) -> bool:
        """Directories are implied by file paths; nothing to remove."""
        return True

    def opendir(self, path: str) -> DirectoryHandle:
        """Open a directory listing.

        Only namespaces listed in config.directory_namespaces can be
        enumerated; any other namespace yields an empty listing.

        The relative part is matched as a plain string prefix, not a
        directory boundary: "scorm/course1" also lists "course10/..." and
        "course1.bak".

        Raises:
            InvalidPathError: If the path has no namespace
        """
        namespace, relative = self.router.split(path)
        if namespace not in self.config.directory_namespaces:
            logger.debug(f"opendir on unrecognized namespace {namespace!r}")
            return DirectoryHandle(namespace, relative)
        return DirectoryHandle(namespace, relative, self.store.list(namespace, relative))

    def listdir(self, path: str) -> List[str]:
        """Base names of all entries under a directory."""
        with self.opendir(path) as handle:
            return list(handle)

    def read_bytes(self, path: str) -> bytes:
        with self.open(path, OpenMode.READ) as f:
            return f.read()

    def write_bytes(self, path: str, data: bytes) -> int:
        with self.open(path, OpenMode.WRITE) as f:
            return f.write(data)

    def usage(self, namespace: str) -> int:
        """Total stored bytes for a namespace."""
        return self.store.usage(self.router.extract_namespace(namespace))

    def rewrite(self, physical_path: str) -> str:
        """Map a routed physical path to its virtual identifier."""
        return self.router.rewrite(physical_path)
