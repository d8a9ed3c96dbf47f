"""Virtual file handles.

A VirtualFile is the in-memory state of one open virtual file. The whole
record is materialized into a buffer when the handle is opened, every
read/write/seek works on that buffer, and close() is the only point at
which content reaches the blob store.

Lifecycle:

    open ──> Reading | Writing | Appending ──> closed

There is no way back from closed. Each open/close pair is one whole-record
transaction against the store; concurrent writers to the same key race and
the last close wins.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Union

from blobvfs.errors import (
    HandleClosedError,
    InvalidPathError,
    NotFoundError,
    ReadOnlyHandleError,
    SeekOutOfRangeError,
)
from blobvfs.store.base import BlobStore, VirtualFileRecord
from blobvfs.utils import guess_mime_type, to_timestamp
from blobvfs.vfs.router import PathRouter

logger = logging.getLogger(__name__)


class OpenMode(Enum):
    """Mode a virtual file is opened in."""
    READ = "r"
    WRITE = "w"
    APPEND = "a"

    @classmethod
    def parse(cls, mode: Union['OpenMode', str]) -> 'OpenMode':
        """Parse an fopen-style mode string.

        'r' wins over 'w', which wins over 'a'; 'b', 't' and '+' are
        accepted and ignored.

        Raises:
            ValueError: If the mode names none of r/w/a
        """
        if isinstance(mode, cls):
            return mode
        for candidate in (cls.READ, cls.WRITE, cls.APPEND):
            if candidate.value in mode:
                return candidate
        raise ValueError(f"invalid mode: {mode!r}")


class Whence(IntEnum):
    """Reference point for seek(), numerically equal to os.SEEK_*."""
    SET = os.SEEK_SET
    CUR = os.SEEK_CUR
    END = os.SEEK_END


@dataclass(frozen=True)
class VirtualStat:
    """stat()-like view of a stored record. Times are epoch seconds."""
    ino: int
    size: int
    atime: int
    mtime: int
    ctime: int
    mode: int = 0o100777
    nlink: int = 0
    uid: int = 0
    gid: int = 0
    mime_type: Optional[str] = None

    @classmethod
    def from_record(cls, record: VirtualFileRecord) -> 'VirtualStat':
        mtime = to_timestamp(record.updated_at)
        return cls(
            ino=record.id,
            size=record.size,
            atime=mtime,
            mtime=mtime,
            ctime=to_timestamp(record.created_at),
            mime_type=record.mime_type,
        )


class VirtualFile:
    """An open virtual file.

    Usage:
        with VirtualFile.open(store, router, "blobvfs://scorm/a.txt", "w") as f:
            f.write(b"hello")

        f = VirtualFile.open(store, router, "blobvfs://scorm/a.txt")
        f.seek(1)
        data = f.read(3)    # b"ell"
        f.close()

    Attributes:
        path: Relative path within the namespace
        namespace: Owning namespace
        mode: OpenMode of this handle
    """

    def __init__(
        self,
        store: BlobStore,
        namespace: str,
        path: str,
        mode: OpenMode,
        data: bytes = b"",
        existed: bool = False,
    ):
        self._store = store
        self.namespace = namespace
        self.path = path
        self.mode = mode
        self._buffer = bytearray(data)
        self._position = len(self._buffer) if mode is OpenMode.APPEND else 0
        self._dirty = False
        self._existed = existed
        self._closed = False

    @classmethod
    def open(
        cls,
        store: BlobStore,
        router: PathRouter,
        path: str,
        mode: Union[OpenMode, str] = OpenMode.READ,
    ) -> 'VirtualFile':
        """Open a virtual file.

        Args:
            store: Blob store holding the record
            router: Router used to normalize the path
            path: Virtual identifier, e.g. "blobvfs://scorm/pkg/index.html"
            mode: OpenMode or fopen-style string

        Returns:
            Open VirtualFile

        Raises:
            InvalidPathError: If the path lacks a namespace or relative part
            NotFoundError: If mode is READ and no record exists
            ValueError: If the mode cannot be parsed
        """
        mode = OpenMode.parse(mode)
        namespace, relative = router.split(path)
        if not relative:
            raise InvalidPathError(path, "missing file path after namespace")

        if mode is OpenMode.WRITE:
            return cls(store, namespace, relative, mode)

        record = store.get(namespace, relative)
        if record is None:
            if mode is OpenMode.READ:
                raise NotFoundError(namespace, relative)
            return cls(store, namespace, relative, mode)
        return cls(store, namespace, relative, mode, record.content, existed=True)

    def _check_open(self) -> None:
        if self._closed:
            raise HandleClosedError(f"I/O operation on closed virtual file {self.namespace}/{self.path}")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def size(self) -> int:
        return len(self._buffer)

    @property
    def mime_type(self) -> str:
        return guess_mime_type(self.path)

    def read(self, n: Optional[int] = -1) -> bytes:
        """Read up to n bytes from the current position.

        Returns b"" at or past end of file. A negative or None count reads
        everything that remains.
        """
        self._check_open()
        if n is None or n < 0:
            end = len(self._buffer)
        else:
            end = self._position + n
        chunk = bytes(self._buffer[self._position:end])
        self._position += len(chunk)
        return chunk

    def write(self, data: Union[bytes, bytearray, memoryview, str]) -> int:
        """Overwrite bytes starting at the current position.

        Bytes past the written range are preserved; writing past the end
        extends the buffer. This is not an insert.

        Returns:
            Number of bytes written (always len(data))
        """
        self._check_open()
        if self.mode is OpenMode.READ:
            raise ReadOnlyHandleError(f"{self.namespace}/{self.path} was opened for reading")
        if isinstance(data, str):
            data = data.encode("utf-8")
        data = bytes(data)
        start = self._position
        self._buffer[start:start + len(data)] = data
        self._position = start + len(data)
        self._dirty = True
        return len(data)

    def seek(self, offset: int, whence: Union[Whence, int] = Whence.SET) -> int:
        """Move the cursor.

        SET accepts 0 <= offset < size only, so seeking to exactly the end
        with SET fails while END with offset 0 lands there. CUR only moves
        forward. END accepts any target >= 0.

        Returns:
            New position

        Raises:
            SeekOutOfRangeError: If the target is out of bounds (position unchanged)
            ValueError: If whence is unknown
        """
        self._check_open()
        whence = Whence(whence)
        size = len(self._buffer)

        if whence is Whence.SET:
            valid = 0 <= offset < size
            target = offset
        elif whence is Whence.CUR:
            valid = offset >= 0
            target = self._position + offset
        else:
            target = size + offset
            valid = target >= 0

        if not valid:
            raise SeekOutOfRangeError(offset, int(whence), size)
        self._position = target
        return target

    def tell(self) -> int:
        self._check_open()
        return self._position

    def eof(self) -> bool:
        self._check_open()
        return self._position >= len(self._buffer)

    def getvalue(self) -> bytes:
        """Current buffer contents."""
        self._check_open()
        return bytes(self._buffer)

    def stat(self) -> VirtualStat:
        """Stat the stored record backing this handle.

        Raises:
            NotFoundError: If nothing has been stored for this path yet
        """
        record = self._store.get(self.namespace, self.path)
        if record is None:
            raise NotFoundError(self.namespace, self.path)
        return VirtualStat.from_record(record)

    def _needs_persist(self) -> bool:
        if self.mode is OpenMode.WRITE:
            return True
        if self.mode is OpenMode.APPEND:
            return self._dirty or not self._existed
        return False

    def close(self) -> None:
        """Persist (for write/append handles) and close.

        Raises:
            StoreIOError: If the store rejects the write; the handle stays
                open so the caller can retry
        """
        if self._closed:
            return
        if self._needs_persist():
            self._store.put(self.namespace, self.path, bytes(self._buffer), self.mime_type)
            logger.info(f"Persisted {self.namespace}/{self.path} ({len(self._buffer)} bytes)")
        self._closed = True

    def discard(self) -> None:
        """Close without persisting."""
        self._closed = True

    def __enter__(self) -> 'VirtualFile':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            logger.debug(f"Discarding {self.namespace}/{self.path} after {exc_type.__name__}")
            self.discard()

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"pos={self._position}"
        return f"VirtualFile('{self.namespace}/{self.path}', mode='{self.mode.value}', {state})"
