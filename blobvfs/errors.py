"""
Error types for blobvfs.

Each class corresponds to one failure kind a virtual file operation can
report. Several also derive from the matching builtin so that callers
written against ordinary file APIs keep working (``except FileNotFoundError``).
"""


class VFSError(Exception):
    """Base class for all virtual filesystem errors."""
    pass


class InvalidPathError(VFSError, ValueError):
    """Empty or unparseable virtual path, or missing namespace segment."""

    def __init__(self, path: str, reason: str = "invalid virtual path"):
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path!r}")


class NotFoundError(VFSError, FileNotFoundError):
    """No record exists for the requested namespace/path."""

    def __init__(self, namespace: str, path: str):
        self.namespace = namespace
        self.path = path
        super().__init__(f"Virtual file not found: {namespace}/{path}")


class SeekOutOfRangeError(VFSError):
    """Seek target falls outside the bounds allowed for its whence."""

    def __init__(self, offset: int, whence: int, size: int):
        self.offset = offset
        self.whence = whence
        self.size = size
        super().__init__(
            f"Seek out of range: offset={offset} whence={whence} size={size}"
        )


class StoreIOError(VFSError, OSError):
    """A blob store operation failed."""
    pass


class PermissionDeniedError(VFSError, PermissionError):
    """Raised by hosts that enforce access control on top of the VFS."""
    pass


class HandleClosedError(VFSError, ValueError):
    """Operation attempted on a closed virtual file handle."""
    pass


class ReadOnlyHandleError(VFSError):
    """Write attempted on a handle opened for reading."""
    pass
