import hashlib
import mimetypes
import posixpath
from datetime import datetime, timezone
from typing import Any, Dict, Optional

DEFAULT_MIME_TYPE = "application/octet-stream"


def utc_now() -> datetime:
    """Current UTC time as a naive datetime (the form SQLite round-trips)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def content_hash(data: bytes) -> str:
    """Hex digest used for record metadata and HTTP entity tags."""
    return hashlib.md5(data).hexdigest()


def build_metadata(virtual_path: str, data: bytes) -> Dict[str, Any]:
    """Metadata stored alongside every record."""
    return {
        "original_name": posixpath.basename(virtual_path),
        "content_hash": content_hash(data),
    }


def guess_mime_type(path: str, default: Optional[str] = DEFAULT_MIME_TYPE) -> Optional[str]:
    """
    Guess a MIME type from the file extension.

    Args:
        path: File name or path (virtual or physical)
        default: Returned when the extension is unknown

    Returns:
        MIME type string
    """
    mime_type, _ = mimetypes.guess_type(path)
    return mime_type or default


def to_timestamp(value: datetime) -> int:
    """Epoch seconds for a naive-UTC or aware datetime."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())
