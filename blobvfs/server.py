"""
Web server for blobvfs.

Serves stored virtual files over HTTP with entity-tag and
last-modified validation, plus a small JSON API for listing, deleting and
uploading files.
"""

import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import List, Optional

from fastapi import APIRouter, FastAPI, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel

from .config import VFSConfig
from .errors import InvalidPathError
from .store.base import BlobStore, VirtualFileRecord
from .upload import UploadedFile, UploadInterceptor, UploadTarget
from .vfs.filesystem import VirtualFilesystem

logger = logging.getLogger(__name__)

CACHE_CONTROL = "public, max-age=31536000"
UPLOAD_ROOT = "uploads"


# Pydantic models for API
class FileInfo(BaseModel):
    namespace: str
    path: str
    name: str
    size: int
    mime_type: Optional[str]
    content_hash: str
    created_at: datetime
    updated_at: datetime


class FileListResponse(BaseModel):
    namespace: str
    prefix: str
    items: List[FileInfo]
    total: int


class UsageResponse(BaseModel):
    namespace: str
    bytes: int


class UploadResponse(BaseModel):
    file: str
    url: str
    namespace: str
    path: str


def _file_info(record: VirtualFileRecord) -> FileInfo:
    return FileInfo(
        namespace=record.namespace,
        path=record.virtual_path,
        name=record.name,
        size=record.size,
        mime_type=record.mime_type,
        content_hash=record.content_hash,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def http_date(value: datetime) -> str:
    """Format a naive-UTC or aware datetime as an HTTP date."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def etag_matches(if_none_match: str, etag: str) -> bool:
    """
    Check an If-None-Match header against an entity tag.

    Accepts a comma-separated list, weak validators (W/"...") and bare
    unquoted tags; "*" matches anything.
    """
    for candidate in if_none_match.split(","):
        candidate = candidate.strip()
        if candidate == "*":
            return True
        if candidate.startswith("W/"):
            candidate = candidate[2:]
        if candidate.strip('"') == etag:
            return True
    return False


def not_modified_since(if_modified_since: str, last_modified: datetime) -> bool:
    """True when the resource has not changed since the client's date."""
    try:
        since = parsedate_to_datetime(if_modified_since)
    except (TypeError, ValueError, IndexError):
        return False
    if since is None:
        return False
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    if last_modified.tzinfo is None:
        last_modified = last_modified.replace(tzinfo=timezone.utc)
    # HTTP dates carry whole seconds only
    return since >= last_modified.replace(microsecond=0)


def create_app(store: BlobStore, config: Optional[VFSConfig] = None) -> FastAPI:
    """
    Create the FastAPI application for a blob store.

    Args:
        store: Blob store to serve from
        config: Configuration (defaults to VFSConfig())

    Returns:
        FastAPI application
    """
    config = config or VFSConfig()
    fs = VirtualFilesystem(store, config)
    interceptor = UploadInterceptor(
        fs.store,
        fs.router,
        base_url=config.server.base_url,
        url_prefix=config.server.url_prefix,
    )

    app = FastAPI(
        title="blobvfs",
        description="Virtual files served from a blob store",
        version="1.0.0",
    )
    app.state.fs = fs
    app.state.interceptor = interceptor

    files_router = APIRouter(prefix=f"/{config.server.url_prefix}")

    @files_router.get("/{virtual_path:path}")
    async def serve_file(virtual_path: str, request: Request):
        """Serve a stored file with conditional GET support."""
        try:
            namespace, relative = fs.router.split(virtual_path)
        except InvalidPathError:
            raise HTTPException(status_code=404, detail="File not found")
        if not relative:
            raise HTTPException(status_code=404, detail="File not found")

        record = fs.store.get(namespace, relative)
        if record is None:
            raise HTTPException(status_code=404, detail="File not found")

        etag = record.content_hash
        headers = {
            "ETag": f'"{etag}"',
            "Last-Modified": http_date(record.updated_at),
            "Cache-Control": CACHE_CONTROL,
        }

        if_none_match = request.headers.get("if-none-match")
        if if_none_match is not None:
            if etag_matches(if_none_match, etag):
                return Response(status_code=304, headers=headers)
        else:
            if_modified_since = request.headers.get("if-modified-since")
            if if_modified_since and not_modified_since(if_modified_since, record.updated_at):
                return Response(status_code=304, headers=headers)

        headers["Content-Length"] = str(record.size)
        return Response(
            content=record.content,
            media_type=record.mime_type or "application/octet-stream",
            headers=headers,
        )

    app.include_router(files_router)

    @app.get("/api/files/{namespace}", response_model=FileListResponse)
    async def list_files(namespace: str, prefix: str = Query("", description="Path prefix")):
        """List files in a namespace."""
        records = fs.store.list(namespace, fs.router.normalize(prefix))
        return FileListResponse(
            namespace=namespace,
            prefix=prefix,
            items=[_file_info(r) for r in records],
            total=len(records),
        )

    @app.get("/api/usage/{namespace}", response_model=UsageResponse)
    async def namespace_usage(namespace: str):
        """Total stored bytes for a namespace."""
        return UsageResponse(namespace=namespace, bytes=fs.store.usage(namespace))

    @app.delete("/api/files/{namespace}/{virtual_path:path}")
    async def delete_file(namespace: str, virtual_path: str):
        """Delete a stored file."""
        if not fs.unlink(f"{namespace}/{virtual_path}"):
            raise HTTPException(status_code=404, detail="File not found")
        return {"message": "File deleted successfully"}

    @app.post("/api/upload", response_model=UploadResponse)
    async def upload_file(
        file: UploadFile = File(...),
        namespace: str = Form(...),
        path: Optional[str] = Form(None),
    ):
        """Upload a file into an enabled namespace."""
        namespace = fs.router.normalize(namespace)
        if not namespace:
            raise HTTPException(status_code=400, detail="Namespace is required")

        destination = f"{UPLOAD_ROOT}/{namespace}"
        plan = interceptor.prepare(UploadTarget(path=destination))
        # Routing is by substring, so "scorm-old" would otherwise land in "scorm"
        if (not plan.intercepted
                or fs.router.extract_namespace(plan.context.prefix) != fs.router.extract_namespace(namespace)):
            raise HTTPException(status_code=400, detail=f"Namespace not enabled: {namespace}")

        relative = fs.router.normalize(path or file.filename or "")
        if not relative:
            raise HTTPException(status_code=400, detail="File name is required")

        suffix = os.path.splitext(relative)[1]
        with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
            shutil.copyfileobj(file.file, tmp)
            tmp_path = tmp.name

        try:
            result = interceptor.complete(plan, UploadedFile(
                file=f"{destination}/{relative}",
                url="",
                tmp_name=tmp_path,
                mime_type=file.content_type,
            ))
        finally:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)

        if not result.virtual:
            logger.warning(f"Upload to {namespace} not stored: {result.error}")
            raise HTTPException(status_code=500, detail=f"Upload failed: {result.error}")

        return UploadResponse(file=result.file, url=result.url,
                              namespace=result.namespace, path=result.path)

    return app
