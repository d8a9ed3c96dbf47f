"""
Upload interception for moving host uploads into the blob store.

The host calls the stages explicitly, in order:

    plan = interceptor.prepare(UploadTarget(path, url))   # before transfer
    ... host writes the upload to a temporary file ...
    result = interceptor.complete(plan, UploadedFile(...))  # after transfer

Request-scoped state travels in the returned UploadPlan rather than on the
interceptor, so one interceptor can serve concurrent requests.
"""

import logging
import os
import posixpath
from dataclasses import dataclass, replace
from pathlib import Path
from typing import List, Optional

from .errors import StoreIOError
from .store.base import BlobStore, VirtualFileRecord
from .utils import guess_mime_type
from .vfs.router import PathRouter

logger = logging.getLogger(__name__)

PACKAGE_MANIFEST = "imsmanifest.xml"


@dataclass(frozen=True)
class UploadTarget:
    """Destination directory the host intends to write an upload to."""
    path: str
    url: str = ""


@dataclass(frozen=True)
class UploadContext:
    """Where an intercepted upload was originally headed."""
    original_path: str
    original_url: str
    prefix: str


@dataclass(frozen=True)
class UploadPlan:
    """Result of prepare(): the (possibly rewritten) target and its context."""
    target: UploadTarget
    context: Optional[UploadContext] = None

    @property
    def intercepted(self) -> bool:
        return self.context is not None


@dataclass(frozen=True)
class UploadedFile:
    """What the host reports once the upload has been written."""
    file: str
    url: str
    tmp_name: str
    mime_type: Optional[str] = None


@dataclass(frozen=True)
class UploadResult:
    """Final location of an upload.

    When virtual is False the physical result was left untouched, either
    because the upload was not intercepted or because storing failed
    (error then says why).
    """
    file: str
    url: str
    virtual: bool = False
    namespace: Optional[str] = None
    path: Optional[str] = None
    error: Optional[str] = None


class UploadInterceptor:
    """Redirects uploads under enabled prefixes into the blob store."""

    def __init__(self, store: BlobStore, router: PathRouter,
                 base_url: str = "", url_prefix: Optional[str] = None,
                 tmp_cleanup: bool = True):
        """
        Args:
            store: Blob store receiving uploaded content
            router: Router holding the enabled prefixes
            base_url: Site URL virtual URLs are built on (may be empty)
            url_prefix: URL path segment the HTTP server serves files under
            tmp_cleanup: Delete the temporary file after a successful store
        """
        self.store = store
        self.router = router
        self.base_url = base_url.rstrip("/")
        self.url_prefix = (url_prefix or router.scheme).strip("/")
        self.tmp_cleanup = tmp_cleanup

    def virtual_url(self, namespace: str, relative: str = "") -> str:
        """Public URL a virtual file is served from."""
        path = self.router.normalize(f"{self.url_prefix}/{namespace}/{relative}")
        return f"{self.base_url}/{path}"

    def prepare(self, target: UploadTarget) -> UploadPlan:
        """Rewrite an upload destination that falls under an enabled prefix.

        Args:
            target: Physical destination directory (and its URL)

        Returns:
            UploadPlan; intercepted only when a prefix matched
        """
        prefix = self.router.match(target.path)
        if prefix is None:
            return UploadPlan(target=target)

        context = UploadContext(
            original_path=target.path,
            original_url=target.url,
            prefix=prefix,
        )
        rewritten = UploadTarget(
            path=self.router.to_virtual(prefix),
            url=self.virtual_url(prefix),
        )
        logger.debug(f"Intercepting upload to {target.path} as {rewritten.path}")
        return UploadPlan(target=rewritten, context=context)

    def complete(self, plan: UploadPlan, uploaded: UploadedFile) -> UploadResult:
        """Store a finished upload and rewrite its location.

        If the temporary file cannot be read or the store rejects the write,
        the original physical result is returned unchanged and the temporary
        file is left in place.
        """
        untouched = UploadResult(file=uploaded.file, url=uploaded.url)
        if not plan.intercepted or not uploaded.tmp_name:
            return untouched

        # Same key locate() gives the physical path, so rewrite and
        # delete_physical find the record again
        located = self.router.locate(uploaded.file)
        if located is not None and located[1]:
            namespace, path = located
        else:
            basename = posixpath.basename(uploaded.file.replace("\\", "/"))
            namespace, path = self.router.split(f"{plan.context.prefix}/{basename}")
        if not path:
            logger.warning(f"Upload {uploaded.file} has no file name, keeping physical copy")
            return replace(untouched, error="upload has no file name")

        try:
            data = Path(uploaded.tmp_name).read_bytes()
        except OSError as e:
            logger.warning(f"Could not read uploaded file {uploaded.tmp_name}: {e}")
            return replace(untouched, error=f"read failed: {e}")

        mime_type = uploaded.mime_type or guess_mime_type(path)
        try:
            self.store.put(namespace, path, data, mime_type)
        except StoreIOError as e:
            logger.warning(f"Could not store upload {namespace}/{path}, keeping physical copy: {e}")
            return replace(untouched, error=f"store failed: {e}")

        if self.tmp_cleanup:
            try:
                os.unlink(uploaded.tmp_name)
            except OSError as e:
                logger.warning(f"Stored {namespace}/{path} but could not remove {uploaded.tmp_name}: {e}")

        logger.info(f"Stored upload {namespace}/{path} ({len(data)} bytes)")
        return UploadResult(
            file=self.router.to_virtual(namespace, path),
            url=self.virtual_url(namespace, path),
            virtual=True,
            namespace=namespace,
            path=path,
        )

    def import_directory(self, namespace: str, dir_path: Path) -> List[VirtualFileRecord]:
        """
        Store every regular file below a directory.

        Args:
            namespace: Namespace to store into (may carry extra segments)
            dir_path: Physical directory to walk

        Returns:
            Stored records, in path order
        """
        dir_path = Path(dir_path)
        stored = []
        for file_path in sorted(p for p in dir_path.rglob("*") if p.is_file()):
            relative = file_path.relative_to(dir_path).as_posix()
            ns, path = self.router.split(f"{namespace}/{relative}")
            data = file_path.read_bytes()
            stored.append(self.store.put(ns, path, data, guess_mime_type(path)))
        logger.info(f"Imported {len(stored)} files from {dir_path} into {namespace}")
        return stored

    @staticmethod
    def is_package(dir_path: Path) -> bool:
        """Check for a content package manifest."""
        return (Path(dir_path) / PACKAGE_MANIFEST).is_file()

    def intercept_package(self, namespace: str, content_path: Path,
                          content_url: str = "") -> Optional[str]:
        """
        Import an extracted content package and return its virtual URL.

        Returns:
            Rewritten content URL, or None when content_path holds no package
        """
        if not self.is_package(content_path):
            return None
        self.import_directory(namespace, content_path)
        virtual = self.virtual_url(namespace)
        logger.info(f"Package at {content_path} ({content_url or 'no url'}) now served from {virtual}")
        return virtual

    def delete_physical(self, physical_path: str) -> bool:
        """Delete the record a routed physical path maps to."""
        located = self.router.locate(physical_path)
        if located is None or not located[1]:
            return False
        return self.store.delete(*located)
