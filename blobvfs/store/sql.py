"""
SQLBlobStore: SQLAlchemy-backed blob storage.

Every operation runs in its own session scope, so each call is one
transaction and the store holds no state between calls besides the engine.
"""

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..db.models import StoredFile
from ..db.session import Database
from ..errors import StoreIOError
from .base import VirtualFileRecord, build_metadata, utc_now

logger = logging.getLogger(__name__)


def _to_record(row: StoredFile) -> VirtualFileRecord:
    """Detach a row into an immutable record."""
    return VirtualFileRecord(
        id=row.id,
        namespace=row.namespace,
        virtual_path=row.virtual_path,
        content=bytes(row.file_data or b""),
        mime_type=row.mime_type,
        created_at=row.created_at,
        updated_at=row.updated_at,
        metadata=dict(row.file_metadata or {}),
    )


class SQLBlobStore:
    """
    Blob store persisting records in a relational database.

    Usage:
        store = SQLBlobStore.open("sqlite:///vfs.db")
        store.put("grassblade", "course/index.html", b"<html>", "text/html")
        record = store.get("grassblade", "course/index.html")
        store.close()
    """

    def __init__(self, database: Database):
        self.database = database

    @classmethod
    def open(cls, url: str = "sqlite://", echo: bool = False) -> 'SQLBlobStore':
        """Open (and create if needed) the database at url."""
        try:
            return cls(Database.open(url, echo=echo))
        except SQLAlchemyError as e:
            raise StoreIOError(f"Could not open blob store at {url}: {e}") from e

    def close(self) -> None:
        self.database.close()

    def _query(self, session, namespace: str, path: str):
        return session.query(StoredFile).filter_by(namespace=namespace, virtual_path=path)

    def get(self, namespace: str, path: str) -> Optional[VirtualFileRecord]:
        try:
            with self.database.session_scope() as session:
                row = self._query(session, namespace, path).first()
                return _to_record(row) if row else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to read {namespace}/{path}: {e}")
            raise StoreIOError(f"Failed to read {namespace}/{path}: {e}") from e

    def put(self, namespace: str, path: str, data: bytes,
            mime_type: Optional[str] = None) -> VirtualFileRecord:
        data = bytes(data)
        try:
            try:
                return self._upsert(namespace, path, data, mime_type)
            except IntegrityError:
                # Another writer inserted the same key between our select and insert
                logger.debug(f"Insert race on {namespace}/{path}, retrying as update")
                return self._upsert(namespace, path, data, mime_type)
        except SQLAlchemyError as e:
            logger.error(f"Failed to store {namespace}/{path}: {e}")
            raise StoreIOError(f"Failed to store {namespace}/{path}: {e}") from e

    def _upsert(self, namespace: str, path: str, data: bytes,
                mime_type: Optional[str]) -> VirtualFileRecord:
        with self.database.session_scope() as session:
            row = self._query(session, namespace, path).first()
            now = utc_now()
            if row is None:
                row = StoredFile(
                    namespace=namespace,
                    virtual_path=path,
                    created_at=now,
                )
                session.add(row)
            row.file_data = data
            row.file_size = len(data)
            row.mime_type = mime_type
            row.updated_at = now
            row.file_metadata = build_metadata(path, data)
            session.flush()
            record = _to_record(row)
        logger.debug(f"Stored {namespace}/{path} ({len(data)} bytes)")
        return record

    def replace(self, namespace: str, path: str, data: bytes) -> bool:
        data = bytes(data)
        try:
            with self.database.session_scope() as session:
                row = self._query(session, namespace, path).first()
                if row is None:
                    return False
                row.file_data = data
                row.file_size = len(data)
                row.updated_at = utc_now()
                row.file_metadata = build_metadata(path, data)
                return True
        except SQLAlchemyError as e:
            logger.error(f"Failed to update {namespace}/{path}: {e}")
            raise StoreIOError(f"Failed to update {namespace}/{path}: {e}") from e

    def delete(self, namespace: str, path: str) -> bool:
        try:
            with self.database.session_scope() as session:
                deleted = self._query(session, namespace, path).delete(synchronize_session=False)
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete {namespace}/{path}: {e}")
            raise StoreIOError(f"Failed to delete {namespace}/{path}: {e}") from e
        if deleted:
            logger.info(f"Deleted {namespace}/{path}")
        return bool(deleted)

    def list(self, namespace: str, prefix: str = "") -> List[VirtualFileRecord]:
        try:
            with self.database.session_scope() as session:
                query = session.query(StoredFile).filter(StoredFile.namespace == namespace)
                if prefix:
                    query = query.filter(StoredFile.virtual_path.startswith(prefix, autoescape=True))
                rows = query.order_by(StoredFile.virtual_path.asc()).all()
                records = [_to_record(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Failed to list {namespace}/{prefix}: {e}")
            raise StoreIOError(f"Failed to list {namespace}/{prefix}: {e}") from e
        # LIKE is case-insensitive on SQLite and collation may differ from codepoint order
        records = [r for r in records if r.virtual_path.startswith(prefix)]
        return sorted(records, key=lambda r: r.virtual_path)

    def exists(self, namespace: str, path: str) -> bool:
        try:
            with self.database.session_scope() as session:
                count = self._query(session, namespace, path).count()
        except SQLAlchemyError as e:
            raise StoreIOError(f"Failed to check {namespace}/{path}: {e}") from e
        return count > 0

    def usage(self, namespace: str) -> int:
        try:
            with self.database.session_scope() as session:
                total = (
                    session.query(func.sum(StoredFile.file_size))
                    .filter(StoredFile.namespace == namespace)
                    .scalar()
                )
        except SQLAlchemyError as e:
            raise StoreIOError(f"Failed to compute usage for {namespace}: {e}") from e
        return int(total or 0)
