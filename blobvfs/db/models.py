"""
SQLAlchemy models for the blobvfs database.

A single table holds every virtual file. The (namespace, virtual_path)
pair is unique, so storing to an existing key replaces the row.
"""

from sqlalchemy import (
    Column, Integer, String, LargeBinary, DateTime, UniqueConstraint, Index, JSON
)
from sqlalchemy.orm import declarative_base

from ..utils import utc_now

Base = declarative_base()


class StoredFile(Base):
    """Virtual file contents and metadata."""
    __tablename__ = 'virtual_files'

    id = Column(Integer, primary_key=True)
    namespace = Column(String(191), nullable=False, index=True)
    virtual_path = Column(String(512), nullable=False)
    mime_type = Column(String(127))
    file_data = Column(LargeBinary, nullable=False)
    file_size = Column(Integer, nullable=False, default=0)

    # Timestamps
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # 'metadata' is reserved on declarative classes
    file_metadata = Column('metadata', JSON)

    __table_args__ = (
        UniqueConstraint('namespace', 'virtual_path', name='uix_namespace_path'),
        Index('idx_virtual_files_created', 'created_at'),
        Index('idx_virtual_files_updated', 'updated_at'),
    )

    def __repr__(self):
        return f"<StoredFile(id={self.id}, path='{self.namespace}/{self.virtual_path}', size={self.file_size})>"
