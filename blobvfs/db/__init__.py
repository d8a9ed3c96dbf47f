"""
Database module for blobvfs.

Provides the SQLAlchemy model and session management used by SQLBlobStore.
"""

from .models import Base, StoredFile
from .session import Database

__all__ = [
    'Base',
    'StoredFile',
    'Database',
]
