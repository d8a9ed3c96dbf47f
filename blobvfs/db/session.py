"""
Database session management for blobvfs.

Each Database owns its engine and session factory, so several stores can
coexist in one process and nothing is shared through module globals.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .models import Base

logger = logging.getLogger(__name__)


class Database:
    """Engine plus session factory for one database URL.

    Usage:
        db = Database.open("sqlite:///vfs.db")
        with db.session_scope() as session:
            session.add(row)
            # Automatically commits or rolls back
        db.close()
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def open(cls, url: str = "sqlite://", echo: bool = False) -> 'Database':
        """
        Connect and create all tables.

        Args:
            url: SQLAlchemy database URL (in-memory SQLite by default)
            echo: If True, log all SQL statements (debug mode)

        Returns:
            Database instance
        """
        kwargs = {}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every session sees an empty database
            kwargs = {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}

        engine = create_engine(url, echo=echo, **kwargs)

        if engine.dialect.name == "sqlite":
            @event.listens_for(engine, "connect")
            def set_sqlite_pragma(dbapi_conn, connection_record):
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.close()

        Base.metadata.create_all(engine)
        logger.debug(f"Opened database {engine.url!r}")
        return cls(engine)

    def session(self) -> Session:
        """Get a new database session."""
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Provide a transactional scope around a series of operations.
        """
        session = self.session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        self.engine.dispose()
        logger.debug("Closed database")
