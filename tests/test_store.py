"""
Tests for blob store implementations.

Every behavioral test runs against both MemoryBlobStore and SQLBlobStore
(in-memory SQLite) so the two stay interchangeable.
"""

import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path

import pytest
from sqlalchemy.exc import OperationalError

from blobvfs.db import Database, StoredFile
from blobvfs.errors import StoreIOError
from blobvfs.store import BlobStore, MemoryBlobStore, SQLBlobStore, content_hash


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Each store implementation."""
    if request.param == "memory":
        yield MemoryBlobStore()
    else:
        sql_store = SQLBlobStore.open("sqlite://")
        yield sql_store
        sql_store.close()


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir, ignore_errors=True)


class TestPutGet:
    """Test upsert and retrieval."""

    def test_put_then_get(self, store):
        record = store.put("scorm", "c1/a.txt", b"hello", "text/plain")
        fetched = store.get("scorm", "c1/a.txt")

        assert fetched.content == b"hello"
        assert fetched.size == 5
        assert fetched.mime_type == "text/plain"
        assert fetched.id == record.id
        assert fetched.name == "a.txt"

    def test_get_missing(self, store):
        assert store.get("scorm", "missing") is None

    def test_put_is_upsert(self, store):
        """
        Given: A stored record
        When: Putting the same key again
        Then: One record remains, with the same id and created_at and new content
        """
        first = store.put("scorm", "a.txt", b"one")
        second = store.put("scorm", "a.txt", b"second")

        assert second.id == first.id
        assert second.created_at == first.created_at
        assert second.updated_at >= first.updated_at
        assert store.get("scorm", "a.txt").content == b"second"
        assert len(store.list("scorm")) == 1

    def test_put_replaces_every_field(self, store):
        """
        Given: A stored record with a MIME type
        When: Putting the same key with new content and no MIME type
        Then: Size, MIME type and content hash all follow the second put
        """
        store.put("scorm", "a.txt", b"one", "text/plain")
        store.put("scorm", "a.txt", b"second", None)

        record = store.get("scorm", "a.txt")
        assert record.size == 6
        assert record.mime_type is None
        assert record.content_hash == content_hash(b"second")
        assert record.metadata["content_hash"] == content_hash(b"second")

        store.put("scorm", "a.txt", b"3", "application/json")
        assert store.get("scorm", "a.txt").mime_type == "application/json"

    def test_metadata(self, store):
        store.put("scorm", "dir/a.txt", b"hello")
        record = store.get("scorm", "dir/a.txt")
        assert record.metadata["original_name"] == "a.txt"
        assert record.metadata["content_hash"] == content_hash(b"hello")
        assert record.content_hash == content_hash(b"hello")

    def test_namespaces_are_isolated(self, store):
        store.put("scorm", "a.txt", b"s")
        store.put("grassblade", "a.txt", b"g")
        assert store.get("scorm", "a.txt").content == b"s"
        assert store.get("grassblade", "a.txt").content == b"g"

    def test_empty_content(self, store):
        store.put("scorm", "empty", b"")
        assert store.get("scorm", "empty").content == b""

    def test_binary_content(self, store):
        data = bytes(range(256)) * 4
        store.put("scorm", "bin", data)
        assert store.get("scorm", "bin").content == data

    def test_implements_protocol(self, store):
        assert isinstance(store, BlobStore)


class TestReplaceDelete:
    """Test replace and delete."""

    def test_replace_existing(self, store):
        store.put("scorm", "a.txt", b"old", "text/plain")
        assert store.replace("scorm", "a.txt", b"new!") is True
        record = store.get("scorm", "a.txt")
        assert record.content == b"new!"
        assert record.mime_type == "text/plain"
        assert record.content_hash == content_hash(b"new!")

    def test_replace_missing(self, store):
        assert store.replace("scorm", "a.txt", b"x") is False
        assert store.get("scorm", "a.txt") is None

    def test_delete(self, store):
        store.put("scorm", "a.txt", b"x")
        assert store.delete("scorm", "a.txt") is True
        assert store.delete("scorm", "a.txt") is False
        assert not store.exists("scorm", "a.txt")


class TestListUsage:
    """Test listing, existence and usage."""

    def test_list_sorted_by_path(self, store):
        for path in ["b.txt", "c/x.txt", "a.txt"]:
            store.put("scorm", path, b"x")
        assert [r.virtual_path for r in store.list("scorm")] == ["a.txt", "b.txt", "c/x.txt"]

    def test_list_prefix(self, store):
        store.put("scorm", "course1/a.txt", b"x")
        store.put("scorm", "course2/b.txt", b"x")
        store.put("grassblade", "course1/c.txt", b"x")
        assert [r.virtual_path for r in store.list("scorm", "course1")] == ["course1/a.txt"]

    def test_list_prefix_wildcards_are_literal(self, store):
        """
        Given: Paths that a SQL LIKE wildcard would conflate
        When: Listing with a prefix containing % and _
        Then: Only literal prefix matches are returned
        """
        store.put("scorm", "100%/a", b"x")
        store.put("scorm", "100x/b", b"x")
        store.put("scorm", "a_b/c", b"x")
        store.put("scorm", "axb/d", b"x")

        assert [r.virtual_path for r in store.list("scorm", "100%")] == ["100%/a"]
        assert [r.virtual_path for r in store.list("scorm", "a_b")] == ["a_b/c"]

    def test_list_empty_namespace(self, store):
        assert store.list("nothing") == []

    def test_exists(self, store):
        store.put("scorm", "a.txt", b"x")
        assert store.exists("scorm", "a.txt")
        assert not store.exists("scorm", "b.txt")

    def test_usage(self, store):
        store.put("scorm", "a", b"12345")
        store.put("scorm", "b", b"123")
        store.put("grassblade", "c", b"1")
        assert store.usage("scorm") == 8
        assert store.usage("empty") == 0


class TestSQLBlobStore:
    """SQL-specific behavior."""

    def test_persists_across_reopen(self, temp_dir):
        url = f"sqlite:///{temp_dir / 'vfs.db'}"
        store = SQLBlobStore.open(url)
        store.put("scorm", "a.txt", b"durable", "text/plain")
        store.close()

        reopened = SQLBlobStore.open(url)
        try:
            assert reopened.get("scorm", "a.txt").content == b"durable"
        finally:
            reopened.close()

    def test_single_row_per_key(self):
        store = SQLBlobStore.open()
        store.put("scorm", "a.txt", b"1")
        store.put("scorm", "a.txt", b"22")
        with store.database.session_scope() as session:
            rows = session.query(StoredFile).filter_by(namespace="scorm").all()
            assert len(rows) == 1
            assert rows[0].file_size == 2
        store.close()

    def test_backend_failure_becomes_store_io_error(self, monkeypatch):
        """
        Given: A database whose sessions fail
        When: Calling store operations
        Then: StoreIOError (an OSError) is raised instead of a SQLAlchemy error
        """
        store = SQLBlobStore.open()

        @contextmanager
        def broken_scope():
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))
            yield

        monkeypatch.setattr(store.database, "session_scope", broken_scope)

        with pytest.raises(StoreIOError):
            store.get("scorm", "a.txt")
        with pytest.raises(StoreIOError):
            store.put("scorm", "a.txt", b"x")
        with pytest.raises(OSError):
            store.list("scorm")
        with pytest.raises(StoreIOError):
            store.usage("scorm")
        store.close()

    def test_database_instances_are_independent(self):
        first = Database.open()
        second = Database.open()
        try:
            a = SQLBlobStore(first)
            b = SQLBlobStore(second)
            a.put("scorm", "a.txt", b"x")
            assert b.get("scorm", "a.txt") is None
        finally:
            first.close()
            second.close()
