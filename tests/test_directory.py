"""
Tests for directory enumeration.

Tests cover:
- readdir/rewinddir/closedir on a snapshot listing
- Restriction of enumeration to listable namespaces
- Snapshot semantics (later writes are not visible)
"""

import pytest

from blobvfs.config import CacheConfig, VFSConfig
from blobvfs.store.memory import MemoryBlobStore
from blobvfs.vfs.directory import DirectoryHandle
from blobvfs.vfs.filesystem import VirtualFilesystem


@pytest.fixture
def fs():
    """Filesystem with a few stored files."""
    store = MemoryBlobStore()
    store.put("scorm", "course1/b.txt", b"b")
    store.put("scorm", "course1/a.txt", b"a")
    store.put("scorm", "course2/sub/c.txt", b"c")
    store.put("docs", "readme.md", b"# hi")
    return VirtualFilesystem(store, VFSConfig(cache=CacheConfig(enabled=False)))


class TestReaddir:
    """Test iterating a directory handle."""

    def test_readdir_returns_base_names_in_order(self, fs):
        """
        Given: Two files under scorm/course1
        When: Reading the directory
        Then: Base names come back sorted, then None
        """
        handle = fs.opendir("blobvfs://scorm/course1")
        assert handle.readdir() == "a.txt"
        assert handle.readdir() == "b.txt"
        assert handle.readdir() is None
        assert handle.readdir() is None

    def test_rewinddir_restarts(self, fs):
        handle = fs.opendir("blobvfs://scorm/course1")
        handle.readdir()
        handle.readdir()
        assert handle.rewinddir() is True
        assert handle.readdir() == "a.txt"

    def test_closedir_ends_listing(self, fs):
        handle = fs.opendir("blobvfs://scorm/course1")
        assert handle.closedir() is True
        assert handle.readdir() is None
        assert len(handle) == 0

    def test_nested_entries_use_base_name(self, fs):
        assert fs.listdir("blobvfs://scorm/course2") == ["c.txt"]

    def test_namespace_root_lists_everything(self, fs):
        assert fs.listdir("blobvfs://scorm") == ["a.txt", "b.txt", "c.txt"]

    def test_entries_are_records(self, fs):
        with fs.opendir("blobvfs://scorm/course1") as handle:
            paths = [r.virtual_path for r in handle.entries]
        assert paths == ["course1/a.txt", "course1/b.txt"]

    def test_listing_is_a_snapshot(self, fs):
        """
        Given: An open directory handle
        When: A file is added afterwards
        Then: The handle does not see it, a new handle does
        """
        handle = fs.opendir("blobvfs://scorm/course1")
        fs.write_bytes("blobvfs://scorm/course1/z.txt", b"z")
        assert list(handle) == ["a.txt", "b.txt"]
        assert fs.listdir("blobvfs://scorm/course1") == ["a.txt", "b.txt", "z.txt"]


class TestListableNamespaces:
    """Test that only configured namespaces are enumerable."""

    def test_unlisted_namespace_is_empty(self, fs):
        """
        Given: Records in the "docs" namespace
        When: Opening it as a directory
        Then: The listing is empty because docs is not listable
        """
        handle = fs.opendir("blobvfs://docs")
        assert handle.readdir() is None
        assert len(handle) == 0

    def test_configured_namespace_is_listable(self):
        store = MemoryBlobStore()
        store.put("docs", "readme.md", b"# hi")
        fs = VirtualFilesystem(store, VFSConfig(directory_namespaces=["docs"]))
        assert fs.listdir("blobvfs://docs") == ["readme.md"]


class TestDirectoryHandle:
    """Test DirectoryHandle directly."""

    def test_empty_handle(self):
        handle = DirectoryHandle("scorm", "nothing")
        assert handle.readdir() is None
        assert list(handle) == []

    def test_repr(self):
        assert repr(DirectoryHandle("scorm", "c1")) == "DirectoryHandle('scorm/c1', entries=0)"
