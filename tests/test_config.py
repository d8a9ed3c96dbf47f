"""
Tests for configuration loading, saving and sanitizing.
"""

import json
import shutil
import tempfile
from pathlib import Path

import pytest

from blobvfs.config import (
    CacheConfig,
    VFSConfig,
    load_config,
    save_config,
    validate_enabled_path,
)


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir, ignore_errors=True)


class TestDefaults:
    """Test default values."""

    def test_defaults(self):
        config = VFSConfig()
        assert config.enabled_paths == []
        assert config.directory_namespaces == ["grassblade", "scorm"]
        assert config.scheme == "blobvfs"
        assert config.cache.enabled is False
        assert config.cache.ttl == 3600
        assert config.server.url_prefix == "blobvfs"
        assert config.storage.database_url is None


class TestSanitize:
    """Test normalization of configured values."""

    def test_enabled_paths_are_trimmed_and_deduplicated(self):
        """
        Given: Enabled paths with whitespace, slashes, blanks and duplicates
        When: Sanitizing
        Then: Clean unique paths remain in declaration order
        """
        config = VFSConfig(enabled_paths=[" /scorm/ ", "", "grassblade", "scorm", "  "])
        config.sanitize()
        assert config.enabled_paths == ["scorm", "grassblade"]

    def test_negative_ttl_becomes_positive(self):
        config = VFSConfig(cache=CacheConfig(ttl=-60))
        assert config.sanitize().cache.ttl == 60

    def test_non_numeric_ttl_falls_back_to_default(self):
        config = VFSConfig(cache=CacheConfig(ttl="soon"))
        assert config.sanitize().cache.ttl == 3600

    def test_max_entries_at_least_one(self):
        config = VFSConfig(cache=CacheConfig(max_entries=0))
        assert config.sanitize().cache.max_entries == 1

    def test_empty_url_prefix_falls_back(self):
        config = VFSConfig()
        config.server.url_prefix = "/"
        assert config.sanitize().server.url_prefix == "blobvfs"

    @pytest.mark.parametrize("path,valid", [
        ("scorm", True),
        ("grass_blade-2", True),
        ("scorm/packages", True),
        ("bad path", False),
        ("../etc", False),
        ("", False),
    ])
    def test_validate_enabled_path(self, path, valid):
        assert validate_enabled_path(path) is valid


class TestLoadSave:
    """Test the JSON config file."""

    def test_round_trip(self, temp_dir):
        config_path = temp_dir / "nested" / "config.json"
        config = VFSConfig(enabled_paths=["scorm", "grassblade"])
        config.cache.ttl = 120
        config.server.port = 9000

        written = save_config(config, config_path)
        loaded = load_config(config_path)

        assert written == config_path
        assert loaded.enabled_paths == ["scorm", "grassblade"]
        assert loaded.cache.ttl == 120
        assert loaded.server.port == 9000

    def test_missing_file_gives_defaults(self, temp_dir):
        assert load_config(temp_dir / "missing.json") == VFSConfig()

    def test_corrupt_file_gives_defaults(self, temp_dir):
        config_path = temp_dir / "config.json"
        config_path.write_text("{not json")
        assert load_config(config_path) == VFSConfig()

    def test_unknown_keys_give_defaults(self, temp_dir):
        config_path = temp_dir / "config.json"
        config_path.write_text(json.dumps({"cache": {"colour": "blue"}}))
        assert load_config(config_path) == VFSConfig()

    def test_partial_file_merges_with_defaults(self, temp_dir):
        config_path = temp_dir / "config.json"
        config_path.write_text(json.dumps({"enabled_paths": ["/scorm/"]}))

        loaded = load_config(config_path)

        assert loaded.enabled_paths == ["scorm"]
        assert loaded.directory_namespaces == ["grassblade", "scorm"]
        assert loaded.cache.ttl == 3600

    def test_saved_file_is_plain_json(self, temp_dir):
        config_path = save_config(VFSConfig(enabled_paths=["scorm"]), temp_dir / "config.json")
        data = json.loads(config_path.read_text())
        assert data["enabled_paths"] == ["scorm"]
        assert data["cache"] == {"enabled": False, "ttl": 3600, "max_entries": 256}
