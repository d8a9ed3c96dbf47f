"""
Tests for PathRouter.

Tests focus on:
- Path normalization (scheme stripping, separators, idempotence)
- Namespace extraction and splitting
- Substring routing and prefix precedence
- Mapping physical paths onto virtual identifiers
"""

import pytest

from blobvfs.errors import InvalidPathError
from blobvfs.vfs.router import PathRouter


@pytest.fixture
def router():
    """Router with two enabled prefixes."""
    return PathRouter(["grassblade", "scorm"])


class TestNormalize:
    """Test normalization of raw identifiers."""

    def test_strips_scheme_and_collapses_separators(self, router):
        """
        Given: A scheme path with doubled slashes and a backslash
        When: Normalizing
        Then: Scheme is removed and separators become single forward slashes
        """
        assert router.normalize("blobvfs://grassblade//course\\index.html") == "grassblade/course/index.html"

    def test_trims_leading_and_trailing_slashes(self, router):
        assert router.normalize("/scorm/pkg/") == "scorm/pkg"

    def test_empty_and_none_normalize_to_empty(self, router):
        assert router.normalize("") == ""
        assert router.normalize(None) == ""
        assert router.normalize("blobvfs://") == ""
        assert router.normalize("///") == ""

    @pytest.mark.parametrize("raw", [
        "blobvfs://scorm//a\\b/",
        "\\\\scorm\\x",
        "scorm/a/b/c.txt",
        "other://ns/file",
    ])
    def test_idempotent(self, router, raw):
        """Normalizing twice gives the same result as once."""
        once = router.normalize(raw)
        assert router.normalize(once) == once

    def test_only_leading_scheme_is_stripped(self, router):
        """A scheme-like token inside the path is preserved."""
        assert router.normalize("scorm/blobvfs://x") == "scorm/blobvfs:/x"


class TestSplit:
    """Test namespace extraction."""

    def test_split_namespace_and_relative(self, router):
        assert router.split("blobvfs://grassblade/course1/index.html") == ("grassblade", "course1/index.html")

    def test_namespace_only_has_empty_relative(self, router):
        assert router.split("blobvfs://scorm") == ("scorm", "")
        assert router.split("blobvfs://scorm/") == ("scorm", "")

    def test_extract_namespace(self, router):
        assert router.extract_namespace("scorm/a/b") == "scorm"

    def test_missing_namespace_raises(self, router):
        """
        Given: A path with no segments
        When: Extracting the namespace
        Then: InvalidPathError is raised (and is a ValueError)
        """
        with pytest.raises(InvalidPathError):
            router.extract_namespace("blobvfs://")

        with pytest.raises(ValueError):
            router.split("")


class TestRouting:
    """Test substring routing against enabled prefixes."""

    def test_routes_path_containing_prefix(self, router):
        assert router.should_route("/var/www/uploads/grassblade/course1", "grassblade")

    def test_routing_is_substring_not_segment_aligned(self, router):
        """
        Given: A directory whose name merely contains the prefix
        When: Checking routing
        Then: It is still routed
        """
        assert router.should_route("/var/www/uploads/scorm-old/x", "scorm")

    def test_routes_scheme_qualified_prefix(self, router):
        assert router.should_route("blobvfs://scorm/a.txt", "scorm")

    def test_empty_inputs_never_route(self, router):
        assert not router.should_route(None, "scorm")
        assert not router.should_route("", "scorm")
        assert not router.should_route("/uploads/scorm", "")
        assert not router.should_route("/uploads/scorm", None)

    def test_first_enabled_prefix_wins(self):
        """
        Given: A path containing two enabled prefixes
        When: Matching
        Then: The prefix declared first is returned
        """
        router = PathRouter(["grassblade", "scorm"])
        assert router.match("/uploads/scorm/grassblade/a") == "grassblade"

        reversed_router = PathRouter(["scorm", "grassblade"])
        assert reversed_router.match("/uploads/scorm/grassblade/a") == "scorm"

    def test_no_match_returns_none(self, router):
        assert router.match("/var/www/uploads/2024/01") is None

    def test_is_virtual(self, router):
        assert router.is_virtual("blobvfs://anything/x")
        assert router.is_virtual("/uploads/scorm/x")
        assert not router.is_virtual("/uploads/images/x.png")
        assert not router.is_virtual("")

    def test_empty_prefixes_are_ignored(self):
        router = PathRouter(["", "scorm"])
        assert router.enabled_paths == ["scorm"]


class TestLocateAndRewrite:
    """Test mapping physical paths to virtual identifiers."""

    def test_to_virtual(self, router):
        assert router.to_virtual("scorm", "pkg/a.js") == "blobvfs://scorm/pkg/a.js"
        assert router.to_virtual("scorm") == "blobvfs://scorm"

    def test_locate_physical_path(self, router):
        assert router.locate("/var/www/uploads/scorm/course1/a.js") == ("scorm", "course1/a.js")

    def test_locate_windows_path(self, router):
        assert router.locate("C:\\uploads\\scorm\\course1\\a.js") == ("scorm", "course1/a.js")

    def test_locate_multi_segment_prefix(self):
        """
        Given: An enabled prefix with two segments
        When: Locating a path below it
        Then: The first segment is the namespace, the rest stays in the relative path
        """
        router = PathRouter(["scorm/packages"])
        assert router.locate("/srv/scorm/packages/c1/a.js") == ("scorm", "packages/c1/a.js")

    def test_locate_prefers_whole_segment(self, router):
        """
        Given: A path where "scorm" appears inside an earlier segment and as a segment
        When: Locating it
        Then: The whole-segment occurrence anchors the key
        """
        assert router.locate("/srv/scormfiles/uploads/scorm/a.js") == ("scorm", "a.js")
        assert router.rewrite("/srv/scormfiles/uploads/scorm/a.js") == "blobvfs://scorm/a.js"

    def test_locate_prefix_inside_segment(self, router):
        """
        Given: A path where "scorm" only appears inside "scorm-old"
        When: Locating it
        Then: The namespace is the enabled prefix, not the longer segment
        """
        assert router.locate("/var/www/uploads/scorm-old/a.js") == ("scorm", "a.js")
        assert router.locate("/var/www/uploads/scorm-old") == ("scorm", "")

    def test_locate_scheme_path(self, router):
        assert router.locate("blobvfs://docs/a.txt") == ("docs", "a.txt")

    def test_locate_unrouted(self, router):
        assert router.locate("/tmp/a.txt") is None
        assert router.locate(None) is None

    def test_rewrite(self, router):
        assert router.rewrite("/uploads/grassblade/c1/index.html") == "blobvfs://grassblade/c1/index.html"
        assert router.rewrite("/tmp/a.txt") == "/tmp/a.txt"

    def test_custom_scheme(self):
        router = PathRouter(["scorm"], scheme="vfs")
        assert router.to_virtual("scorm", "a") == "vfs://scorm/a"
        assert router.is_virtual("vfs://x/y")
        assert router.split("vfs://scorm/a") == ("scorm", "a")
