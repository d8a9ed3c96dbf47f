"""Path routing for the Virtual File System.

Turns raw identifiers such as ``blobvfs://grassblade//course\\index.html``
into normalized ``(namespace, relative_path)`` pairs, and decides whether a
physical path belongs to the virtual namespace given the configured list of
enabled prefixes.
"""

import logging
import re
from typing import Iterable, List, Optional, Tuple

from blobvfs.config import DEFAULT_SCHEME
from blobvfs.errors import InvalidPathError

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")
_SLASHES_RE = re.compile(r"/+")


class PathRouter:
    """Normalizes virtual paths and routes physical paths to namespaces.

    Routing uses substring matching: a physical path is routed by a prefix
    when it contains that prefix anywhere (or its scheme-qualified form).
    Prefixes are tried in declaration order and the first match wins.

    Attributes:
        enabled_paths: Ordered enabled namespace prefixes
        scheme: Virtual scheme name (without "://")
    """

    def __init__(self, enabled_paths: Iterable[str] = (), scheme: str = DEFAULT_SCHEME):
        """Initialize the router.

        Args:
            enabled_paths: Ordered list of enabled namespace prefixes
            scheme: Virtual scheme name
        """
        self.enabled_paths: List[str] = [p for p in enabled_paths if p]
        self.scheme = scheme

    @property
    def scheme_prefix(self) -> str:
        return f"{self.scheme}://"

    def normalize(self, raw_path: Optional[str]) -> str:
        """Normalize a raw virtual identifier.

        Strips a leading ``scheme://``, converts backslashes to forward
        slashes, collapses slash runs and trims leading/trailing slashes.
        Applying it twice gives the same result as applying it once.

        Args:
            raw_path: Raw identifier (may be None or empty)

        Returns:
            Normalized path, possibly empty
        """
        if not raw_path:
            return ""
        path = _SCHEME_RE.sub("", str(raw_path), count=1)
        path = path.replace("\\", "/")
        path = _SLASHES_RE.sub("/", path)
        return path.strip("/")

    def extract_namespace(self, path: str) -> str:
        """Return the first segment of a path.

        Raises:
            InvalidPathError: If the path has no segments
        """
        normalized = self.normalize(path)
        if not normalized:
            raise InvalidPathError(path, "missing namespace segment")
        return normalized.split("/", 1)[0]

    def split(self, path: str) -> Tuple[str, str]:
        """Split a path into (namespace, relative_path).

        The relative path is empty when the path names only a namespace.

        Raises:
            InvalidPathError: If the path has no segments
        """
        namespace = self.extract_namespace(path)
        normalized = self.normalize(path)
        relative = normalized[len(namespace) + 1:]
        return namespace, relative

    def should_route(self, physical_path: Optional[str], prefix: Optional[str]) -> bool:
        """Check whether a physical path falls under an enabled prefix.

        This is substring containment, not segment-aligned prefix matching:
        "uploads/scorm-old/x" is routed by the prefix "scorm".
        """
        if not physical_path or not prefix:
            return False
        return prefix in physical_path or f"{self.scheme_prefix}{prefix}" in physical_path

    def match(self, physical_path: Optional[str]) -> Optional[str]:
        """Return the first enabled prefix routing this path, if any."""
        for prefix in self.enabled_paths:
            if self.should_route(physical_path, prefix):
                logger.debug(f"Routed {physical_path!r} via prefix {prefix!r}")
                return prefix
        return None

    def is_virtual(self, path: Optional[str]) -> bool:
        """Check whether a path is already virtual or should be routed."""
        if not path:
            return False
        if path.startswith(self.scheme_prefix):
            return True
        return self.match(path) is not None

    def to_virtual(self, namespace: str, relative: str = "") -> str:
        """Build a ``scheme://namespace/relative`` identifier."""
        joined = self.normalize(f"{namespace}/{relative}")
        return f"{self.scheme_prefix}{joined}"

    def locate(self, physical_path: Optional[str]) -> Optional[Tuple[str, str]]:
        """Map a physical path onto (namespace, relative_path).

        The key is built from the matched prefix followed by whatever comes
        after it, so a multi-segment prefix such as "scorm/packages" yields
        the namespace "scorm" with "packages/..." as the relative path.

        An occurrence of the prefix that spans whole segments is preferred.
        When the prefix only appears inside a longer segment (the prefix
        "scorm" in "uploads/scorm-old/a.js"), the rest of that segment is
        skipped and the path still maps under the prefix: ("scorm", "a.js").

        Returns:
            (namespace, relative_path) or None if the path is not routed
        """
        if physical_path and physical_path.startswith(self.scheme_prefix):
            return self.split(physical_path)

        prefix = self.match(physical_path)
        if prefix is None:
            return None
        anchor = self.normalize(prefix)
        candidate = self.normalize(physical_path)

        aligned = re.search(rf"(?:^|/){re.escape(anchor)}(?=/|$)", candidate)
        if aligned is not None:
            tail = candidate[aligned.end():]
        else:
            start = candidate.find(anchor)
            segment_end = candidate.find("/", start + len(anchor))
            tail = "" if start == -1 or segment_end == -1 else candidate[segment_end:]
        return self.split(f"{anchor}/{tail}")

    def rewrite(self, physical_path: str) -> str:
        """Rewrite a routed physical path to its virtual identifier.

        Paths that are not routed are returned unchanged.
        """
        located = self.locate(physical_path)
        if located is None:
            return physical_path
        return self.to_virtual(*located)
