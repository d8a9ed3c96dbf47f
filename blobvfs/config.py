"""
Configuration management for blobvfs.

The virtual filesystem core never loads configuration itself; it receives a
``VFSConfig`` instance. Loading and saving are provided here for the CLI:
- XDG config directory: ~/.config/blobvfs/config.json
- Fallback: ~/.blobvfs/config.json
"""

import json
import logging
import re
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Dict, Any, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_SCHEME = "blobvfs"
DEFAULT_CACHE_TTL = 3600

_ENABLED_PATH_RE = re.compile(r"^[A-Za-z0-9_\-/]+$")


@dataclass
class CacheConfig:
    """Read cache settings."""
    enabled: bool = False
    ttl: int = DEFAULT_CACHE_TTL
    max_entries: int = 256


@dataclass
class ServerConfig:
    """HTTP server configuration."""
    host: str = "127.0.0.1"
    port: int = 8000
    url_prefix: str = DEFAULT_SCHEME
    base_url: str = ""


@dataclass
class StorageConfig:
    """Blob store settings."""
    database_url: Optional[str] = None


@dataclass
class VFSConfig:
    """Main blobvfs configuration."""
    enabled_paths: List[str] = field(default_factory=list)
    directory_namespaces: List[str] = field(default_factory=lambda: ["grassblade", "scorm"])
    scheme: str = DEFAULT_SCHEME
    cache: CacheConfig = field(default_factory=CacheConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "enabled_paths": list(self.enabled_paths),
            "directory_namespaces": list(self.directory_namespaces),
            "scheme": self.scheme,
            "cache": asdict(self.cache),
            "server": asdict(self.server),
            "storage": asdict(self.storage),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VFSConfig':
        """Create from dictionary."""
        defaults = cls()
        config = cls(
            enabled_paths=list(data.get("enabled_paths", [])),
            directory_namespaces=list(data.get("directory_namespaces", defaults.directory_namespaces)),
            scheme=data.get("scheme", DEFAULT_SCHEME),
            cache=CacheConfig(**data.get("cache", {})),
            server=ServerConfig(**data.get("server", {})),
            storage=StorageConfig(**data.get("storage", {})),
        )
        return config.sanitize()

    def sanitize(self) -> 'VFSConfig':
        """Normalize values in place and return self.

        Enabled paths are stripped of whitespace and surrounding slashes,
        empty entries and duplicates are dropped (first occurrence wins, so
        declaration order is kept). The cache TTL is clamped to a
        non-negative integer.
        """
        seen = set()
        paths = []
        for raw in self.enabled_paths:
            path = str(raw).strip().strip("/")
            if path and path not in seen:
                seen.add(path)
                paths.append(path)
        self.enabled_paths = paths

        try:
            ttl = int(self.cache.ttl)
        except (TypeError, ValueError):
            ttl = DEFAULT_CACHE_TTL
        self.cache.ttl = abs(ttl)
        self.cache.max_entries = max(1, int(self.cache.max_entries))
        self.server.url_prefix = self.server.url_prefix.strip("/") or DEFAULT_SCHEME
        return self


def validate_enabled_path(path: str) -> bool:
    """Check that an enabled path only uses letters, digits, '-', '_' and '/'."""
    return bool(path) and _ENABLED_PATH_RE.match(path) is not None


def get_config_dir() -> Path:
    """
    Get configuration directory.

    Returns:
        ~/.config/blobvfs when ~/.config exists, otherwise ~/.blobvfs
    """
    xdg_config_home = Path.home() / ".config"
    if xdg_config_home.exists():
        return xdg_config_home / "blobvfs"
    return Path.home() / ".blobvfs"


def get_config_path() -> Path:
    """Get configuration file path."""
    return get_config_dir() / "config.json"


def default_database_url() -> str:
    """SQLite database living next to the config file."""
    return f"sqlite:///{get_config_dir() / 'blobvfs.db'}"


def load_config(config_path: Optional[Path] = None) -> VFSConfig:
    """
    Load configuration from file.

    Args:
        config_path: Explicit file to read (defaults to get_config_path())

    Returns:
        VFSConfig instance with loaded values or defaults
    """
    config_path = Path(config_path) if config_path else get_config_path()

    if not config_path.exists():
        return VFSConfig()

    try:
        with open(config_path, 'r') as f:
            data = json.load(f)
        return VFSConfig.from_dict(data)
    except (json.JSONDecodeError, OSError, TypeError) as e:
        logger.warning(f"Failed to load config from {config_path}: {e}; using defaults")
        return VFSConfig()


def save_config(config: VFSConfig, config_path: Optional[Path] = None) -> Path:
    """
    Save configuration to file.

    Args:
        config: Configuration to save
        config_path: Explicit file to write (defaults to get_config_path())

    Returns:
        Path the configuration was written to
    """
    config_path = Path(config_path) if config_path else get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        json.dump(config.sanitize().to_dict(), f, indent=2)

    logger.info(f"Configuration saved to {config_path}")
    return config_path
