"""
Configuration and on-disk layout for mcdev MCP.

Everything lives under a single home directory (``~/.mcdev-mcp`` by default):

    cache/<version>/client/              decompiled primary sources
    cache/<version>/callgraph/callgraph.db
    cache/fabric-api-<version>/          secondary (API) sources
    index/manifest.json
    index/<namespace>/<package>.json     one shard per package
"""

import os
from dataclasses import dataclass
from pathlib import Path

from .indexer.types import Namespace

DEFAULT_VERSION = "1.21.11"
DEFAULT_SECONDARY_PREFIX = "net.fabricmc"
HOME_DIR_NAME = ".mcdev-mcp"


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """Resolved configuration for one corpus version."""

    home_dir: Path
    version: str = DEFAULT_VERSION
    secondary_version: str | None = None
    secondary_prefix: str = DEFAULT_SECONDARY_PREFIX
    mask_comments: bool = False

    @classmethod
    def from_env(cls) -> "Config":
        """Build a Config from MCDEV_* environment variables.

        Returns:
            Config with defaults for anything unset
        """
        home = os.getenv("MCDEV_HOME")
        home_dir = Path(home).expanduser() if home else Path.home() / HOME_DIR_NAME
        return cls(
            home_dir=home_dir.resolve(),
            version=os.getenv("MCDEV_VERSION") or DEFAULT_VERSION,
            secondary_version=os.getenv("MCDEV_SECONDARY_VERSION") or None,
            secondary_prefix=os.getenv("MCDEV_SECONDARY_PREFIX") or DEFAULT_SECONDARY_PREFIX,
            mask_comments=_env_flag("MCDEV_MASK_COMMENTS"),
        )

    # ==================== Directories ====================

    @property
    def cache_dir(self) -> Path:
        return self.home_dir / "cache"

    @property
    def index_dir(self) -> Path:
        return self.home_dir / "index"

    @property
    def manifest_path(self) -> Path:
        return self.index_dir / "manifest.json"

    def version_cache_dir(self, version: str | None = None) -> Path:
        return self.cache_dir / (version or self.version)

    def primary_source_dir(self, version: str | None = None) -> Path:
        """Root of the decompiled primary sources for a version."""
        return self.version_cache_dir(version) / "client"

    def secondary_source_dir(self, version: str | None = None) -> Path | None:
        """Root of the secondary sources, or None when no secondary version is known."""
        version = version or self.secondary_version
        if not version:
            return None
        return self.cache_dir / f"fabric-api-{version}"

    def source_root(self, namespace: Namespace, version: str | None = None) -> Path | None:
        if namespace == Namespace.SECONDARY:
            return self.secondary_source_dir(version)
        return self.primary_source_dir(version)

    def namespace_index_dir(self, namespace: Namespace) -> Path:
        return self.index_dir / namespace.value

    def shard_path(self, namespace: Namespace, package_name: str) -> Path:
        """Path of the shard file for one package in one namespace."""
        return self.namespace_index_dir(namespace) / f"{package_name}.json"

    def callgraph_dir(self, version: str | None = None) -> Path:
        return self.version_cache_dir(version) / "callgraph"

    def callgraph_db_path(self, version: str | None = None) -> Path:
        return self.callgraph_dir(version) / "callgraph.db"

    def ensure_dirs(self) -> None:
        """Create the home directory layout if missing."""
        for directory in (
            self.home_dir,
            self.cache_dir,
            self.index_dir,
            self.namespace_index_dir(Namespace.PRIMARY),
            self.namespace_index_dir(Namespace.SECONDARY),
        ):
            directory.mkdir(parents=True, exist_ok=True)

    def available_versions(self) -> list[str]:
        """Versions that have decompiled primary sources in the cache."""
        if not self.cache_dir.exists():
            return []
        return sorted(
            entry.name
            for entry in self.cache_dir.iterdir()
            if entry.is_dir() and (entry / "client").is_dir()
        )
