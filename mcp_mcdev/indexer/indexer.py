"""
Symbol index builder for mcdev MCP.

Walks the decompiled source trees, parses every .java file and writes:
- index/<namespace>/<package>.json: one shard per package
- index/manifest.json: the list of shards per namespace
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from .parser import JavaParser
from .types import (
    DEFAULT_PACKAGE,
    ClassDeclaration,
    CorpusManifest,
    IndexBuildResult,
    Namespace,
    PackageShard,
    ParsedClass,
)

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger(__name__)

# (stage, percent 0-100, message); advisory only
ProgressCallback = Callable[[str, int, str], None]

PROGRESS_EVERY = 100


def _utcnow() -> str:
    """Get current UTC time as ISO string."""
    return datetime.now(timezone.utc).isoformat()


def _write_json(path: Path, data: dict[str, Any]) -> None:
    """Write JSON through a temporary file so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    os.replace(tmp_path, path)


def _read_json(path: Path) -> dict[str, Any] | None:
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable index file {path}: {e}")
        return None
    return data if isinstance(data, dict) else None


def load_manifest(config: "Config") -> CorpusManifest | None:
    """Load the index manifest.

    Args:
        config: Resolved configuration

    Returns:
        CorpusManifest, or None if it is missing or corrupt
    """
    data = _read_json(config.manifest_path)
    if data is None:
        return None
    try:
        return CorpusManifest.from_dict(data)
    except (KeyError, TypeError) as e:
        logger.warning(f"Ignoring malformed manifest {config.manifest_path}: {e}")
        return None


def load_package_shard(config: "Config", namespace: Namespace, package_name: str) -> PackageShard | None:
    """Load one package shard.

    Args:
        config: Resolved configuration
        namespace: Namespace the package belongs to
        package_name: Dotted package name

    Returns:
        PackageShard, or None if it is missing or corrupt
    """
    path = config.shard_path(namespace, package_name)
    data = _read_json(path)
    if data is None:
        return None
    try:
        return PackageShard.from_dict(data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logger.warning(f"Ignoring malformed shard {path}: {e}")
        return None


class Indexer:
    """Build the sharded symbol index for one corpus version."""

    def __init__(self, config: "Config"):
        """Initialize indexer.

        Args:
            config: Resolved configuration (index directory, parser options)
        """
        self.config = config
        self.parser = JavaParser(mask_comments=config.mask_comments)

    def find_java_files(self, source_root: Path | None) -> list[Path]:
        """Find all Java source files under a root, in stable order.

        Args:
            source_root: Corpus root; None or a missing directory yields nothing

        Returns:
            Sorted list of .java file paths
        """
        if source_root is None or not source_root.is_dir():
            return []
        return sorted(p for p in source_root.rglob("*.java") if p.is_file())

    def collect_packages(
        self,
        files: list[Path],
        source_root: Path | None,
        on_file: Callable[[], None] | None = None,
    ) -> tuple[dict[str, dict[str, ClassDeclaration]], int]:
        """Parse files and group declarations by package.

        Args:
            files: Files to parse
            source_root: Root that recorded source paths are relative to;
                None records the paths as given
            on_file: Called after each file, for progress reporting

        Returns:
            Tuple of (package -> simple name -> declaration, skipped file count)
        """
        packages: dict[str, dict[str, ClassDeclaration]] = {}
        skipped = 0

        for file_path in files:
            parsed = self.parser.parse_file(file_path, relative_to=source_root)
            if parsed is None:
                skipped += 1
                logger.debug(f"No type declaration recognized in {file_path}")
            else:
                self._add_to_package(packages, parsed)
            if on_file:
                on_file()

        return packages, skipped

    def _add_to_package(self, packages: dict[str, dict[str, ClassDeclaration]], parsed: ParsedClass) -> None:
        package_name = parsed.package_name or DEFAULT_PACKAGE
        packages.setdefault(package_name, {})[parsed.class_name] = parsed.declaration

    def write_shards(self, namespace: Namespace, packages: dict[str, dict[str, ClassDeclaration]]) -> None:
        """Persist one shard file per package, overwriting existing shards of the same name."""
        for package_name in sorted(packages):
            shard = PackageShard(package_name=package_name, classes=packages[package_name])
            _write_json(self.config.shard_path(namespace, package_name), shard.to_dict())

    @staticmethod
    def _path_base(root: Path, cache_root: Path | None) -> Path | None:
        """Base for recorded source paths.

        Roots inside the cache layout record corpus-relative paths, which the
        store resolves from the manifest versions. Any other root records
        absolute paths.
        """
        if cache_root is not None and root == cache_root.resolve():
            return root
        return None

    def build(
        self,
        primary_root: Path,
        corpus_version: str,
        secondary_root: Path | None = None,
        secondary_corpus_version: str | None = None,
        progress_cb: ProgressCallback | None = None,
    ) -> IndexBuildResult:
        """Build shards and manifest for both namespaces.

        The previous manifest is removed before any shard is written, so a
        build that fails part way leaves no manifest behind.

        Args:
            primary_root: Root of the primary source tree
            corpus_version: Version recorded in the manifest
            secondary_root: Optional root of the secondary source tree
            secondary_corpus_version: Version of the secondary sources
            progress_cb: Optional progress callback

        Returns:
            IndexBuildResult summary

        Raises:
            OSError: If the index directory cannot be written
        """

        def report(progress: int, message: str) -> None:
            if progress_cb:
                progress_cb("index", progress, message)

        primary_root = primary_root.resolve()
        primary_base = self._path_base(primary_root, self.config.primary_source_dir(corpus_version))
        secondary_base = None
        if secondary_root is not None:
            secondary_root = secondary_root.resolve()
            secondary_base = self._path_base(
                secondary_root, self.config.secondary_source_dir(secondary_corpus_version)
            )

        report(0, "Finding Java files...")
        primary_files = self.find_java_files(primary_root)
        secondary_files = self.find_java_files(secondary_root)
        total_files = len(primary_files) + len(secondary_files)
        processed = 0

        def on_file() -> None:
            nonlocal processed
            processed += 1
            if processed % PROGRESS_EVERY == 0:
                report(round(5 + processed / total_files * 85), f"Processed {processed}/{total_files} files...")

        report(5, f"Processing {len(primary_files)} primary files...")
        primary_packages, primary_skipped = self.collect_packages(primary_files, primary_base, on_file)

        secondary_packages: dict[str, dict[str, ClassDeclaration]] = {}
        secondary_skipped = 0
        if secondary_root is not None:
            report(50, f"Processing {len(secondary_files)} secondary files...")
            secondary_packages, secondary_skipped = self.collect_packages(
                secondary_files, secondary_base, on_file
            )

        report(90, "Writing package shards...")
        self.config.manifest_path.unlink(missing_ok=True)
        self.write_shards(Namespace.PRIMARY, primary_packages)
        self.write_shards(Namespace.SECONDARY, secondary_packages)

        manifest = CorpusManifest(
            corpus_version=corpus_version,
            secondary_corpus_version=secondary_corpus_version,
            generated_at=_utcnow(),
            primary_packages=sorted(primary_packages),
            secondary_packages=sorted(secondary_packages),
        )
        _write_json(self.config.manifest_path, manifest.to_dict())

        class_count = sum(len(classes) for classes in primary_packages.values()) + sum(
            len(classes) for classes in secondary_packages.values()
        )
        result = IndexBuildResult(
            corpus_version=corpus_version,
            secondary_corpus_version=secondary_corpus_version,
            primary_packages=manifest.primary_packages,
            secondary_packages=manifest.secondary_packages,
            class_count=class_count,
            skipped_files=primary_skipped + secondary_skipped,
        )

        logger.info(
            f"Indexed {class_count} classes in {result.packages_indexed} packages "
            f"({result.skipped_files} files skipped)"
        )
        report(100, f"Indexed {class_count} classes in {result.packages_indexed} packages.")
        return result


def build_index(
    config: "Config",
    version: str | None = None,
    secondary_version: str | None = None,
    progress_cb: ProgressCallback | None = None,
) -> IndexBuildResult:
    """Convenience function to build the index from the cached source layout.

    Args:
        config: Resolved configuration
        version: Primary corpus version (defaults to config.version)
        secondary_version: Secondary corpus version (defaults to config.secondary_version)
        progress_cb: Optional progress callback

    Returns:
        IndexBuildResult summary
    """
    version = version or config.version
    secondary_version = secondary_version or config.secondary_version
    indexer = Indexer(config)
    return indexer.build(
        primary_root=config.primary_source_dir(version),
        corpus_version=version,
        secondary_root=config.secondary_source_dir(secondary_version),
        secondary_corpus_version=secondary_version,
        progress_cb=progress_cb,
    )
