"""
Read-side access to the sharded symbol index.

SourceStore memoizes the manifest and loads package shards on first use.
Loaded shards are kept for the lifetime of the store; the cache is unbounded
because the corpus size is fixed per version. Every lookup treats absence as
a normal outcome and returns None or an empty list.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterator

from ..config import Config
from ..indexer import load_manifest, load_package_shard
from ..indexer.types import (
    ClassDeclaration,
    CorpusManifest,
    MethodDeclaration,
    Namespace,
    PackageShard,
)

logger = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 50
EXCERPT_CONTEXT_LINES = 3


class SearchKind(str, Enum):
    """Kind of symbol a search result refers to."""

    CLASS = "class"
    FIELD = "field"
    METHOD = "method"


class HierarchyDirection(str, Enum):
    """Which relation find_hierarchy follows."""

    SUBCLASSES = "subclasses"
    IMPLEMENTORS = "implementors"


@dataclass
class SearchResult:
    """One symbol matched by search()."""

    kind: SearchKind
    qualified_class_name: str
    name: str
    source_path: str
    signature: str | None = None
    line_start: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "class_name": self.qualified_class_name,
            "name": self.name,
            "signature": self.signature,
            "source_path": self.source_path,
            "line_start": self.line_start,
        }


@dataclass
class ClassListing:
    qualified_name: str
    simple_name: str
    source_path: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "class_name": self.qualified_name,
            "simple_name": self.simple_name,
            "source_path": self.source_path,
        }


@dataclass
class ClassSource:
    """A class declaration together with its full source text."""

    declaration: ClassDeclaration
    source_text: str
    source_path: str


@dataclass
class MethodSource:
    """A method declaration with a source excerpt around it."""

    method: MethodDeclaration
    excerpt_text: str
    owning_class: ClassDeclaration
    source_path: str


@dataclass
class HierarchyEntry:
    qualified_name: str
    source_path: str

    def to_dict(self) -> dict[str, Any]:
        return {"class_name": self.qualified_name, "source_path": self.source_path}


def split_qualified_name(qualified_name: str) -> tuple[str, str]:
    """Split ``a.b.C`` into (``a.b``, ``C``). A bare name lives in the default package."""
    package_name, _, simple_name = qualified_name.rpartition(".")
    return package_name or "default", simple_name


def extract_excerpt(source_text: str, line_start: int, line_end: int) -> str:
    """Lines ``[line_start - 3, line_end + 3]`` (1-based, inclusive), clamped to the file."""
    lines = source_text.split("\n")
    first = max(1, line_start - EXCERPT_CONTEXT_LINES)
    last = min(len(lines), line_end + EXCERPT_CONTEXT_LINES)
    return "\n".join(lines[first - 1 : last])


class SourceStore:
    """Query the symbol index built by the Indexer."""

    def __init__(self, config: Config):
        """Initialize the store.

        Args:
            config: Resolved configuration (index location, source roots)
        """
        self.config = config
        self._manifest: CorpusManifest | None = None
        self._shards: dict[tuple[Namespace, str], PackageShard] = {}

    # ==================== State ====================

    def is_ready(self) -> bool:
        """Whether a manifest exists on disk."""
        return self.config.manifest_path.exists()

    def invalidate(self) -> None:
        """Forget the memoized manifest and every loaded shard."""
        self._manifest = None
        self._shards.clear()

    @property
    def corpus_version(self) -> str | None:
        manifest = self._get_manifest()
        return manifest.corpus_version if manifest else None

    @property
    def secondary_corpus_version(self) -> str | None:
        manifest = self._get_manifest()
        return manifest.secondary_corpus_version if manifest else None

    def _get_manifest(self) -> CorpusManifest | None:
        if self._manifest is None:
            self._manifest = load_manifest(self.config)
        return self._manifest

    def _get_shard(self, namespace: Namespace, package_name: str) -> PackageShard | None:
        key = (namespace, package_name)
        shard = self._shards.get(key)
        if shard is None:
            shard = load_package_shard(self.config, namespace, package_name)
            if shard is not None:
                self._shards[key] = shard
        return shard

    def _iter_classes(
        self, packages_filter: str | None = None
    ) -> Iterator[tuple[Namespace, str, str, ClassDeclaration]]:
        """Yield (namespace, package, simple name, declaration) in manifest order."""
        manifest = self._get_manifest()
        if manifest is None:
            return

        prefix = packages_filter.lower() if packages_filter is not None else None
        for namespace in (Namespace.PRIMARY, Namespace.SECONDARY):
            for package_name in manifest.packages(namespace):
                if prefix is not None:
                    lowered = package_name.lower()
                    if lowered != prefix and not lowered.startswith(prefix + "."):
                        continue
                shard = self._get_shard(namespace, package_name)
                if shard is None:
                    continue
                for simple_name, declaration in shard.classes.items():
                    yield namespace, package_name, simple_name, declaration

    def namespace_for(self, qualified_name: str) -> Namespace:
        """Resolve the namespace of a class from its package prefix."""
        if qualified_name.startswith(self.config.secondary_prefix):
            return Namespace.SECONDARY
        return Namespace.PRIMARY

    def resolve_source_path(self, stored_path: str, namespace: Namespace) -> Path:
        """Turn a stored corpus-relative path into a filesystem path."""
        path = Path(stored_path)
        if path.is_absolute():
            return path

        manifest = self._get_manifest()
        if manifest is None:
            return path
        if namespace == Namespace.SECONDARY and manifest.secondary_corpus_version:
            root = self.config.secondary_source_dir(manifest.secondary_corpus_version)
        else:
            root = self.config.primary_source_dir(manifest.corpus_version)
        return root / path if root is not None else path

    def _read_source(self, path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            logger.debug(f"Source file not readable: {path}")
            return None

    # ==================== Queries ====================

    def search(self, query: str, kind: SearchKind | None = None) -> list[SearchResult]:
        """Case-insensitive substring search over class, field and method names.

        Results follow package order from the manifest (primary namespace
        first), then declaration order within each class. At most 50 results
        are returned; there is no ranking.

        Args:
            query: Substring to look for
            kind: Restrict matches to one symbol kind

        Returns:
            Matching symbols
        """
        needle = query.lower()
        results: list[SearchResult] = []

        for namespace, package_name, simple_name, declaration in self._iter_classes():
            qualified = f"{package_name}.{simple_name}"
            source_path = str(self.resolve_source_path(declaration.source_path, namespace))
            candidates: list[SearchResult] = []

            if kind in (None, SearchKind.CLASS) and needle in simple_name.lower():
                candidates.append(
                    SearchResult(
                        kind=SearchKind.CLASS,
                        qualified_class_name=qualified,
                        name=simple_name,
                        source_path=source_path,
                    )
                )

            if kind in (None, SearchKind.FIELD):
                for fld in declaration.fields:
                    if needle in fld.name.lower():
                        candidates.append(
                            SearchResult(
                                kind=SearchKind.FIELD,
                                qualified_class_name=qualified,
                                name=fld.name,
                                source_path=source_path,
                                signature=f"{fld.declared_type} {fld.name}",
                            )
                        )

            if kind in (None, SearchKind.METHOD):
                for method in declaration.methods:
                    if needle in method.name.lower():
                        candidates.append(
                            SearchResult(
                                kind=SearchKind.METHOD,
                                qualified_class_name=qualified,
                                name=method.name,
                                source_path=source_path,
                                signature=method.signature,
                                line_start=method.line_start,
                            )
                        )

            results.extend(candidates)
            if len(results) >= MAX_SEARCH_RESULTS:
                break

        return results[:MAX_SEARCH_RESULTS]

    def list_classes(self, package_prefix: str) -> list[ClassListing]:
        """List classes in a package and all of its sub-packages.

        ``net.minecraft`` matches ``net.minecraft`` and ``net.minecraft.client``
        but not ``net.minecraftforge``.
        """
        return [
            ClassListing(
                qualified_name=f"{package_name}.{simple_name}",
                simple_name=simple_name,
                source_path=str(self.resolve_source_path(declaration.source_path, namespace)),
            )
            for namespace, package_name, simple_name, declaration in self._iter_classes(package_prefix)
        ]

    def list_packages(self, namespace: Namespace | None = None) -> list[str]:
        """List package names from the manifest, optionally for one namespace."""
        manifest = self._get_manifest()
        if manifest is None:
            return []
        if namespace is not None:
            return list(manifest.packages(namespace))
        return [*manifest.primary_packages, *manifest.secondary_packages]

    def get_class(self, qualified_name: str) -> ClassSource | None:
        """Look up a class by fully qualified name and read its source.

        Args:
            qualified_name: e.g. ``net.minecraft.client.Minecraft``

        Returns:
            ClassSource, or None if the package, class or source file is missing
        """
        if self._get_manifest() is None:
            return None

        namespace = self.namespace_for(qualified_name)
        package_name, simple_name = split_qualified_name(qualified_name)
        shard = self._get_shard(namespace, package_name)
        if shard is None:
            return None
        declaration = shard.classes.get(simple_name)
        if declaration is None:
            return None

        source_path = self.resolve_source_path(declaration.source_path, namespace)
        source_text = self._read_source(source_path)
        if source_text is None:
            return None
        return ClassSource(declaration=declaration, source_text=source_text, source_path=str(source_path))

    def get_method(self, qualified_name: str, method_name: str) -> MethodSource | None:
        """Find a method and return an excerpt of its source with surrounding context.

        The exact name is tried first, then a case-insensitive match. With
        overloads the first declared one wins.

        Args:
            qualified_name: Fully qualified owning class
            method_name: Method name

        Returns:
            MethodSource, or None if the class or method is not found
        """
        class_source = self.get_class(qualified_name)
        if class_source is None:
            return None

        methods = class_source.declaration.methods
        method = next((m for m in methods if m.name == method_name), None)
        if method is None:
            lowered = method_name.lower()
            method = next((m for m in methods if m.name.lower() == lowered), None)
        if method is None:
            return None

        return MethodSource(
            method=method,
            excerpt_text=extract_excerpt(class_source.source_text, method.line_start, method.line_end),
            owning_class=class_source.declaration,
            source_path=class_source.source_path,
        )

    def find_hierarchy(self, class_name: str, direction: HierarchyDirection) -> list[HierarchyEntry]:
        """Find classes whose supertype or interface list names ``class_name``.

        This is a linear scan over every indexed class, loading all shards on
        first use. Recorded supertypes are normalized names, so ``class_name``
        is compared exactly against what the parser recorded.

        Args:
            class_name: Name to look for
            direction: SUBCLASSES tests the supertype, IMPLEMENTORS the interfaces

        Returns:
            Matching classes, in manifest order
        """
        results: list[HierarchyEntry] = []
        for namespace, package_name, simple_name, declaration in self._iter_classes():
            if direction == HierarchyDirection.SUBCLASSES:
                matched = declaration.super_type == class_name
            else:
                matched = class_name in declaration.interfaces
            if matched:
                results.append(
                    HierarchyEntry(
                        qualified_name=f"{package_name}.{simple_name}",
                        source_path=str(self.resolve_source_path(declaration.source_path, namespace)),
                    )
                )
        return results
