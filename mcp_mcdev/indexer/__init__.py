"""
mcdev indexer module - pattern-based Java declaration indexing.

Builds a sharded symbol index:
- index/manifest.json: Packages per namespace and corpus versions
- index/<namespace>/<package>.json: Classes, fields and methods per package
"""

from .types import (
    ClassKind,
    Namespace,
    FieldDeclaration,
    Parameter,
    MethodDeclaration,
    ClassDeclaration,
    ParsedClass,
    PackageShard,
    CorpusManifest,
    IndexBuildResult,
)
from .parser import JavaParser
from .indexer import Indexer, build_index, load_manifest, load_package_shard

__all__ = [
    # Types
    "ClassKind",
    "Namespace",
    "FieldDeclaration",
    "Parameter",
    "MethodDeclaration",
    "ClassDeclaration",
    "ParsedClass",
    "PackageShard",
    "CorpusManifest",
    "IndexBuildResult",
    # Parser
    "JavaParser",
    # Indexer
    "Indexer",
    "build_index",
    "load_manifest",
    "load_package_shard",
]
