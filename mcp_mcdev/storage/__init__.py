"""
Query layer over the sharded symbol index.
"""

from .source_store import (
    ClassListing,
    ClassSource,
    HierarchyDirection,
    HierarchyEntry,
    MethodSource,
    SearchKind,
    SearchResult,
    SourceStore,
)

__all__ = [
    "ClassListing",
    "ClassSource",
    "HierarchyDirection",
    "HierarchyEntry",
    "MethodSource",
    "SearchKind",
    "SearchResult",
    "SourceStore",
]
