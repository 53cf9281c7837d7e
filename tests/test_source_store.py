"""
Tests for the storage module.

Tests cover:
- SourceStore: Search, listing, class and method retrieval
- SourceStore: Hierarchy scans
- Absence handling (no index, unknown names, missing sources)
"""

import pytest

from mcp_mcdev.indexer import Namespace, build_index
from mcp_mcdev.storage import HierarchyDirection, SearchKind, SourceStore
from mcp_mcdev.storage.source_store import MAX_SEARCH_RESULTS, extract_excerpt


@pytest.fixture
def store(corpus):
    """Build the sample index and open a store over it."""
    build_index(corpus)
    return SourceStore(corpus)


class TestSearch:
    """Test SourceStore.search."""

    def test_search_class(self, store):
        """Test class names match case-insensitively."""
        results = store.search("Min", SearchKind.CLASS)
        assert [r.qualified_class_name for r in results] == ["net.minecraft.client.Minecraft"]
        assert results[0].kind == SearchKind.CLASS

    def test_search_field_no_match(self, store):
        """Test a kind filter with no matches returns an empty list."""
        assert store.search("Min", SearchKind.FIELD) == []

    def test_search_method(self, store):
        """Test method results carry signature and line."""
        results = store.search("gethealth", SearchKind.METHOD)
        assert len(results) == 1
        assert results[0].qualified_class_name == "net.minecraft.entity.LivingEntity"
        assert results[0].signature == "float getHealth()"
        assert results[0].line_start == 6

    def test_search_all_kinds_in_order(self, store):
        """Test unfiltered search follows manifest then declaration order."""
        results = store.search("tick")
        assert [(r.kind, r.qualified_class_name) for r in results] == [
            (SearchKind.METHOD, "net.minecraft.client.Minecraft"),
            (SearchKind.CLASS, "net.minecraft.util.Tickable"),
            (SearchKind.METHOD, "net.minecraft.util.Tickable"),
        ]

    def test_search_field(self, store):
        results = store.search("fps", SearchKind.FIELD)
        assert len(results) == 1
        assert results[0].signature == "int fps"

    def test_search_secondary_after_primary(self, store):
        results = store.search("init")
        assert results[-1].qualified_class_name == "net.fabricmc.api.ModInitializer"

    def test_search_cap(self, config):
        """Test search never returns more than the cap."""
        methods = "\n".join(f"    public void handle{i}() {{\n    }}" for i in range(80))
        root = config.primary_source_dir()
        root.mkdir(parents=True)
        (root / "Big.java").write_text(f"package big;\n\npublic class Big {{\n{methods}\n}}\n")
        build_index(config)

        results = SourceStore(config).search("handle")
        assert len(results) == MAX_SEARCH_RESULTS
        assert results[0].name == "handle0"

    def test_search_without_index(self, config):
        """Test search on a missing index returns nothing."""
        store = SourceStore(config)
        assert not store.is_ready()
        assert store.search("anything") == []


class TestListing:
    """Test list_classes and list_packages."""

    def test_list_classes_subpackages(self, store):
        names = [c.qualified_name for c in store.list_classes("net.minecraft.entity")]
        assert names == [
            "net.minecraft.entity.LivingEntity",
            "net.minecraft.entity.player.PlayerEntity",
        ]

    def test_list_classes_boundary(self, store):
        """Test a prefix does not match a longer sibling package name."""
        names = [c.qualified_name for c in store.list_classes("net.minecraft")]
        assert "net.minecraftforge.common.ForgeHooks" not in names
        assert "net.minecraft.client.Minecraft" in names
        assert store.list_classes("net.minecraft.ent") == []

    def test_list_classes_case_insensitive(self, store):
        listing = store.list_classes("NET.MINECRAFT.CLIENT")
        assert [c.simple_name for c in listing] == ["Minecraft"]
        assert listing[0].source_path.endswith("net/minecraft/client/Minecraft.java")

    def test_list_packages(self, store):
        assert store.list_packages(Namespace.SECONDARY) == ["net.fabricmc.api"]
        assert len(store.list_packages()) == 7
        assert store.list_packages()[-1] == "net.fabricmc.api"


class TestClassRetrieval:
    """Test get_class and get_method."""

    def test_get_class(self, store):
        result = store.get_class("net.minecraft.client.Minecraft")
        assert result is not None
        assert result.declaration.interfaces == ["Tickable"]
        assert "getInstance" in result.source_text
        assert result.source_path.endswith("Minecraft.java")

    def test_get_class_secondary(self, store, corpus):
        """Test classes under the secondary prefix resolve to the secondary root."""
        result = store.get_class("net.fabricmc.api.ModInitializer")
        assert result is not None
        assert result.source_path.startswith(str(corpus.secondary_source_dir()))

    def test_get_class_unknown(self, store):
        assert store.get_class("net.minecraft.client.Nope") is None
        assert store.get_class("com.unknown.Thing") is None

    def test_get_class_missing_source(self, store, corpus):
        """Test a deleted source file reads as not found."""
        (corpus.primary_source_dir() / "net/minecraft/client/Minecraft.java").unlink()
        assert store.get_class("net.minecraft.client.Minecraft") is None

    def test_get_method(self, store):
        result = store.get_method("net.minecraft.client.Minecraft", "tick")
        assert result is not None
        assert result.method.line_start == 13
        assert "fps++;" in result.excerpt_text
        assert "return instance;" in result.excerpt_text
        assert result.owning_class.interfaces == ["Tickable"]

    def test_get_method_case_insensitive(self, store):
        result = store.get_method("net.minecraft.client.Minecraft", "GETINSTANCE")
        assert result.method.name == "getInstance"

    def test_get_method_unknown(self, store):
        assert store.get_method("net.minecraft.client.Minecraft", "render") is None
        assert store.get_method("net.minecraft.client.Nope", "tick") is None

    def test_get_method_excerpt_clamped_at_start(self, store):
        """Test the excerpt of a method near line 1 starts at line 1."""
        result = store.get_method("default.Standalone", "run")
        assert result.method.line_start == 2
        assert result.excerpt_text.startswith("class Standalone {")

    def test_extract_excerpt_bounds(self):
        text = "a\nb\nc\nd\ne\nf\ng\nh\ni"
        assert extract_excerpt(text, 1, 1) == "a\nb\nc\nd"
        assert extract_excerpt(text, 5, 5) == "b\nc\nd\ne\nf\ng\nh"
        assert extract_excerpt(text, 8, 9) == "e\nf\ng\nh\ni"


class TestHierarchy:
    """Test find_hierarchy linear scans."""

    def test_subclasses(self, store):
        entries = store.find_hierarchy("LivingEntity", HierarchyDirection.SUBCLASSES)
        assert [e.qualified_name for e in entries] == ["net.minecraft.entity.player.PlayerEntity"]

    def test_implementors(self, store):
        entries = store.find_hierarchy("Tickable", HierarchyDirection.IMPLEMENTORS)
        assert [e.qualified_name for e in entries] == ["net.minecraft.client.Minecraft"]

    def test_unknown_type(self, store):
        assert store.find_hierarchy("Nothing", HierarchyDirection.SUBCLASSES) == []


class TestStoreState:
    """Test manifest memoization and invalidation."""

    def test_versions(self, store, corpus):
        assert store.is_ready()
        assert store.corpus_version == corpus.version
        assert store.secondary_corpus_version == "0.100.0"

    def test_invalidate_picks_up_rebuild(self, store, corpus):
        """Test invalidate drops cached shards after a rebuild."""
        assert store.search("Extra") == []

        (corpus.primary_source_dir() / "net/minecraft/client/Extra.java").write_text(
            "package net.minecraft.client;\n\npublic class Extra {\n}\n"
        )
        build_index(corpus)
        assert store.search("Extra") == []

        store.invalidate()
        assert [r.name for r in store.search("Extra")] == ["Extra"]
