"""
Tests for the indexer module.

Tests cover:
- JavaParser: Header, field and method extraction
- JavaParser: Optional comment masking
- Indexer: Shards, manifest and rebuild determinism
- Loaders: Missing and corrupt index files
"""

import json

import pytest

from conftest import SECONDARY_VERSION
from mcp_mcdev.indexer import (
    ClassKind,
    Indexer,
    JavaParser,
    Namespace,
    build_index,
    load_manifest,
    load_package_shard,
)
from mcp_mcdev.indexer.parser import METHOD_END_FALLBACK, normalize_type_name, split_top_level


# ==================== Fixtures ====================


@pytest.fixture
def parser():
    """Create a JavaParser instance."""
    return JavaParser()


SAMPLE = """package com.example;

import java.util.List;
import java.util.Map;

public abstract class Sample<T> extends Base<T> implements Runnable, Comparable<Sample<T>> {
    private static final int MAX_SIZE = 10;
    protected volatile boolean running;
    public List<String> names;

    public Sample() {
        this.running = false;
    }

    @Override
    public void run() {
        if (running) {
            tick(1);
        }
    }

    public static <K, V> Map<K, V> merge(Map<K, V> left, Map<K, V> right, int depth) {
        return left;
    }

    protected abstract int compute(int[] values);

    private synchronized void tick(int delta) {
        running = delta > 0;
    }
}
"""


# ==================== Parser Tests ====================


class TestJavaParser:
    """Test JavaParser pattern-based extraction."""

    def test_parse_header(self, parser):
        """Test package, supertype and interfaces of a simple class."""
        content = """package net.minecraft.entity.player;

public class PlayerEntity extends LivingEntity implements Attackable {}
"""
        result = parser.parse_content("PlayerEntity.java", content)
        assert result is not None
        assert result.package_name == "net.minecraft.entity.player"
        assert result.class_name == "PlayerEntity"
        assert result.qualified_name == "net.minecraft.entity.player.PlayerEntity"
        assert result.declaration.kind == ClassKind.CLASS
        assert result.declaration.super_type == "LivingEntity"
        assert "Attackable" in result.declaration.interfaces

    def test_parse_generic_header(self, parser):
        """Test generic supertypes are normalized and nested commas kept together."""
        result = parser.parse_content("Sample.java", SAMPLE)
        assert result.class_name == "Sample"
        assert result.declaration.super_type == "Base"
        assert result.declaration.interfaces == ["Runnable", "Comparable"]

    def test_parse_fields(self, parser):
        """Test field names, types and modifiers."""
        result = parser.parse_content("Sample.java", SAMPLE)
        fields = {f.name: f for f in result.declaration.fields}

        assert list(fields) == ["MAX_SIZE", "running", "names"]
        assert fields["MAX_SIZE"].declared_type == "int"
        assert fields["MAX_SIZE"].modifiers == ["private", "static", "final"]
        assert fields["running"].modifiers == ["protected", "volatile"]
        assert fields["names"].declared_type == "List"

    def test_parse_methods(self, parser):
        """Test method extraction skips constructors and keeps declaration order."""
        result = parser.parse_content("Sample.java", SAMPLE)
        names = [m.name for m in result.declaration.methods]
        assert names == ["run", "merge", "compute", "tick"]

    def test_method_lines(self, parser):
        """Test method line ranges from brace matching."""
        result = parser.parse_content("Sample.java", SAMPLE)
        methods = {m.name: m for m in result.declaration.methods}

        assert (methods["run"].line_start, methods["run"].line_end) == (16, 20)
        assert (methods["merge"].line_start, methods["merge"].line_end) == (22, 24)
        assert (methods["tick"].line_start, methods["tick"].line_end) == (28, 30)

    def test_abstract_method_ends_on_own_line(self, parser):
        """Test a semicolon-terminated method ends where it starts."""
        result = parser.parse_content("Sample.java", SAMPLE)
        compute = next(m for m in result.declaration.methods if m.name == "compute")
        assert compute.line_start == compute.line_end == 26
        assert compute.modifiers == ["protected", "abstract"]
        assert [(p.type, p.name) for p in compute.parameters] == [("int", "values")]

    def test_generic_parameters_not_oversplit(self, parser):
        """Test commas inside generic arguments do not split parameters."""
        result = parser.parse_content("Sample.java", SAMPLE)
        merge = next(m for m in result.declaration.methods if m.name == "merge")

        assert len(merge.parameters) == 3
        assert [p.name for p in merge.parameters] == ["left", "right", "depth"]
        assert merge.parameters[0].type == "Map"
        assert merge.return_type == "Map"
        assert merge.modifiers == ["public", "static"]

    def test_nested_generic_parameter(self, parser):
        """Test a doubly nested generic parameter counts once."""
        content = """public class Holder {
    public void put(Map<String, List<Integer>> data, int count) {}
}
"""
        result = parser.parse_content("Holder.java", content)
        put = result.declaration.methods[0]
        assert len(put.parameters) == 2
        assert put.signature == "void put(Map data, int count)"
        assert put.line_start == put.line_end == 2

    def test_unbalanced_body_uses_fallback(self, parser):
        """Test the end line falls back when the body never closes."""
        content = """public class Broken {
    public void open() {
        if (ready) {
"""
        result = parser.parse_content("Broken.java", content)
        method = result.declaration.methods[0]
        assert method.name == "open"
        assert method.line_start == 2
        assert method.line_end == 2 + METHOD_END_FALLBACK

    def test_parse_interface(self, parser):
        """Test an interface records its extends list as interfaces."""
        content = """package net.minecraft.util;

public interface Ticker extends Runnable, AutoCloseable {
    void tick();

    default boolean isActive() {
        return true;
    }
}
"""
        result = parser.parse_content("Ticker.java", content)
        decl = result.declaration
        assert decl.kind == ClassKind.INTERFACE
        assert decl.super_type is None
        assert decl.interfaces == ["Runnable", "AutoCloseable"]
        assert [m.name for m in decl.methods] == ["tick", "isActive"]
        assert decl.methods[1].modifiers == []

    def test_parse_enum(self, parser):
        """Test enum kind."""
        content = """package net.minecraft.util;

public enum Direction {
    NORTH, SOUTH;
}
"""
        result = parser.parse_content("Direction.java", content)
        assert result.declaration.kind == ClassKind.ENUM
        assert result.class_name == "Direction"

    def test_no_type_declaration(self, parser):
        """Test files without a type header return None."""
        assert parser.parse_content("package-info.java", "package net.minecraft;\n") is None

    def test_missing_package(self, parser):
        """Test a class without a package statement."""
        result = parser.parse_content("Foo.java", "class Foo {\n}\n")
        assert result.package_name == ""
        assert result.qualified_name == "Foo"

    def test_overloads_all_recorded(self, parser):
        """Test overloaded methods are all kept."""
        content = """public class Math2 {
    public int add(int a, int b) {
        return a + b;
    }

    public long add(long a, long b) {
        return a + b;
    }
}
"""
        result = parser.parse_content("Math2.java", content)
        assert [m.name for m in result.declaration.methods] == ["add", "add"]
        assert [m.return_type for m in result.declaration.methods] == ["int", "long"]

    def test_parse_file_relative_path(self, parser, tmp_path):
        """Test parse_file records the path relative to the corpus root."""
        source = tmp_path / "net" / "example" / "Thing.java"
        source.parent.mkdir(parents=True)
        source.write_text("package net.example;\n\npublic class Thing {\n}\n")

        result = parser.parse_file(source, relative_to=tmp_path)
        assert result.declaration.source_path == "net/example/Thing.java"

    def test_parse_file_missing(self, parser, tmp_path):
        """Test unreadable files return None."""
        assert parser.parse_file(tmp_path / "Missing.java") is None


class TestCommentMasking:
    """Test the tree-sitter masking pre-pass."""

    CONTENT = """package a;

public class Commented {
    // public int ghost;
    /* public void phantom() { } */
    public int real;
    public String label = "public int fake;";
    public void tick() {
    }
}
"""

    def test_unmasked_scans_comments(self):
        """Test the default parser picks up declarations inside comments."""
        result = JavaParser().parse_content("Commented.java", self.CONTENT)
        field_names = [f.name for f in result.declaration.fields]
        assert "ghost" in field_names
        assert "fake" in field_names
        assert "phantom" in [m.name for m in result.declaration.methods]

    def test_masked_ignores_comments_and_strings(self):
        """Test masking removes comment and string false positives."""
        result = JavaParser(mask_comments=True).parse_content("Commented.java", self.CONTENT)
        assert [f.name for f in result.declaration.fields] == ["real", "label"]
        assert [m.name for m in result.declaration.methods] == ["tick"]

    def test_masked_keeps_line_numbers(self):
        """Test masking preserves line numbering."""
        result = JavaParser(mask_comments=True).parse_content("Commented.java", self.CONTENT)
        tick = result.declaration.methods[0]
        assert (tick.line_start, tick.line_end) == (8, 9)


class TestTypeHelpers:
    """Test type name helpers."""

    def test_normalize_type_name(self):
        assert normalize_type_name("List<String>") == "List"
        assert normalize_type_name("java.util.List[]") == "java"
        assert normalize_type_name("int[][]") == "int"
        assert normalize_type_name("Map<K, V>") == "Map"

    def test_split_top_level(self):
        parts = split_top_level("Map<K, V> a, int[] b, Function<A, B> c")
        assert [p.strip() for p in parts] == ["Map<K, V> a", "int[] b", "Function<A, B> c"]


# ==================== Indexer Tests ====================


class TestIndexer:
    """Test Indexer shard and manifest output."""

    def test_find_java_files(self, corpus):
        """Test Java files are found in sorted order."""
        indexer = Indexer(corpus)
        files = indexer.find_java_files(corpus.primary_source_dir())
        assert len(files) == 7
        assert files == sorted(files)

    def test_find_java_files_missing_root(self, config):
        """Test a missing root yields no files."""
        indexer = Indexer(config)
        assert indexer.find_java_files(config.home_dir / "nope") == []
        assert indexer.find_java_files(None) == []

    def test_build(self, corpus):
        """Test build result and manifest."""
        result = build_index(corpus)

        assert result.class_count == 7
        assert result.skipped_files == 1
        assert result.primary_packages == [
            "default",
            "net.minecraft.client",
            "net.minecraft.entity",
            "net.minecraft.entity.player",
            "net.minecraft.util",
            "net.minecraftforge.common",
        ]
        assert result.secondary_packages == ["net.fabricmc.api"]
        assert result.packages_indexed == 7

        manifest = load_manifest(corpus)
        assert manifest.corpus_version == corpus.version
        assert manifest.secondary_corpus_version == SECONDARY_VERSION
        assert manifest.primary_packages == result.primary_packages

    def test_shard_format(self, corpus):
        """Test shard JSON keys."""
        build_index(corpus)

        path = corpus.shard_path(Namespace.PRIMARY, "net.minecraft.client")
        data = json.loads(path.read_text())
        assert data["package"] == "net.minecraft.client"

        minecraft = data["classes"]["Minecraft"]
        assert minecraft["kind"] == "class"
        assert minecraft["super"] is None
        assert minecraft["interfaces"] == ["Tickable"]
        assert minecraft["sourcePath"] == "net/minecraft/client/Minecraft.java"
        assert [f["name"] for f in minecraft["fields"]] == ["instance", "fps"]

        tick = minecraft["methods"][1]
        assert tick == {
            "name": "tick",
            "returnType": "void",
            "params": [],
            "modifiers": ["public"],
            "lineStart": 13,
            "lineEnd": 15,
        }

    def test_default_package_shard(self, corpus):
        """Test classes without a package land in the default shard."""
        build_index(corpus)
        shard = load_package_shard(corpus, Namespace.PRIMARY, "default")
        assert list(shard.classes) == ["Standalone"]

    def test_secondary_shard(self, corpus):
        """Test secondary sources are written to their own namespace."""
        build_index(corpus)
        shard = load_package_shard(corpus, Namespace.SECONDARY, "net.fabricmc.api")
        assert shard.classes["ModInitializer"].kind == ClassKind.INTERFACE
        assert load_package_shard(corpus, Namespace.PRIMARY, "net.fabricmc.api") is None

    def test_rebuild_is_byte_identical(self, corpus):
        """Test rebuilding an unchanged tree produces identical shards."""
        build_index(corpus)
        shard_files = sorted(corpus.index_dir.glob("*/*.json"))
        first = {p: p.read_bytes() for p in shard_files}

        build_index(corpus)
        second = {p: p.read_bytes() for p in sorted(corpus.index_dir.glob("*/*.json"))}

        assert first == second

    def test_build_without_secondary(self, config):
        """Test a build with only a primary root."""
        config.primary_source_dir().mkdir(parents=True)
        (config.primary_source_dir() / "A.java").write_text("package p;\n\npublic class A {\n}\n")

        result = Indexer(config).build(config.primary_source_dir(), corpus_version="test")
        assert result.class_count == 1
        assert result.secondary_packages == []
        assert load_manifest(config).secondary_corpus_version is None

    def test_progress_callback(self, corpus):
        """Test progress reports start at 0 and end at 100."""
        events = []
        build_index(corpus, progress_cb=lambda stage, pct, msg: events.append((stage, pct)))

        assert events[0] == ("index", 0)
        assert events[-1] == ("index", 100)
        assert all(0 <= pct <= 100 for _, pct in events)


class TestLoaders:
    """Test manifest and shard loaders."""

    def test_missing_manifest(self, config):
        assert load_manifest(config) is None

    def test_corrupt_manifest(self, config):
        """Test a corrupt manifest reads as absent."""
        config.ensure_dirs()
        config.manifest_path.write_text("{not json")
        assert load_manifest(config) is None

    def test_manifest_missing_version(self, config):
        config.ensure_dirs()
        config.manifest_path.write_text(json.dumps({"packages": {}}))
        assert load_manifest(config) is None

    def test_corrupt_shard(self, config):
        """Test a corrupt shard reads as absent."""
        config.ensure_dirs()
        config.shard_path(Namespace.PRIMARY, "broken").write_text("[1, 2")
        assert load_package_shard(config, Namespace.PRIMARY, "broken") is None
