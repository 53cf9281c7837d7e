"""
Index data types for mcdev MCP.

The JSON written by ``to_dict`` is the on-disk shard and manifest format, so
key names here are part of the persisted contract.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ClassKind(str, Enum):
    """Kind of top-level type declaration."""

    CLASS = "class"
    INTERFACE = "interface"
    ENUM = "enum"


class Namespace(str, Enum):
    """Top-level partition of the indexed corpus."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


# Fixed modifier vocabulary, in the order modifiers are reported.
MODIFIER_KEYWORDS: tuple[str, ...] = (
    "public",
    "protected",
    "private",
    "static",
    "final",
    "abstract",
    "synchronized",
    "volatile",
    "transient",
    "native",
)

DEFAULT_PACKAGE = "default"


@dataclass
class FieldDeclaration:
    """A field declared in a class body."""

    name: str
    declared_type: str
    modifiers: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "type": self.declared_type,
            "modifiers": list(self.modifiers),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FieldDeclaration":
        return cls(
            name=data.get("name", ""),
            declared_type=data.get("type", ""),
            modifiers=list(data.get("modifiers", [])),
        )


@dataclass
class Parameter:
    """A method parameter as ``<type> <name>``."""

    name: str
    type: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type}


@dataclass
class MethodDeclaration:
    """A method declared in a class body.

    ``line_start`` and ``line_end`` are 1-based and inclusive. ``line_end``
    comes from brace matching and is best-effort.
    """

    name: str
    return_type: str
    line_start: int
    line_end: int
    parameters: list[Parameter] = field(default_factory=list)
    modifiers: list[str] = field(default_factory=list)

    @property
    def signature(self) -> str:
        """Display signature, e.g. ``void tick(int delta)``."""
        params = ", ".join(f"{p.type} {p.name}".strip() for p in self.parameters)
        return f"{self.return_type} {self.name}({params})"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "returnType": self.return_type,
            "params": [p.to_dict() for p in self.parameters],
            "modifiers": list(self.modifiers),
            "lineStart": self.line_start,
            "lineEnd": self.line_end,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MethodDeclaration":
        line_start = int(data.get("lineStart", 0))
        return cls(
            name=data.get("name", ""),
            return_type=data.get("returnType", ""),
            line_start=line_start,
            line_end=int(data.get("lineEnd", line_start)),
            parameters=[
                Parameter(name=p.get("name", ""), type=p.get("type", ""))
                for p in data.get("params", [])
            ],
            modifiers=list(data.get("modifiers", [])),
        )


@dataclass
class ClassDeclaration:
    """Shape of one parsed type: supertype, interfaces, fields, methods."""

    kind: ClassKind
    source_path: str
    super_type: str | None = None
    interfaces: list[str] = field(default_factory=list)
    fields: list[FieldDeclaration] = field(default_factory=list)
    methods: list[MethodDeclaration] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "super": self.super_type,
            "interfaces": list(self.interfaces),
            "fields": [f.to_dict() for f in self.fields],
            "methods": [m.to_dict() for m in self.methods],
            "sourcePath": self.source_path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClassDeclaration":
        return cls(
            kind=ClassKind(data.get("kind", ClassKind.CLASS.value)),
            source_path=data.get("sourcePath", ""),
            super_type=data.get("super"),
            interfaces=list(data.get("interfaces", [])),
            fields=[FieldDeclaration.from_dict(f) for f in data.get("fields", [])],
            methods=[MethodDeclaration.from_dict(m) for m in data.get("methods", [])],
        )


@dataclass
class ParsedClass:
    """Result of parsing one source file."""

    package_name: str
    class_name: str
    declaration: ClassDeclaration

    @property
    def qualified_name(self) -> str:
        if self.package_name:
            return f"{self.package_name}.{self.class_name}"
        return self.class_name


@dataclass
class PackageShard:
    """All classes of one package in one namespace, keyed by simple name."""

    package_name: str
    classes: dict[str, ClassDeclaration] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "package": self.package_name,
            "classes": {name: decl.to_dict() for name, decl in self.classes.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PackageShard":
        return cls(
            package_name=data["package"],
            classes={
                name: ClassDeclaration.from_dict(decl)
                for name, decl in data.get("classes", {}).items()
            },
        )


@dataclass
class CorpusManifest:
    """Authoritative list of indexed packages for one corpus version."""

    corpus_version: str
    generated_at: str
    secondary_corpus_version: str | None = None
    primary_packages: list[str] = field(default_factory=list)
    secondary_packages: list[str] = field(default_factory=list)

    def packages(self, namespace: Namespace) -> list[str]:
        if namespace == Namespace.SECONDARY:
            return self.secondary_packages
        return self.primary_packages

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "corpusVersion": self.corpus_version,
            "secondaryCorpusVersion": self.secondary_corpus_version,
            "generatedAt": self.generated_at,
            "packages": {
                Namespace.PRIMARY.value: list(self.primary_packages),
                Namespace.SECONDARY.value: list(self.secondary_packages),
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CorpusManifest":
        packages = data.get("packages", {})
        return cls(
            corpus_version=data["corpusVersion"],
            generated_at=data.get("generatedAt", ""),
            secondary_corpus_version=data.get("secondaryCorpusVersion"),
            primary_packages=list(packages.get(Namespace.PRIMARY.value, [])),
            secondary_packages=list(packages.get(Namespace.SECONDARY.value, [])),
        )


@dataclass
class IndexBuildResult:
    """Summary of one index build."""

    corpus_version: str
    secondary_corpus_version: str | None
    primary_packages: list[str] = field(default_factory=list)
    secondary_packages: list[str] = field(default_factory=list)
    class_count: int = 0
    skipped_files: int = 0

    @property
    def packages_indexed(self) -> int:
        return len(self.primary_packages) + len(self.secondary_packages)

    def to_dict(self) -> dict[str, Any]:
        return {
            "corpus_version": self.corpus_version,
            "secondary_corpus_version": self.secondary_corpus_version,
            "packages_indexed": self.packages_indexed,
            "class_count": self.class_count,
            "skipped_files": self.skipped_files,
        }
