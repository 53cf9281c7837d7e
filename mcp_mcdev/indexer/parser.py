"""
Pattern-based Java declaration parser for indexing.

Extracts the shape of the first top-level type in a file (kind, supertype,
interfaces, fields, methods with line ranges) using regular expressions
instead of a grammar. This is a deliberate precision/speed tradeoff:

- Only the first type header is indexed. Members of nested and anonymous
  classes are absorbed into the outer declaration.
- Comments and string literals are scanned like code, so a declaration-shaped
  comment can produce a false positive. ``JavaParser(mask_comments=True)``
  blanks them first with tree-sitter.
- Method end lines come from brace counting, which string literals containing
  braces can desynchronize. Unbalanced bodies fall back to
  ``line_start + METHOD_END_FALLBACK``.
"""

import bisect
import re
from pathlib import Path

import tree_sitter_java as ts_java
from tree_sitter import Language, Parser

from .types import (
    ClassDeclaration,
    ClassKind,
    FieldDeclaration,
    MethodDeclaration,
    MODIFIER_KEYWORDS,
    Parameter,
    ParsedClass,
)

METHOD_END_FALLBACK = 10

# Tokens that can never be a method name or a return type.
_NON_METHOD_TOKENS = frozenset(
    {
        "class",
        "if",
        "else",
        "while",
        "for",
        "do",
        "switch",
        "case",
        "catch",
        "try",
        "finally",
        "return",
        "new",
        "throw",
        "assert",
        "yield",
        "instanceof",
        "this",
        "super",
    }
)

_MASKED_NODE_TYPES = frozenset(
    {"line_comment", "block_comment", "string_literal", "character_literal", "text_block"}
)

_TYPE = r"[\w$.]+(?:\s*<[^;=(){}]*?>)?(?:\s*\[\s*\])*(?:\.\.\.)?"

_PACKAGE_RE = re.compile(r"package\s+([\w.]+)\s*;")

_TYPE_HEADER_RE = re.compile(
    r"^[ \t]*"
    r"(?:@[\w.]+(?:\([^)]*\))?\s+)*"
    r"(?:(?:public|protected|private|abstract|final|static|strictfp|sealed|non-sealed)\s+)*"
    r"@?(?P<kind>class|interface|enum)\s+(?P<name>\w+)\s*"
    r"(?:<[^{]*?>)?\s*"
    r"(?:extends\s+(?P<extends>[^{]+?)\s*)?"
    r"(?:implements\s+(?P<implements>[^{]+?)\s*)?"
    r"(?:permits\s+[^{]+?\s*)?"
    r"\{",
    re.MULTILINE,
)

_FIELD_RE = re.compile(
    r"\b(?P<modifiers>(?:public|protected|private)\s+(?:(?:static|final|volatile|transient)\s+)*)"
    r"(?P<type>" + _TYPE + r")\s+(?P<name>\w+)\s*(?:=|;)"
)

_METHOD_RE = re.compile(
    r"(?:@[\w.]+(?:\([^)]*\))?\s*)*"
    r"(?P<modifiers>(?:(?:public|protected|private|static|final|abstract|synchronized|native|default|strictfp)\s+)*)"
    r"(?:<[^(){};=]*?>\s*)?"
    r"(?P<return>" + _TYPE + r")\s+(?P<name>\w+)\s*"
    r"\((?P<params>[^)]*)\)\s*"
    r"(?:throws\s+[\w$.,\s]+?)?\s*"
    r"(?P<end>[{;])"
)

_PARAM_RE = re.compile(r"(?P<type>" + _TYPE + r")\s+(?P<name>\w+)\s*$")

_MODIFIER_RES = {keyword: re.compile(rf"\b{keyword}\b") for keyword in MODIFIER_KEYWORDS}

_BRACE_RE = re.compile(r"[{}]")


def normalize_type_name(type_name: str) -> str:
    """Reduce a type reference to a bare name.

    Strips generic parameters, array and varargs markers, and keeps only the
    first dot segment. ``List<String>`` becomes ``List``; ``java.util.List[]``
    becomes ``java``. This is not name resolution.
    """
    stripped = type_name.split("<", 1)[0]
    stripped = re.sub(r"[\[\]\s]", "", stripped)
    head = stripped.split(".", 1)[0]
    return head or type_name.strip()


def extract_modifiers(declaration: str) -> list[str]:
    """Return the vocabulary keywords present in a declaration prefix, in vocabulary order."""
    return [keyword for keyword, pattern in _MODIFIER_RES.items() if pattern.search(declaration)]


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """Split on separators that are not nested inside ``<>``, ``()``, ``[]`` or ``{}``."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for char in text:
        if char in "<([{":
            depth += 1
        elif char in ">)]}":
            depth = max(depth - 1, 0)
        elif char == separator and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    tail = "".join(current)
    if tail.strip():
        parts.append(tail)
    return parts


class _LineIndex:
    """Maps character offsets to 1-based line numbers."""

    def __init__(self, content: str):
        self.offsets = [0] + [m.end() for m in re.finditer("\n", content)]
        self.lines = content.split("\n")

    def line_of(self, offset: int) -> int:
        return bisect.bisect_right(self.offsets, offset)

    def text_of(self, line: int) -> str:
        if 1 <= line <= len(self.lines):
            return self.lines[line - 1]
        return ""


class JavaParser:
    """Parse Java source files into class declarations."""

    def __init__(self, mask_comments: bool = False):
        """Initialize the parser.

        Args:
            mask_comments: Blank comments and string literals with tree-sitter
                before scanning, trading speed for fewer false positives
        """
        self.mask_comments = mask_comments
        self._ts_parser: Parser | None = None
        if mask_comments:
            self._ts_parser = Parser(Language(ts_java.language()))

    def parse_file(self, path: Path, relative_to: Path | None = None) -> ParsedClass | None:
        """Parse a Java source file.

        Args:
            path: Path to the .java file
            relative_to: Corpus root; the recorded source path is made relative to it

        Returns:
            ParsedClass or None if the file is unreadable or declares no type
        """
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return None

        source_path = path
        if relative_to is not None:
            try:
                source_path = path.relative_to(relative_to)
            except ValueError:
                pass
        return self.parse_content(source_path.as_posix(), content)

    def parse_content(self, path: str, content: str) -> ParsedClass | None:
        """Parse Java source content.

        Args:
            path: Source path to record on the declaration
            content: Java source code

        Returns:
            ParsedClass, or None when no type header is found
        """
        if self._ts_parser is not None:
            content = self._mask(content)

        header = _TYPE_HEADER_RE.search(content)
        if not header:
            return None

        package_match = _PACKAGE_RE.search(content)
        package_name = package_match.group(1) if package_match else ""

        kind = ClassKind(header.group("kind"))
        extends = self._type_list(header.group("extends"))
        implements = self._type_list(header.group("implements"))

        # Interfaces extend other interfaces; they never carry a supertype.
        if kind == ClassKind.INTERFACE:
            super_type = None
            interfaces = extends + implements
        else:
            super_type = extends[0] if extends else None
            interfaces = implements

        lines = _LineIndex(content)
        declaration = ClassDeclaration(
            kind=kind,
            source_path=path.replace("\\", "/"),
            super_type=super_type,
            interfaces=interfaces,
            fields=self._parse_fields(content, lines),
            methods=self._parse_methods(content, lines),
        )
        return ParsedClass(
            package_name=package_name,
            class_name=header.group("name"),
            declaration=declaration,
        )

    def _mask(self, content: str) -> str:
        """Blank comments and literals with spaces. Line breaks are kept so line numbers hold."""
        assert self._ts_parser is not None
        source = bytearray(content.encode("utf-8"))
        tree = self._ts_parser.parse(bytes(source))

        stack = [tree.root_node]
        while stack:
            node = stack.pop()
            if node.type in _MASKED_NODE_TYPES:
                start, end = node.start_byte, node.end_byte
                source[start:end] = re.sub(rb"[^\n]", b" ", bytes(source[start:end]))
                continue
            stack.extend(node.children)

        return source.decode("utf-8", errors="replace")

    def _type_list(self, text: str | None) -> list[str]:
        if not text:
            return []
        names = [normalize_type_name(part.strip()) for part in split_top_level(text)]
        return [name for name in names if name]

    def _parse_fields(self, content: str, lines: _LineIndex) -> list[FieldDeclaration]:
        fields: list[FieldDeclaration] = []
        for match in _FIELD_RE.finditer(content):
            line_text = lines.text_of(lines.line_of(match.start()))
            # Method signatures can look like fields; their lines carry a parameter list.
            if "(" in line_text and ")" in line_text:
                continue
            fields.append(
                FieldDeclaration(
                    name=match.group("name"),
                    declared_type=normalize_type_name(match.group("type")),
                    modifiers=extract_modifiers(match.group("modifiers")),
                )
            )
        return fields

    def _parse_methods(self, content: str, lines: _LineIndex) -> list[MethodDeclaration]:
        methods: list[MethodDeclaration] = []
        for match in _METHOD_RE.finditer(content):
            return_type = match.group("return")
            name = match.group("name")

            if return_type in _NON_METHOD_TOKENS or name in _NON_METHOD_TOKENS:
                continue
            # Constructor shape: the "return type" is really a modifier.
            if return_type in MODIFIER_KEYWORDS:
                continue

            line_start = lines.line_of(match.start("modifiers"))
            if match.group("end") == "{":
                line_end = self._find_block_end(content, match.end(), lines)
                if line_end is None:
                    line_end = line_start + METHOD_END_FALLBACK
            else:
                line_end = lines.line_of(match.end() - 1)

            methods.append(
                MethodDeclaration(
                    name=name,
                    return_type=normalize_type_name(return_type),
                    line_start=line_start,
                    line_end=line_end,
                    parameters=self._parse_params(match.group("params")),
                    modifiers=extract_modifiers(match.group("modifiers")),
                )
            )
        return methods

    def _parse_params(self, params_text: str) -> list[Parameter]:
        """Split a parameter list on top-level commas.

        Every group yields one Parameter so the count always matches the
        source; a group without a recognizable ``<Type> <name>`` tail keeps
        its text as the type and an empty name.
        """
        if not params_text.strip():
            return []

        params: list[Parameter] = []
        for part in split_top_level(params_text):
            text = " ".join(part.split())
            if not text:
                continue
            match = _PARAM_RE.search(text)
            if match:
                params.append(
                    Parameter(
                        name=match.group("name"),
                        type=normalize_type_name(match.group("type")),
                    )
                )
            else:
                params.append(Parameter(name="", type=normalize_type_name(text.split()[0])))
        return params

    def _find_block_end(self, content: str, body_start: int, lines: _LineIndex) -> int | None:
        """Line of the brace that closes a block whose ``{`` ends just before body_start."""
        depth = 1
        for brace in _BRACE_RE.finditer(content, body_start):
            if brace.group() == "{":
                depth += 1
            else:
                depth -= 1
                if depth == 0:
                    return lines.line_of(brace.start())
        return None
