"""
MCP Tool definitions for mcdev.

All tools are defined here with their schemas.
Handlers are implemented in handlers.py.
"""

from typing import Any

# Tool schema type
Tool = dict[str, Any]


# ==================== Source Tools ====================

SOURCE_TOOLS: list[Tool] = [
    {
        "name": "mc_search",
        "description": "Search for game or modding API classes, methods, or fields by name. Case-insensitive substring match, at most 50 results.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Class, method, or field name (or partial name)"},
                "type": {
                    "type": "string",
                    "description": "Optional filter by symbol kind",
                    "enum": ["class", "method", "field"],
                },
            },
            "required": ["query"],
        },
    },
    {
        "name": "mc_list_classes",
        "description": "List classes in a package and its sub-packages.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "package": {"type": "string", "description": "Dotted package name (e.g., 'net.minecraft.client')"},
            },
            "required": ["package"],
        },
    },
    {
        "name": "mc_list_packages",
        "description": "List indexed packages.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "namespace": {
                    "type": "string",
                    "description": "Namespace filter (optional, lists both if not specified)",
                    "enum": ["primary", "secondary"],
                },
            },
        },
    },
    {
        "name": "mc_get_class",
        "description": "Get the full decompiled source of a class, with its supertype, interfaces, fields and method signatures.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "class_name": {
                    "type": "string",
                    "description": "Fully qualified class name (e.g., 'net.minecraft.client.Minecraft')",
                },
            },
            "required": ["class_name"],
        },
    },
    {
        "name": "mc_get_method",
        "description": "Get the source of one method with three lines of surrounding context.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "class_name": {"type": "string", "description": "Fully qualified class name"},
                "method_name": {"type": "string", "description": "Method name (e.g., 'tick', 'render')"},
            },
            "required": ["class_name", "method_name"],
        },
    },
    {
        "name": "mc_find_hierarchy",
        "description": "Find classes that extend or implement a type. Types are recorded by simple name (e.g., 'LivingEntity').",
        "inputSchema": {
            "type": "object",
            "properties": {
                "class_name": {"type": "string", "description": "Supertype or interface name as recorded in the index"},
                "direction": {
                    "type": "string",
                    "description": "subclasses = extends the type, implementors = implements the interface",
                    "enum": ["subclasses", "implementors"],
                },
            },
            "required": ["class_name", "direction"],
        },
    },
]


# ==================== Callgraph Tools ====================

CALLGRAPH_TOOLS: list[Tool] = [
    {
        "name": "mc_find_refs",
        "description": "Find callers (who calls this method) or callees (what this method calls) from the callgraph database. At most 100 results.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "class_name": {"type": "string", "description": "Fully qualified class name"},
                "method_name": {"type": "string", "description": "Method name to find references for"},
                "direction": {
                    "type": "string",
                    "description": "callers = who calls this method, callees = what this method calls",
                    "enum": ["callers", "callees"],
                },
            },
            "required": ["class_name", "method_name", "direction"],
        },
    },
    {
        "name": "mc_search_methods",
        "description": "Search methods in the callgraph by class or method name substring.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Substring of a class or method name"},
                "limit": {"type": "integer", "description": "Maximum results, 1 to 100 (default: 50)"},
            },
            "required": ["query"],
        },
    },
    {
        "name": "mc_callgraph_stats",
        "description": "Get callgraph totals (edges, distinct callers, distinct callees).",
        "inputSchema": {
            "type": "object",
            "properties": {},
        },
    },
    {
        "name": "mc_callgraph_ingest",
        "description": "Rebuild the callgraph database from a TAB-delimited call dump.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "dump_path": {"type": "string", "description": "Path to the call dump file"},
            },
            "required": ["dump_path"],
        },
    },
]


# ==================== Index Tools ====================

INDEX_TOOLS: list[Tool] = [
    {
        "name": "mc_index_status",
        "description": "Get status of the symbol index and callgraph database (versions, package counts).",
        "inputSchema": {
            "type": "object",
            "properties": {},
        },
    },
    {
        "name": "mc_index_rebuild",
        "description": "Rebuild the symbol index from cached decompiled sources.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "version": {"type": "string", "description": "Corpus version (optional, defaults to configured version)"},
                "secondary_version": {"type": "string", "description": "Secondary (API) corpus version (optional)"},
            },
        },
    },
]


# All tools combined
ALL_TOOLS: list[Tool] = [
    *SOURCE_TOOLS,
    *CALLGRAPH_TOOLS,
    *INDEX_TOOLS,
]
