"""
Tool definitions and handlers for mcdev MCP Server.

Categories:
- Source tools: Search and read indexed classes and methods
- Callgraph tools: Callers, callees and method search over the call graph
- Index tools: Index status and rebuild
"""

from .definitions import ALL_TOOLS
from .handlers import InitState, ToolHandlers

__all__ = ["ALL_TOOLS", "InitState", "ToolHandlers"]
