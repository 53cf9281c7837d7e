"""
mcdev MCP - symbol index and call graph queries over decompiled Java sources.
"""

__version__ = "0.1.0"
