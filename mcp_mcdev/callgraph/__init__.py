"""
Call-graph ingestion and queries backed by SQLite.
"""

from .ingest import CallRecord, ingest_callgraph, parse_call_line
from .query import CallGraphNotFoundError, CallGraphStats, CallGraphStore, MethodRef

__all__ = [
    "CallRecord",
    "ingest_callgraph",
    "parse_call_line",
    "CallGraphNotFoundError",
    "CallGraphStats",
    "CallGraphStore",
    "MethodRef",
]
