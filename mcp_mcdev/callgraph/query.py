"""
Queries over the call-graph database.

The database is opened read-only on first use and the handle is reused for
later queries. Rebuilding closes the handle first so ingestion never races an
open reader.
"""

import logging
import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .ingest import ProgressCallback, ingest_callgraph

logger = logging.getLogger(__name__)

MAX_REFS = 100
DEFAULT_SEARCH_LIMIT = 50


class CallGraphNotFoundError(RuntimeError):
    """The call-graph database has not been ingested yet."""

    def __init__(self, db_path: Path):
        super().__init__(f"Callgraph database not found at {db_path}. Run ingest first.")
        self.db_path = db_path


@dataclass
class MethodRef:
    """One side of a call edge.

    ``qualified_name`` leaves out the descriptor, so overloads share it.
    """

    type: str
    method: str
    descriptor: str = ""
    line_number: int | None = None

    @property
    def qualified_name(self) -> str:
        return f"{self.type}.{self.method}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "class_name": self.type,
            "method_name": self.method,
            "descriptor": self.descriptor,
            "qualified_name": self.qualified_name,
            "line_number": self.line_number,
        }


@dataclass
class CallGraphStats:
    total_edges: int
    distinct_callers: int
    distinct_callees: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_edges": self.total_edges,
            "distinct_callers": self.distinct_callers,
            "distinct_callees": self.distinct_callees,
        }


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class CallGraphStore:
    """Read-only access to one call-graph database."""

    def __init__(self, db_path: Path):
        """Initialize the store.

        Args:
            db_path: Path of callgraph.db; it need not exist yet
        """
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def exists(self) -> bool:
        return self.db_path.exists()

    def _connection(self) -> sqlite3.Connection:
        """Open the database read-only on first use. Caller holds the lock."""
        if self._conn is None:
            if not self.db_path.exists():
                raise CallGraphNotFoundError(self.db_path)
            uri = self.db_path.resolve().as_uri() + "?mode=ro"
            self._conn = sqlite3.connect(uri, uri=True, check_same_thread=False)
            logger.debug(f"Opened callgraph database {self.db_path}")
        return self._conn

    def _query(self, sql: str, params: tuple) -> list[tuple]:
        with self._lock:
            return self._connection().execute(sql, params).fetchall()

    def close(self) -> None:
        with self._lock:
            self._close_locked()

    def _close_locked(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def rebuild(self, dump_path: Path, progress_cb: ProgressCallback | None = None) -> int:
        """Re-ingest the database from a dump, closing any open reader first.

        Args:
            dump_path: TAB-delimited call dump
            progress_cb: Optional progress callback

        Returns:
            Number of call records inserted
        """
        with self._lock:
            self._close_locked()
            return ingest_callgraph(dump_path, self.db_path, progress_cb)

    # ==================== Queries ====================

    def find_callers(self, type_name: str, method_name: str) -> list[MethodRef]:
        """Methods that call ``type_name.method_name`` (at most 100).

        Raises:
            CallGraphNotFoundError: If the database has not been ingested
        """
        rows = self._query(
            """
            SELECT caller_class, caller_method, caller_desc, line_number
            FROM calls
            WHERE callee_class = ? AND callee_method = ?
            LIMIT ?
            """,
            (type_name, method_name, MAX_REFS),
        )
        return [MethodRef(type=r[0], method=r[1], descriptor=r[2] or "", line_number=r[3]) for r in rows]

    def find_callees(self, type_name: str, method_name: str) -> list[MethodRef]:
        """Methods called from ``type_name.method_name`` (at most 100).

        Raises:
            CallGraphNotFoundError: If the database has not been ingested
        """
        rows = self._query(
            """
            SELECT callee_class, callee_method, callee_desc, line_number
            FROM calls
            WHERE caller_class = ? AND caller_method = ?
            LIMIT ?
            """,
            (type_name, method_name, MAX_REFS),
        )
        return [MethodRef(type=r[0], method=r[1], descriptor=r[2] or "", line_number=r[3]) for r in rows]

    def search_methods(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[MethodRef]:
        """Case-insensitive substring search over both sides of every edge.

        Results are distinct (class, method, descriptor) triples.

        Raises:
            CallGraphNotFoundError: If the database has not been ingested
        """
        pattern = f"%{_escape_like(query)}%"
        rows = self._query(
            """
            SELECT callee_class, callee_method, callee_desc FROM calls
            WHERE callee_class LIKE ? ESCAPE '\\' OR callee_method LIKE ? ESCAPE '\\'
            UNION
            SELECT caller_class, caller_method, caller_desc FROM calls
            WHERE caller_class LIKE ? ESCAPE '\\' OR caller_method LIKE ? ESCAPE '\\'
            ORDER BY 1, 2, 3
            LIMIT ?
            """,
            (pattern, pattern, pattern, pattern, limit),
        )
        return [MethodRef(type=r[0], method=r[1], descriptor=r[2] or "") for r in rows]

    def stats(self) -> CallGraphStats | None:
        """Edge and distinct-method counts, or None if the database does not exist."""
        if not self.exists():
            return None
        with self._lock:
            conn = self._connection()
            total = conn.execute("SELECT COUNT(*) FROM calls").fetchone()[0]
            callers = conn.execute(
                "SELECT COUNT(*) FROM (SELECT DISTINCT caller_class, caller_method FROM calls)"
            ).fetchone()[0]
            callees = conn.execute(
                "SELECT COUNT(*) FROM (SELECT DISTINCT callee_class, callee_method FROM calls)"
            ).fetchone()[0]
        return CallGraphStats(total_edges=total, distinct_callers=callers, distinct_callees=callees)
