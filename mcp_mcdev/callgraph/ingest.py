"""
Call-graph dump ingestion.

Reads the TAB-delimited dump produced by static bytecode analysis:

    seq  num  caller                 callee                       line  ...
    1    1    foo.Bar:baz()          (VIR)foo.Qux:quux()          42

and loads it into a SQLite database with one ``calls`` table and two lookup
indexes (by callee and by caller).
"""

import logging
import os
import re
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)

# (stage, percent 0-100, message); advisory only
ProgressCallback = Callable[[str, int, str], None]

BATCH_SIZE = 10_000
MIN_FIELDS = 5

_CALLER_RE = re.compile(r"(?P<type>.+):(?P<method>.+)(?P<desc>\([^)]*\))")
_CALLEE_RE = re.compile(r"\([A-Z]+\)(?P<type>.+):(?P<method>.+)(?P<desc>\([^)]*\))")

SCHEMA = """
CREATE TABLE calls (
    id INTEGER PRIMARY KEY,
    caller_class TEXT,
    caller_method TEXT,
    caller_desc TEXT,
    callee_class TEXT,
    callee_method TEXT,
    callee_desc TEXT,
    line_number INTEGER
)
"""

INDEXES = (
    "CREATE INDEX idx_callee ON calls(callee_class, callee_method)",
    "CREATE INDEX idx_caller ON calls(caller_class, caller_method)",
)

_INSERT_SQL = "INSERT INTO calls VALUES (NULL, ?, ?, ?, ?, ?, ?, ?)"


@dataclass
class CallRecord:
    """One static call edge from the dump."""

    caller_type: str
    caller_method: str
    caller_descriptor: str
    callee_type: str
    callee_method: str
    callee_descriptor: str
    line_number: int | None = None

    def as_row(self) -> tuple[str, str, str, str, str, str, int | None]:
        return (
            self.caller_type,
            self.caller_method,
            self.caller_descriptor,
            self.callee_type,
            self.callee_method,
            self.callee_descriptor,
            self.line_number,
        )


def _parse_line_number(text: str) -> int | None:
    match = re.match(r"\s*(-?\d+)", text)
    return int(match.group(1)) if match else None


def parse_call_line(line: str) -> CallRecord | None:
    """Parse one dump line.

    Args:
        line: Raw line, with or without its line terminator

    Returns:
        CallRecord, or None for blank, comment, short or non-matching lines
    """
    line = line.rstrip("\r\n")
    if not line.strip() or line.startswith("#"):
        return None

    parts = line.split("\t")
    if len(parts) < MIN_FIELDS:
        return None

    caller = _CALLER_RE.fullmatch(parts[2])
    callee = _CALLEE_RE.fullmatch(parts[3])
    if not caller or not callee:
        return None

    return CallRecord(
        caller_type=caller.group("type"),
        caller_method=caller.group("method"),
        caller_descriptor=caller.group("desc"),
        callee_type=callee.group("type"),
        callee_method=callee.group("method"),
        callee_descriptor=callee.group("desc"),
        line_number=_parse_line_number(parts[4]),
    )


def ingest_callgraph(
    dump_path: Path,
    db_path: Path,
    progress_cb: ProgressCallback | None = None,
) -> int:
    """Build the call-graph database from a dump file.

    Any existing database at ``db_path`` is removed first. The new database is
    written next to it under a temporary name and renamed into place only
    after the indexes are built, so a failed ingest leaves no database behind.

    Args:
        dump_path: TAB-delimited call dump
        db_path: Target SQLite file
        progress_cb: Optional progress callback

    Returns:
        Number of call records inserted

    Raises:
        OSError: If the dump cannot be read or the database cannot be written
        sqlite3.Error: If the database cannot be built
    """

    def report(progress: int, message: str) -> None:
        if progress_cb:
            progress_cb("callgraph", progress, message)

    report(0, "Parsing callgraph...")
    db_path.parent.mkdir(parents=True, exist_ok=True)
    db_path.unlink(missing_ok=True)
    tmp_path = db_path.with_name(db_path.name + ".tmp")
    tmp_path.unlink(missing_ok=True)

    count = 0
    skipped = 0
    conn = sqlite3.connect(tmp_path)
    try:
        conn.execute(SCHEMA)
        conn.commit()

        batch: list[tuple] = []
        with open(dump_path, encoding="utf-8", errors="replace") as dump:
            for line in dump:
                record = parse_call_line(line)
                if record is None:
                    if line.strip() and not line.startswith("#"):
                        skipped += 1
                    continue
                batch.append(record.as_row())
                if len(batch) >= BATCH_SIZE:
                    with conn:
                        conn.executemany(_INSERT_SQL, batch)
                    count += len(batch)
                    batch.clear()
                    if count % (BATCH_SIZE * 10) == 0:
                        report(50, f"Ingested {count} call references...")

        if batch:
            with conn:
                conn.executemany(_INSERT_SQL, batch)
            count += len(batch)

        report(90, "Building indexes...")
        with conn:
            for statement in INDEXES:
                conn.execute(statement)
        conn.execute("PRAGMA optimize")
    except Exception:
        conn.close()
        tmp_path.unlink(missing_ok=True)
        raise
    conn.close()

    os.replace(tmp_path, db_path)

    if skipped:
        logger.debug(f"Skipped {skipped} unparsable call lines in {dump_path}")
    logger.info(f"Ingested {count} call references into {db_path}")
    report(100, f"Ingested {count} call references.")
    return count
