"""
Tool handlers for mcdev MCP Server.

Implements the actual logic for each tool defined in definitions.py.
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Any

from ..callgraph import CallGraphNotFoundError, CallGraphStore
from ..callgraph.query import DEFAULT_SEARCH_LIMIT, MAX_REFS
from ..config import Config
from ..indexer import build_index
from ..indexer.types import IndexBuildResult, Namespace
from ..storage import HierarchyDirection, SearchKind, SourceStore

logger = logging.getLogger(__name__)


class InitState(str, Enum):
    """Lifecycle of the lazily built symbol index."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


def _log_progress(stage: str, progress: int, message: str) -> None:
    logger.info(f"[{stage}] {progress}% - {message}")


class ToolHandlers:
    """Handlers for all MCP tools.

    This class owns the source store and the callgraph store and builds the
    symbol index on the first query that needs it. Concurrent first callers
    share one initialization task; a failed initialization is retried on the
    next call.
    """

    def __init__(self, config: Config):
        """Initialize tool handlers.

        Args:
            config: Resolved configuration
        """
        self.config = config
        self.source_store = SourceStore(config)
        self.callgraph = CallGraphStore(config.callgraph_db_path())

        self._state = InitState.UNINITIALIZED
        self._init_task: asyncio.Task | None = None
        self._init_error: str | None = None

    @property
    def state(self) -> InitState:
        return self._state

    async def handle_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Route tool call to appropriate handler.

        Args:
            name: Tool name
            arguments: Tool arguments

        Returns:
            Tool result
        """
        handler = getattr(self, f"_handle_{name}", None)
        if handler is None:
            raise ValueError(f"Unknown tool: {name}")
        return await handler(arguments)

    # ==================== Initialization ====================

    async def ensure_initialized(self) -> None:
        """Make sure the symbol index exists, building it at most once at a time.

        Raises:
            RuntimeError: If no decompiled sources are available
            OSError: If the index cannot be written
        """
        if self._state == InitState.READY and self.source_store.is_ready():
            return

        if self._init_task is None or self._init_task.done():
            self._state = InitState.INITIALIZING
            self._init_task = asyncio.create_task(self._initialize())

        # Cancelling one caller leaves the shared build running.
        await asyncio.shield(self._init_task)

    async def _initialize(self) -> None:
        try:
            if not self.source_store.is_ready():
                source_dir = self.config.primary_source_dir()
                if not source_dir.is_dir():
                    raise RuntimeError(
                        f"No decompiled sources at {source_dir}. Decompile version {self.config.version} first."
                    )
                logger.info(f"Building symbol index for {self.config.version}")
                await asyncio.to_thread(build_index, self.config, progress_cb=_log_progress)
                self.source_store.invalidate()
        except Exception as e:
            self._state = InitState.FAILED
            self._init_error = str(e)
            logger.error(f"Index initialization failed: {e}")
            raise

        self._state = InitState.READY
        self._init_error = None

    async def _require_index(self) -> dict[str, Any] | None:
        """Return an error result if the index cannot be made ready, else None."""
        try:
            await self.ensure_initialized()
        except Exception as e:
            return {"success": False, "error": f"Index not available: {e}"}
        return None

    # ==================== Source Tools ====================

    async def _handle_mc_search(self, args: dict[str, Any]) -> dict[str, Any]:
        """Search classes, fields and methods by name."""
        query = args.get("query", "")
        kind_arg = args.get("type")

        try:
            kind = SearchKind(kind_arg) if kind_arg else None
        except ValueError:
            return {"success": False, "error": f"Invalid type: {kind_arg}. Use class, method or field."}

        error = await self._require_index()
        if error:
            return error

        results = self.source_store.search(query, kind)
        return {
            "success": True,
            "results": [r.to_dict() for r in results],
            "count": len(results),
        }

    async def _handle_mc_list_classes(self, args: dict[str, Any]) -> dict[str, Any]:
        """List classes under a package prefix."""
        package = args.get("package", "")

        error = await self._require_index()
        if error:
            return error

        classes = self.source_store.list_classes(package)
        return {
            "success": True,
            "classes": [c.to_dict() for c in classes],
            "count": len(classes),
        }

    async def _handle_mc_list_packages(self, args: dict[str, Any]) -> dict[str, Any]:
        """List indexed packages."""
        namespace_arg = args.get("namespace")

        try:
            namespace = Namespace(namespace_arg) if namespace_arg else None
        except ValueError:
            return {"success": False, "error": f"Invalid namespace: {namespace_arg}. Use primary or secondary."}

        error = await self._require_index()
        if error:
            return error

        packages = self.source_store.list_packages(namespace)
        return {
            "success": True,
            "packages": packages,
            "count": len(packages),
        }

    async def _handle_mc_get_class(self, args: dict[str, Any]) -> dict[str, Any]:
        """Get class source and declaration summary."""
        class_name = args.get("class_name", "")

        error = await self._require_index()
        if error:
            return error

        result = self.source_store.get_class(class_name)
        if result is None:
            return {"success": False, "error": f"Class not found: {class_name}"}

        declaration = result.declaration
        return {
            "success": True,
            "class_name": class_name,
            "kind": declaration.kind.value,
            "super": declaration.super_type,
            "interfaces": declaration.interfaces,
            "fields": [f"{f.declared_type} {f.name}" for f in declaration.fields],
            "methods": [m.signature for m in declaration.methods],
            "source_path": result.source_path,
            "source": result.source_text,
        }

    async def _handle_mc_get_method(self, args: dict[str, Any]) -> dict[str, Any]:
        """Get a method's source excerpt."""
        class_name = args.get("class_name", "")
        method_name = args.get("method_name", "")

        error = await self._require_index()
        if error:
            return error

        result = self.source_store.get_method(class_name, method_name)
        if result is None:
            return {"success": False, "error": f"Method '{method_name}' not found in class {class_name}"}

        method = result.method
        return {
            "success": True,
            "class_name": class_name,
            "method_name": method.name,
            "signature": method.signature,
            "modifiers": method.modifiers,
            "line_start": method.line_start,
            "line_end": method.line_end,
            "class_super": result.owning_class.super_type,
            "source_path": result.source_path,
            "source": result.excerpt_text,
        }

    async def _handle_mc_find_hierarchy(self, args: dict[str, Any]) -> dict[str, Any]:
        """Find subclasses or implementors of a type."""
        class_name = args.get("class_name", "")
        direction_arg = args.get("direction", HierarchyDirection.SUBCLASSES.value)

        try:
            direction = HierarchyDirection(direction_arg)
        except ValueError:
            return {"success": False, "error": f"Invalid direction: {direction_arg}. Use subclasses or implementors."}

        error = await self._require_index()
        if error:
            return error

        entries = self.source_store.find_hierarchy(class_name, direction)
        return {
            "success": True,
            "direction": direction.value,
            "classes": [e.to_dict() for e in entries],
            "count": len(entries),
        }

    # ==================== Callgraph Tools ====================

    async def _handle_mc_find_refs(self, args: dict[str, Any]) -> dict[str, Any]:
        """Find callers or callees of a method."""
        class_name = args.get("class_name", "")
        method_name = args.get("method_name", "")
        direction = args.get("direction", "callers")

        if direction not in ("callers", "callees"):
            return {"success": False, "error": f"Invalid direction: {direction}. Use callers or callees."}

        try:
            if direction == "callers":
                refs = self.callgraph.find_callers(class_name, method_name)
            else:
                refs = self.callgraph.find_callees(class_name, method_name)
        except CallGraphNotFoundError as e:
            return {"success": False, "error": str(e), "callgraph_missing": True}

        return {
            "success": True,
            "direction": direction,
            "refs": [r.to_dict() for r in refs],
            "count": len(refs),
        }

    async def _handle_mc_search_methods(self, args: dict[str, Any]) -> dict[str, Any]:
        """Search methods in the callgraph."""
        query = args.get("query", "")
        limit = max(1, min(int(args.get("limit", DEFAULT_SEARCH_LIMIT)), MAX_REFS))

        try:
            refs = self.callgraph.search_methods(query, limit=limit)
        except CallGraphNotFoundError as e:
            return {"success": False, "error": str(e), "callgraph_missing": True}

        return {
            "success": True,
            "methods": [r.to_dict() for r in refs],
            "count": len(refs),
        }

    async def _handle_mc_callgraph_stats(self, args: dict[str, Any]) -> dict[str, Any]:
        """Get callgraph totals."""
        stats = self.callgraph.stats()
        if stats is None:
            return {"success": False, "error": str(CallGraphNotFoundError(self.callgraph.db_path)), "callgraph_missing": True}
        return {"success": True, **stats.to_dict()}

    async def _handle_mc_callgraph_ingest(self, args: dict[str, Any]) -> dict[str, Any]:
        """Rebuild the callgraph database from a dump."""
        dump_path = Path(args.get("dump_path", "")).expanduser()

        if not dump_path.is_file():
            return {"success": False, "error": f"Dump file not found: {dump_path}"}

        try:
            count = await asyncio.to_thread(self.callgraph.rebuild, dump_path, _log_progress)
        except Exception as e:
            logger.error(f"Callgraph ingest failed: {e}")
            return {"success": False, "error": str(e)}

        return {
            "success": True,
            "records": count,
            "db_path": str(self.callgraph.db_path),
        }

    # ==================== Index Tools ====================

    async def _handle_mc_index_status(self, args: dict[str, Any]) -> dict[str, Any]:
        """Get status of the index and callgraph."""
        ready = self.source_store.is_ready()
        status: dict[str, Any] = {
            "ready": ready,
            "state": self._state.value,
            "error": self._init_error,
        }

        if ready:
            status.update(
                {
                    "corpus_version": self.source_store.corpus_version,
                    "secondary_corpus_version": self.source_store.secondary_corpus_version,
                    "primary_packages": len(self.source_store.list_packages(Namespace.PRIMARY)),
                    "secondary_packages": len(self.source_store.list_packages(Namespace.SECONDARY)),
                }
            )

        stats = self.callgraph.stats()
        status["callgraph"] = stats.to_dict() if stats else None

        return {
            "success": True,
            "status": status,
        }

    async def _handle_mc_index_rebuild(self, args: dict[str, Any]) -> dict[str, Any]:
        """Rebuild the symbol index."""
        version = args.get("version") or self.config.version
        secondary_version = args.get("secondary_version") or self.config.secondary_version

        # One build at a time: wait out any in-flight build, then become the
        # shared task so queries arriving mid-rebuild join it.
        while self._init_task is not None and not self._init_task.done():
            await asyncio.wait([self._init_task])

        self._state = InitState.INITIALIZING
        self._init_task = asyncio.create_task(self._rebuild(version, secondary_version))

        try:
            result = await asyncio.shield(self._init_task)
        except Exception as e:
            return {
                "success": False,
                "error": str(e),
            }

        return {
            "success": True,
            **result.to_dict(),
        }

    async def _rebuild(self, version: str, secondary_version: str | None) -> IndexBuildResult:
        try:
            result = await asyncio.to_thread(
                build_index,
                self.config,
                version,
                secondary_version,
                _log_progress,
            )
        except Exception as e:
            self._state = InitState.FAILED
            self._init_error = str(e)
            logger.error(f"Index rebuild failed: {e}")
            raise
        finally:
            self.source_store.invalidate()

        self._state = InitState.READY
        self._init_error = None
        return result
