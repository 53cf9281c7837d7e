"""Command-line interface for mcdev MCP.

Usage:
    python -m mcp_mcdev serve
    python -m mcp_mcdev rebuild [-v VERSION] [--secondary-version V] [--source-dir DIR] [--secondary-dir DIR]
    python -m mcp_mcdev ingest DUMP [-v VERSION]
    python -m mcp_mcdev status
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from .callgraph import CallGraphStore
from .config import Config
from .indexer import Indexer, load_manifest
from .server import cli_main, configure_logging

logger = logging.getLogger("mcp-mcdev")


def _print_progress(stage: str, progress: int, message: str) -> None:
    print(f"[{stage}] {progress}% - {message}")


def resolve_rebuild_version(config: Config, requested: str | None) -> str:
    """Pick the corpus version to rebuild.

    An explicit version wins. Otherwise the version of the current manifest
    is reused if its sources are still cached, or the only cached version is
    used.

    Raises:
        ValueError: If no version can be chosen
    """
    if requested:
        return requested

    available = config.available_versions()
    manifest = load_manifest(config)
    if manifest and manifest.corpus_version in available:
        return manifest.corpus_version
    if len(available) == 1:
        print(f"Auto-detected version: {available[0]}")
        return available[0]
    if available:
        raise ValueError(f"Multiple cached versions ({', '.join(available)}). Specify one with -v.")
    raise ValueError(f"No cached sources found under {config.cache_dir}.")


def cmd_rebuild(config: Config, args: argparse.Namespace) -> int:
    config.ensure_dirs()
    version = resolve_rebuild_version(config, args.version)
    secondary_version = args.secondary_version or config.secondary_version

    primary_root = Path(args.source_dir) if args.source_dir else config.primary_source_dir(version)
    secondary_root = (
        Path(args.secondary_dir) if args.secondary_dir else config.secondary_source_dir(secondary_version)
    )

    if not primary_root.is_dir():
        print(f"Source directory not found: {primary_root}", file=sys.stderr)
        return 1

    print(f"Rebuilding index for {version}...")
    result = Indexer(config).build(
        primary_root=primary_root,
        corpus_version=version,
        secondary_root=secondary_root,
        secondary_corpus_version=secondary_version,
        progress_cb=_print_progress,
    )
    print(f"Index rebuilt: {result.class_count} classes in {result.packages_indexed} packages")
    return 0


def cmd_ingest(config: Config, args: argparse.Namespace) -> int:
    dump_path = Path(args.dump).expanduser()
    if not dump_path.is_file():
        print(f"Dump file not found: {dump_path}", file=sys.stderr)
        return 1

    store = CallGraphStore(config.callgraph_db_path(args.version))
    count = store.rebuild(dump_path, progress_cb=_print_progress)
    stats = store.stats()
    store.close()

    print(f"Callgraph database ready: {count} call references")
    if stats:
        print(f"  Distinct callers: {stats.distinct_callers}")
        print(f"  Distinct callees: {stats.distinct_callees}")
    return 0


def cmd_status(config: Config, args: argparse.Namespace) -> int:
    manifest = load_manifest(config)
    if manifest is None:
        print("Status: Not initialized")
        print("Run `mcp-mcdev rebuild` to build the index.")
        return 0

    print("Status: Initialized")
    print(f"  Version: {manifest.corpus_version}")
    if manifest.secondary_corpus_version:
        print(f"  Secondary version: {manifest.secondary_corpus_version}")
    print(f"  Primary packages: {len(manifest.primary_packages)}")
    print(f"  Secondary packages: {len(manifest.secondary_packages)}")
    print(f"  Index generated: {manifest.generated_at}")

    store = CallGraphStore(config.callgraph_db_path(manifest.corpus_version))
    stats = store.stats()
    store.close()
    if stats:
        print(f"  Callgraph: {stats.total_edges} call references")
    else:
        print("  Callgraph: not ingested (run `mcp-mcdev ingest <dump>`)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-mcdev",
        description="mcdev MCP - symbol index and call graph for decompiled Java sources",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("serve", help="Run the MCP server on stdio")

    rebuild = subparsers.add_parser("rebuild", help="Rebuild the symbol index from cached sources")
    rebuild.add_argument("-v", "--version", help="Corpus version (auto-detected if not specified)")
    rebuild.add_argument("--secondary-version", help="Secondary (API) corpus version")
    rebuild.add_argument("--source-dir", help="Primary source root (overrides the cache layout)")
    rebuild.add_argument("--secondary-dir", help="Secondary source root (overrides the cache layout)")

    ingest = subparsers.add_parser("ingest", help="Ingest a call dump into the callgraph database")
    ingest.add_argument("dump", help="Path to the TAB-delimited call dump")
    ingest.add_argument("-v", "--version", help="Corpus version the dump belongs to")

    subparsers.add_parser("status", help="Show index and callgraph status")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        cli_main()
        return

    configure_logging(logging.WARNING)
    config = Config.from_env()
    if getattr(args, "version", None):
        config = replace(config, version=args.version)

    commands = {
        "rebuild": cmd_rebuild,
        "ingest": cmd_ingest,
        "status": cmd_status,
    }
    try:
        code = commands[args.command](config, args)
    except Exception as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
