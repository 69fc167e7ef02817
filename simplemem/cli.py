"""
simplemem CLI — local access to the memory store

Commands:
    simplemem add "content" [--title T] [--tags a,b] [--status S]
    simplemem list
    simplemem search "query"
    simplemem delete "query"
    simplemem serve [--transport stdio|sse|streamable-http] [--port N]

Environment variables:
    SIMPLE_MEMORY_DB_PATH           Path to SQLite database (default: ~/simple_memories.db)
    DISABLE_SIMPLE_MEMORY_LOGGING   "true" disables the activity log
    SIMPLE_MEMORY_LOG_PATH          Activity log file
    MCP_USE_SSE / MCP_USE_HTTP      Transport for `serve`
    PORT                            Port for `serve` over sse/http

Precedence (invariant):
    CLI --flag  >  environment variable  >  compiled default

Exit codes:
    0  Success (including a delete that matched nothing)
    1  Operational error (empty content/query, store unavailable, bad config)
    2  Store failure (read/write error) or unexpected exception
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from simplemem import __version__

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_FAILURE = 2


# ---------------------------------------------------------------------------
# Stderr helpers (respect --quiet)
# ---------------------------------------------------------------------------

_quiet = False


def _info(msg: str) -> None:
    """Print progress to stderr (suppressed by --quiet)."""
    if not _quiet:
        print(msg, file=sys.stderr)


def _warn(msg: str) -> None:
    """Print warning to stderr (always visible)."""
    print(msg, file=sys.stderr)


# ---------------------------------------------------------------------------
# Service construction
# ---------------------------------------------------------------------------


def _open_service(args: argparse.Namespace):
    """Open store + activity log from env and --db.  Exits 1 if unavailable."""
    from simplemem.activity import ActivityLog
    from simplemem.config import ValidationError, apply_env, load_config
    from simplemem.errors import StoreUnavailable
    from simplemem.service import MemoryService
    from simplemem.store import RecordStore

    cfg = apply_env(load_config(getattr(args, "config", None)))
    if getattr(args, "db", None):
        cfg.store.db_path = args.db
    errors = cfg.validate()
    if errors:
        _warn(str(ValidationError(f"Config validation failed: {'; '.join(errors)}")))
        sys.exit(EXIT_USAGE)

    try:
        store = RecordStore(db_path=cfg.store.db_path, wal_mode=cfg.store.wal_mode)
    except StoreUnavailable as e:
        _warn(f"Store unavailable: {e}")
        sys.exit(EXIT_USAGE)
    activity = ActivityLog.to_file(
        cfg.activity.path,
        max_bytes=cfg.activity.max_bytes,
        backup_count=cfg.activity.backup_count,
        enabled=cfg.activity.enabled,
    )
    return MemoryService(store, activity)


def _close_service(service) -> None:
    service.activity.close()
    service.store.close()


def _finish(result, args: argparse.Namespace, *, print_records: bool = False) -> None:
    """Render an OperationResult and exit with the matching code."""
    from simplemem.mcp.formatting import format_records
    from simplemem.mcp.tools import result_to_response

    if getattr(args, "json", False):
        print(json.dumps(result_to_response(result), indent=2, ensure_ascii=False))
    elif not result.ok:
        _warn(result.message)
    elif print_records and result.records:
        print(format_records(result.records))
    else:
        _info(result.message)

    if result.ok:
        sys.exit(EXIT_OK)
    if result.error == "invalid_input":
        sys.exit(EXIT_USAGE)
    sys.exit(EXIT_FAILURE)


# ===========================================================================
# Commands
# ===========================================================================


def cmd_add(args: argparse.Namespace) -> None:
    """Add one memory."""
    service = _open_service(args)
    try:
        result = service.add(
            args.content, title=args.title, tags=args.tags, status=args.status,
        )
    finally:
        _close_service(service)
    _finish(result, args)


def cmd_list(args: argparse.Namespace) -> None:
    """Print all memories, oldest first."""
    service = _open_service(args)
    try:
        result = service.list()
    finally:
        _close_service(service)
    _finish(result, args, print_records=True)


def cmd_search(args: argparse.Namespace) -> None:
    """Print memories containing the query substring."""
    service = _open_service(args)
    try:
        result = service.search(args.query)
    finally:
        _close_service(service)
    _finish(result, args, print_records=True)


def cmd_delete(args: argparse.Namespace) -> None:
    """Delete memories containing the query substring."""
    service = _open_service(args)
    try:
        result = service.delete(args.query)
    finally:
        _close_service(service)
    _finish(result, args)


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the MCP server in foreground."""
    try:
        from simplemem.mcp.server import main as server_main
    except ImportError:
        _warn("MCP dependencies not installed. Run: pip install mcp")
        sys.exit(EXIT_USAGE)

    server_argv = ["simplemem-mcp"]
    if getattr(args, "db", None):
        server_argv.extend(["--db", args.db])
    if getattr(args, "config", None):
        server_argv.extend(["--config", args.config])
    if args.transport:
        server_argv.extend(["--transport", args.transport])
    if args.port is not None:
        server_argv.extend(["--port", str(args.port)])
    if getattr(args, "verbose", False):
        server_argv.append("--verbose")
    sys.argv = server_argv
    server_main()


# ===========================================================================
# Entry point
# ===========================================================================


def main() -> None:
    """CLI entry point: simplemem <command> [args]."""
    global _quiet

    # SUPPRESS defaults keep subparser defaults from overriding values
    # parsed at the main-parser level.
    _common = argparse.ArgumentParser(add_help=False)
    _common.add_argument(
        "--db", default=argparse.SUPPRESS,
        help="Path to SQLite database (default: $SIMPLE_MEMORY_DB_PATH or ~/simple_memories.db)",
    )
    _common.add_argument(
        "--config", default=argparse.SUPPRESS,
        help="JSON config file",
    )
    _common.add_argument(
        "--quiet", "-q", action="store_true", default=argparse.SUPPRESS,
        help="Suppress stderr progress messages",
    )
    _common.add_argument(
        "--json", action="store_true", default=argparse.SUPPRESS,
        help="Machine-readable JSON output",
    )
    _common.add_argument(
        "-v", "--verbose", action="store_true", default=argparse.SUPPRESS,
        help="Enable verbose logging",
    )

    parser = argparse.ArgumentParser(
        prog="simplemem",
        description="simplemem — persistent note store for agents",
        parents=[_common],
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command", help="Available commands")

    p_add = sub.add_parser("add", parents=[_common], help="Add a memory")
    p_add.add_argument("content", help="Memory text")
    p_add.add_argument("--title", default=None, help="Short title")
    p_add.add_argument("--tags", default=None, help="Comma-separated tags")
    p_add.add_argument("--status", default=None, help="Status label")
    p_add.set_defaults(func=cmd_add)

    p_list = sub.add_parser("list", parents=[_common], help="List all memories")
    p_list.set_defaults(func=cmd_list)

    p_search = sub.add_parser("search", parents=[_common], help="Substring search")
    p_search.add_argument("query", help="Case-sensitive substring")
    p_search.set_defaults(func=cmd_search)

    p_delete = sub.add_parser("delete", parents=[_common], help="Delete matching memories")
    p_delete.add_argument("query", help="Case-sensitive substring")
    p_delete.set_defaults(func=cmd_delete)

    p_serve = sub.add_parser("serve", parents=[_common], help="Start MCP server")
    p_serve.add_argument(
        "--transport", choices=["stdio", "sse", "streamable-http"], default=None,
        help="MCP transport (default: stdio or from MCP_USE_SSE / MCP_USE_HTTP)",
    )
    p_serve.add_argument("--port", type=int, default=None, help="Port for sse/http")
    p_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args()

    _quiet = getattr(args, "quiet", False)

    if getattr(args, "verbose", False):
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(name)s %(levelname)s %(message)s",
        )
    else:
        logging.basicConfig(level=logging.WARNING)

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_USAGE)

    try:
        args.func(args)
    except BrokenPipeError:
        # Handle broken pipe gracefully (e.g. simplemem list | head)
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        sys.exit(EXIT_OK)
    except KeyboardInterrupt:
        sys.exit(EXIT_OK)
    except Exception as e:
        _warn(f"Internal error: {e}")
        if getattr(args, "verbose", False):
            import traceback
            traceback.print_exc(file=sys.stderr)
        sys.exit(EXIT_FAILURE)


if __name__ == "__main__":
    main()
