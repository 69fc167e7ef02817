"""
simplemem MCP Server — persistent note store for agents

Standalone MCP server exposing add/list/search/delete over the Model
Context Protocol.  Transport is stdio by default; MCP_USE_SSE=true or
MCP_USE_HTTP=true (or --transport) serve over SSE or streamable HTTP on
$PORT (default 3002).

Architecture: thin MCP layer delegating to MemoryService.  The store is
opened once here and shared by every tool call for the process lifetime.

Usage:
    python -m simplemem.mcp.server --db ~/simple_memories.db
    python -m simplemem.mcp.server --transport streamable-http --port 3002
    MCP_USE_SSE=true PORT=4000 simplemem-mcp
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Tuple

from simplemem import __version__
from simplemem.config import (
    VALID_TRANSPORTS,
    ServerConfig,
    ValidationError,
    apply_env,
    load_config,
)
from simplemem.errors import StoreUnavailable

logger = logging.getLogger(__name__)

SERVER_NAME = "simple-memory-mcp-server"

_MCP_INSTRUCTIONS = (
    "Persistent note store (4 tools).\n"
    "\n"
    "STORE:  simple_memory_add with content (required) and optional\n"
    "        title, tags (comma-separated) and status.\n"
    "READ:   simple_memory_list for everything, oldest first;\n"
    "        simple_memory_search for a case-sensitive substring match\n"
    "        across title, tags, status and content.\n"
    "DELETE: simple_memory_delete removes exactly what\n"
    "        simple_memory_search returns for the same query.\n"
)


def build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser for the memory MCP server."""
    p = argparse.ArgumentParser(
        prog="simplemem-mcp",
        description="simplemem MCP Server — persistent note store for agents",
    )
    p.add_argument(
        "--db",
        default=None,
        help="SQLite database path (default: ~/simple_memories.db or $SIMPLE_MEMORY_DB_PATH)",
    )
    p.add_argument(
        "--config",
        default=None,
        help="JSON config file (store/activity/transport sections)",
    )
    p.add_argument(
        "--transport",
        choices=sorted(VALID_TRANSPORTS),
        default=None,
        help="MCP transport (default: stdio, or from MCP_USE_SSE / MCP_USE_HTTP)",
    )
    p.add_argument("--host", default=None, help="Bind address for sse/http")
    p.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for sse/http (default: 3002 or $PORT)",
    )
    p.add_argument(
        "--no-activity-log",
        action="store_true",
        help="Disable the activity log (same as DISABLE_SIMPLE_MEMORY_LOGGING=true)",
    )
    p.add_argument(
        "--activity-log",
        default=None,
        help="Activity log path (default: /tmp/mcp-simple-memory-server.log)",
    )
    p.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def resolve_config(args: argparse.Namespace) -> ServerConfig:
    """
    Combine config file, environment and CLI flags.

    Raises:
        ValidationError: If the resulting config is invalid.
    """
    cfg = apply_env(load_config(getattr(args, "config", None)))
    if getattr(args, "db", None):
        cfg.store.db_path = args.db
    if getattr(args, "transport", None):
        cfg.transport.mode = args.transport
    if getattr(args, "host", None):
        cfg.transport.host = args.host
    if getattr(args, "port", None) is not None:
        cfg.transport.port = args.port
    if getattr(args, "no_activity_log", False):
        cfg.activity.enabled = False
    if getattr(args, "activity_log", None):
        cfg.activity.path = args.activity_log
    errors = cfg.validate()
    if errors:
        raise ValidationError(f"Config validation failed: {'; '.join(errors)}")
    return cfg


def create_server(args=None, config: Optional[ServerConfig] = None) -> Tuple:
    """
    Create and configure the FastMCP server with memory tools.

    Args:
        args: Parsed argparse.Namespace, or None to parse from sys.argv.
        config: Pre-resolved config; resolved from args when None.

    Returns:
        (mcp_server, service) tuple.

    Raises:
        StoreUnavailable: If the store cannot be opened (fatal).
    """
    from mcp.server.fastmcp import FastMCP

    from simplemem.activity import ActivityLog
    from simplemem.mcp.tools import register_memory_tools
    from simplemem.service import MemoryService
    from simplemem.store import RecordStore

    if config is None:
        if args is None:
            args = build_parser().parse_args()
        config = resolve_config(args)

    store = RecordStore(
        db_path=config.store.db_path,
        wal_mode=config.store.wal_mode,
    )
    activity = ActivityLog.to_file(
        config.activity.path,
        max_bytes=config.activity.max_bytes,
        backup_count=config.activity.backup_count,
        enabled=config.activity.enabled,
    )
    service = MemoryService(store, activity)

    mcp = FastMCP(
        name=SERVER_NAME,
        instructions=_MCP_INSTRUCTIONS,
        host=config.transport.host,
        port=config.transport.port,
    )
    register_memory_tools(mcp, service)

    logger.info(
        "simplemem MCP server ready: db=%s, transport=%s, activity_log=%s",
        config.store.db_path, config.transport.mode,
        config.activity.path if activity.enabled else "off",
    )
    return mcp, service


def main() -> None:
    """CLI entry point — parse args, create server, run."""
    parser = build_parser()
    args = parser.parse_args()

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        config = resolve_config(args)
        mcp, service = create_server(args, config=config)
    except ValidationError as e:
        logger.error("%s", e)
        sys.exit(1)
    except StoreUnavailable as e:
        logger.error("Failed to start simple-memory server: %s", e)
        sys.exit(1)

    if config.transport.mode != "stdio":
        logger.info(
            "MCP simple-memory server running in %s mode on %s:%d",
            config.transport.mode, config.transport.host, config.transport.port,
        )
    try:
        mcp.run(transport=config.transport.mode)
    finally:
        service.activity.close()
        service.store.close()


if __name__ == "__main__":
    main()
