"""
simplemem MCP Tools — 4 memory tools for MCP integration.

Thin wrappers around MemoryService.  Every tool returns a JSON-able dict
with a ``status`` of "ok" or "error"; errors are reported to the caller
and never propagate into the server loop.

    simple_memory_add     — store a memory (content + optional metadata)
    simple_memory_list    — all memories, oldest first
    simple_memory_search  — case-sensitive substring search
    simple_memory_delete  — delete everything a search would return
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

from simplemem.mcp.formatting import format_items, format_records
from simplemem.service import MemoryService
from simplemem.types import OperationResult

logger = logging.getLogger(__name__)

TOOL_NAMES = (
    "simple_memory_add",
    "simple_memory_list",
    "simple_memory_search",
    "simple_memory_delete",
)


def result_to_response(result: OperationResult) -> Dict[str, Any]:
    """Translate a service outcome into the tool response contract."""
    if not result.ok:
        return {
            "status": "error",
            "error": result.error,
            "message": result.message,
        }
    response: Dict[str, Any] = {
        "status": "ok",
        "message": result.message,
        "count": result.count,
    }
    if result.operation in ("list", "search"):
        response["items"] = format_items(result.records)
        response["text"] = format_records(result.records) or result.message
    if result.operation == "search":
        response["no_match"] = result.no_match
    if result.operation == "add" and result.records:
        response["id"] = result.records[0].id
        response["created_at"] = result.records[0].created_at
    return response


def _invoke(tool: str, fn: Callable[[], OperationResult]) -> Dict[str, Any]:
    t0 = time.monotonic()
    try:
        return result_to_response(fn())
    except Exception as e:
        logger.exception("%s raised unexpectedly", tool)
        return {"status": "error", "error": "internal", "message": f"{tool} failed: {e}"}
    finally:
        logger.debug("%s done in %.1f ms", tool, (time.monotonic() - t0) * 1000)


def register_memory_tools(mcp, service: MemoryService) -> None:
    """
    Register the 4 memory MCP tools on a FastMCP server instance.

    Args:
        mcp: FastMCP server instance (or anything with a ``tool()`` decorator).
        service: MemoryService bound to the shared store.
    """

    @mcp.tool()
    def simple_memory_add(
        content: str,
        title: Optional[str] = None,
        tags: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Append a memory to the simple-memory database.

        Args:
            content: The memory text (required, non-empty).
            title: Short title.
            tags: Comma-separated tags, e.g. "go,db".
            status: Free-form status label, e.g. "open".
        """
        return _invoke(
            "simple_memory_add",
            lambda: service.add(content, title=title, tags=tags, status=status),
        )

    @mcp.tool()
    def simple_memory_list() -> Dict[str, Any]:
        """List all memories, oldest first (one per line in ``text``)."""
        return _invoke("simple_memory_list", service.list)

    @mcp.tool()
    def simple_memory_search(query: str) -> Dict[str, Any]:
        """Search for memories containing the query substring.

        Matching is case-sensitive and checks title, tags, status and content.

        Args:
            query: Substring to search for.
        """
        return _invoke("simple_memory_search", lambda: service.search(query))

    @mcp.tool()
    def simple_memory_delete(query: str) -> Dict[str, Any]:
        """Delete all memories containing the query substring.

        Removes exactly the memories simple_memory_search returns for the
        same query.

        Args:
            query: Substring to match for deletion.
        """
        return _invoke("simple_memory_delete", lambda: service.delete(query))
