"""
Memory Formatting — tool response rendering

Renders records into the structured item dicts and the plain-text block
returned by the MCP tools.  All tools delegate here so that list and
search responses share one layout.

Text layout, one record per line (empty parts omitted):

    [#12] 2026-01-05T09:14:03.120Z Deploy notes (ops,db) {open}: content
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from simplemem.types import MemoryRecord


def record_to_dict(record: MemoryRecord) -> Dict[str, Any]:
    """Structured item for JSON responses."""
    return record.to_dict()


def format_record_line(record: MemoryRecord) -> str:
    """Render a single record as one line.  Newlines in content are flattened."""
    parts = [f"[#{record.id}]"]
    if record.created_at:
        parts.append(record.created_at)
    if record.title:
        parts.append(record.title)
    if record.tags:
        parts.append(f"({record.tags})")
    if record.status:
        parts.append(f"{{{record.status}}}")
    content = " ".join(record.content.split())
    return " ".join(parts) + ": " + content


def format_records(records: Iterable[MemoryRecord]) -> str:
    """One line per record; empty string for no records."""
    return "\n".join(format_record_line(r) for r in records)


def format_items(records: Iterable[MemoryRecord]) -> List[Dict[str, Any]]:
    return [record_to_dict(r) for r in records]
