"""
Substring Matching — the predicate shared by search and delete

A query matches a record when it occurs, case-sensitively, anywhere in the
title, tags, status or content (logical OR across fields).  There is no
tokenization, wildcard expansion or ranking.

Search and delete both build their WHERE clause through match_clause(), so
the rows a search returns are exactly the rows a delete with the same query
removes.  The visibility filter (non-empty content) is part of that clause.

SQLite's LIKE is ASCII case-insensitive and treats '%' and '_' as wildcards,
so matching uses instr() instead.
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

from simplemem.types import MemoryRecord

# Fields searched by a query, in schema order.
SEARCH_FIELDS = ("title", "tags", "status", "content")

# Rows whose content is empty after trimming are never surfaced.
# char(9..13) = tab, LF, VT, FF, CR.
VISIBLE_CLAUSE = "trim(content, ' ' || char(9, 10, 11, 12, 13)) <> ''"
_TRIM_CHARS = " \t\n\v\f\r"


def is_visible(content) -> bool:
    """Return True if content is a non-empty string after trimming."""
    return isinstance(content, str) and bool(content.strip(_TRIM_CHARS))


def match_clause(query: str, columns: Iterable[str]) -> Tuple[str, List[str]]:
    """
    Build the SQL predicate for a substring query.

    Args:
        query: Trimmed, non-empty query string.
        columns: Columns present in the table.  Optional fields missing from
            the schema read as empty strings and can never match.

    Returns:
        (sql, params) where sql includes the visibility filter.
    """
    present = set(columns)
    fields = [f for f in SEARCH_FIELDS if f in present]
    ors = " OR ".join(f"instr(coalesce({f}, ''), ?) > 0" for f in fields)
    sql = f"{VISIBLE_CLAUSE} AND ({ors})"
    return sql, [query] * len(fields)


def matches(record: MemoryRecord, query: str) -> bool:
    """
    Pure-Python equivalent of match_clause() for a materialized record.

    Not used on the query path.  It is the reference the SQL predicate is
    checked against in the test suite.
    """
    if not is_visible(record.content):
        return False
    return any(query in (getattr(record, f) or "") for f in SEARCH_FIELDS)
