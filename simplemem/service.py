"""
Memory Service — the four public operations

Each operation normalizes its input, runs one statement against the
RecordStore, and returns an OperationResult.  Store and validation errors
become error outcomes; nothing in the SimpleMemoryError taxonomy escapes.

Add and delete emit a best-effort activity notice after the write
succeeds.  The notice result is ignored.
"""

from __future__ import annotations

import logging
from typing import Optional

from simplemem.activity import ActivityLog
from simplemem.errors import InvalidInput, SimpleMemoryError
from simplemem.store import RecordStore
from simplemem.types import OperationResult

logger = logging.getLogger(__name__)

NO_MATCH_MESSAGE = "No matching memories found."


def _optional_text(value, name: str) -> str:
    """Normalize an optional text field: None → '', otherwise stripped."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidInput(f"{name} must be a string")
    return value.strip()


def _required_text(value, name: str) -> str:
    """Normalize a required text field; empty after trimming is rejected."""
    text = _optional_text(value, name)
    if not text:
        raise InvalidInput(f"{name} cannot be empty")
    return text


def _failure(operation: str, exc: SimpleMemoryError) -> OperationResult:
    if isinstance(exc, InvalidInput):
        logger.debug("%s rejected: %s", operation, exc)
    else:
        logger.warning("%s failed: %s", operation, exc)
    return OperationResult.failure(operation, exc)


class MemoryService:
    """Operation façade over a shared RecordStore."""

    def __init__(self, store: RecordStore, activity: Optional[ActivityLog] = None):
        self._store = store
        self._activity = activity if activity is not None else ActivityLog.disabled()

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def activity(self) -> ActivityLog:
        return self._activity

    # -- Operations --------------------------------------------------------

    def add(
        self,
        content: str,
        title: Optional[str] = None,
        tags: Optional[str] = None,
        status: Optional[str] = None,
    ) -> OperationResult:
        """Persist a new memory.  content is required; metadata is optional."""
        try:
            text = _required_text(content, "content")
            record = self._store.insert(
                text,
                title=_optional_text(title, "title"),
                tags=_optional_text(tags, "tags"),
                status=_optional_text(status, "status"),
            )
        except SimpleMemoryError as exc:
            return _failure("add", exc)

        self._activity.notice("add", {
            "id": record.id,
            "title": record.title,
            "tags": record.tags,
            "status": record.status,
            "content": record.content,
        })
        return OperationResult(
            operation="add", message="Memory added.", records=[record], count=1,
        )

    def list(self) -> OperationResult:
        """All memories in ascending id order."""
        try:
            records = self._store.scan_all().to_list()
        except SimpleMemoryError as exc:
            return _failure("list", exc)
        return OperationResult(
            operation="list",
            message=f"{len(records)} memories.",
            records=records,
            count=len(records),
        )

    def search(self, query: str) -> OperationResult:
        """Memories containing query in any field, ascending id."""
        try:
            q = _required_text(query, "query")
            records = self._store.scan_matching(q).to_list()
        except SimpleMemoryError as exc:
            return _failure("search", exc)
        if not records:
            return OperationResult(
                operation="search", message=NO_MATCH_MESSAGE, no_match=True,
            )
        return OperationResult(
            operation="search",
            message=f"{len(records)} matching memories.",
            records=records,
            count=len(records),
        )

    def delete(self, query: str) -> OperationResult:
        """Remove every memory search(query) would return.  Zero is a no-op."""
        try:
            q = _required_text(query, "query")
            removed = self._store.delete_matching(q)
        except SimpleMemoryError as exc:
            return _failure("delete", exc)

        self._activity.notice("delete", {"query": q, "count": removed})
        if removed == 0:
            message = "No memories deleted (no match)."
        else:
            message = f"Deleted {removed} memories."
        return OperationResult(operation="delete", message=message, count=removed)
