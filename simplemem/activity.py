"""
Activity Log — append-only notices of mutations.

A side channel, not a source of truth: add and delete emit one JSONL notice
each.  notice() is fire-and-forget.  It catches all exceptions internally
and never affects the outcome of the operation that emitted it.

Records are handed straight to a logging handler owned by the instance, so
that file output gets size-based rotation from RotatingFileHandler without
registering a logger per instance.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

from simplemem.types import _now_iso

ACTIVITY_SCHEMA_VERSION = 1

DEFAULT_LOG_PATH = "/tmp/mcp-simple-memory-server.log"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 2
ACTIVITY_LOGGER = "simplemem.activity"

logger = logging.getLogger(__name__)


class ActivityLog:
    """Best-effort JSONL notice writer."""

    def __init__(self, handler: Optional[logging.Handler] = None, enabled: bool = True):
        """
        Args:
            handler: Destination handler.  None disables output.
            enabled: False turns notice() into a no-op.
        """
        self._enabled = enabled and handler is not None
        self._handler = handler
        if self._enabled:
            handler.setFormatter(logging.Formatter("%(message)s"))

    @classmethod
    def to_file(
        cls,
        path: str = DEFAULT_LOG_PATH,
        max_bytes: int = DEFAULT_MAX_BYTES,
        backup_count: int = DEFAULT_BACKUP_COUNT,
        enabled: bool = True,
    ) -> ActivityLog:
        """Rotating file log.  Falls back to a disabled log if the file cannot be opened."""
        if not enabled:
            return cls.disabled()
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            handler = logging.handlers.RotatingFileHandler(
                path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8",
            )
        except OSError as exc:
            logger.warning("Activity log disabled: cannot open %s: %s", path, exc)
            return cls.disabled()
        return cls(handler)

    @classmethod
    def to_stream(cls, stream: TextIO) -> ActivityLog:
        return cls(logging.StreamHandler(stream))

    @classmethod
    def disabled(cls) -> ActivityLog:
        return cls(None, enabled=False)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def notice(self, op: str, detail: Optional[Dict[str, Any]] = None) -> None:
        """
        Write one notice.  Fire-and-forget — never raises.

        Args:
            op: Operation name ("add", "delete").
            detail: Operation-specific fields.
        """
        if not self._enabled:
            return
        try:
            record: Dict[str, Any] = {
                "v": ACTIVITY_SCHEMA_VERSION,
                "ts": _now_iso(),
                "op": op,
            }
            if detail:
                record["d"] = detail
            line = json.dumps(record, ensure_ascii=False, separators=(",", ":"))
            self._handler.handle(logging.LogRecord(
                ACTIVITY_LOGGER, logging.INFO, __file__, 0, line, None, None,
            ))
        except Exception:
            # Activity failures must never disrupt the operation
            pass

    def close(self) -> None:
        if self._handler is not None:
            self._handler.close()
        self._enabled = False
