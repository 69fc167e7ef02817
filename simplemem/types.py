"""
Memory Data Model

Defines the persisted memory record and the structured outcome returned
by every service operation.  Records are immutable once written: there is
no edit operation, only add and bulk delete.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

OperationStatus = Literal["ok", "error"]

# Optional metadata columns, in schema order.  Each is nullable TEXT and may
# be missing from databases created by older versions.
OPTIONAL_FIELDS = ("title", "tags", "status")


def _now_iso() -> str:
    """Current UTC time as ISO-8601 string with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


# ---------------------------------------------------------------------------
# Memory record
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MemoryRecord:
    """A single persisted note with optional metadata and required content."""

    id: int
    content: str
    title: str = ""
    tags: str = ""
    status: str = ""
    created_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in the public field order."""
        return {
            "id": self.id,
            "title": self.title,
            "tags": self.tags,
            "status": self.status,
            "content": self.content,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> MemoryRecord:
        """Deserialize, mapping absent or null metadata to empty strings."""
        return cls(
            id=int(d["id"]),
            content=d["content"],
            title=d.get("title") or "",
            tags=d.get("tags") or "",
            status=d.get("status") or "",
            created_at=d.get("created_at") or "",
        )


# ---------------------------------------------------------------------------
# Operation outcome
# ---------------------------------------------------------------------------

@dataclass
class OperationResult:
    """
    Structured success-or-error outcome of a service operation.

    ``error`` carries the stable error code (``invalid_input``,
    ``read_failed``, ``write_failed``) when ``status == "error"``.
    ``no_match`` distinguishes an empty search from an empty store listing.
    """

    operation: str
    status: OperationStatus = "ok"
    message: str = ""
    records: List[MemoryRecord] = field(default_factory=list)
    count: int = 0
    no_match: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def failure(cls, operation: str, exc: Exception) -> OperationResult:
        """Build an error outcome from a SimpleMemoryError."""
        return cls(
            operation=operation,
            status="error",
            message=str(exc),
            error=getattr(exc, "code", "internal"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a plain dictionary (records expanded)."""
        d = asdict(self)
        d["records"] = [r.to_dict() for r in self.records]
        return d
