"""
simplemem — a persistent note store for agents.

One SQLite file in WAL mode, four operations (add, list, search, delete),
case-sensitive substring matching shared by search and delete.
"""

__version__ = "1.0.0"

from simplemem.types import MemoryRecord, OperationResult
from simplemem.errors import (
    InvalidInput,
    ReadFailed,
    SimpleMemoryError,
    StoreUnavailable,
    WriteFailed,
)
from simplemem.store import RecordStore
from simplemem.activity import ActivityLog
from simplemem.service import MemoryService
from simplemem.config import ServerConfig

__all__ = [
    "__version__",
    "MemoryRecord",
    "OperationResult",
    "SimpleMemoryError",
    "InvalidInput",
    "ReadFailed",
    "WriteFailed",
    "StoreUnavailable",
    "RecordStore",
    "ActivityLog",
    "MemoryService",
    "ServerConfig",
]
