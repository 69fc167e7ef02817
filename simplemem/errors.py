"""
Error taxonomy for simplemem.

InvalidInput, ReadFailed and WriteFailed are recoverable: the service turns
them into error outcomes and the server keeps running.  StoreUnavailable is
raised only while opening the store and is fatal for the process.
"""

from __future__ import annotations


class SimpleMemoryError(Exception):
    """Base class for all simplemem errors."""

    code = "internal"


class InvalidInput(SimpleMemoryError, ValueError):
    """A required field is missing or empty after trimming."""

    code = "invalid_input"


class ReadFailed(SimpleMemoryError):
    """The store could not complete a read (I/O, corruption, missing table)."""

    code = "read_failed"


class WriteFailed(SimpleMemoryError):
    """The store could not complete an insert or delete."""

    code = "write_failed"


class StoreUnavailable(SimpleMemoryError):
    """The database cannot be opened or its schema cannot be created."""

    code = "store_unavailable"
