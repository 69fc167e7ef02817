"""
Record Store — SQLite Persistent Backend

Table:
    simple_memories  - one row per memory record (id, content, created_at,
                       plus optional title/tags/status added by migration)

Schema evolution is additive only: optional columns missing from an
existing table are appended with ALTER TABLE on every startup.  A column
that cannot be added is logged and skipped; reads then substitute ''.

Concurrency: WAL journal mode.  Writes go through a single connection
serialized by a lock; each scan opens its own short-lived read connection,
fetches its rows and closes it, so readers never take the writer lock and
never hold a snapshot open.  ``:memory:`` databases cannot be shared across
connections, so there every statement uses the writer connection.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import FrozenSet, Iterator, List, Optional, Sequence

from simplemem.errors import ReadFailed, StoreUnavailable, WriteFailed
from simplemem.query import VISIBLE_CLAUSE, match_clause
from simplemem.types import OPTIONAL_FIELDS, MemoryRecord

logger = logging.getLogger(__name__)

TABLE = "simple_memories"

# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------
# Base columns only.  title/tags/status are added by _migrate() so that fresh
# and pre-existing databases follow the same path.

_SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS {TABLE} (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    content    TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""


# ---------------------------------------------------------------------------
# Lazy scans
# ---------------------------------------------------------------------------

class RecordScan:
    """
    Lazy, restartable sequence of records in ascending id order.

    Nothing is read until iteration starts; each new iteration re-runs the
    query against the current state of the store.
    """

    def __init__(self, store: RecordStore, where: str, params: Sequence[str] = ()):
        self._store = store
        self._where = where
        self._params = list(params)

    def __iter__(self) -> Iterator[MemoryRecord]:
        return self._store._iter_records(self._where, self._params)

    def to_list(self) -> List[MemoryRecord]:
        return list(self)


# ---------------------------------------------------------------------------
# RecordStore
# ---------------------------------------------------------------------------

class RecordStore:
    """
    SQLite-backed durable store for memory records.

    Opened once per process and shared by all operations.  Use as a context
    manager (or call close()) to release connections at shutdown.
    """

    def __init__(self, db_path: str = ":memory:", wal_mode: bool = True):
        """Open the database, create the table and run additive migration.

        Args:
            db_path: SQLite database path (or ":memory:" for in-memory).
            wal_mode: Enable WAL journal mode for concurrent readers.

        Raises:
            StoreUnavailable: If the database cannot be opened or the table
                cannot be created.
        """
        self._db_path = db_path
        self._shared = db_path == ":memory:"
        self._lock = threading.Lock()
        self._columns: FrozenSet[str] = frozenset()
        self._wal = False

        conn: Optional[sqlite3.Connection] = None
        try:
            # Auto-create parent directory for disk-backed databases.
            if not self._shared:
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            if wal_mode and not self._shared:
                mode = conn.execute("PRAGMA journal_mode=WAL").fetchone()[0]
                self._wal = str(mode).lower() == "wal"
                if not self._wal:
                    logger.warning(
                        "WAL mode unavailable for %s (journal_mode=%s)", db_path, mode,
                    )
            conn.executescript(_SCHEMA_SQL)
            conn.commit()
        except (sqlite3.Error, OSError) as exc:
            if conn is not None:
                conn.close()
            raise StoreUnavailable(
                f"failed to open memory store {db_path!r}: {exc}"
            ) from exc

        self._conn = conn
        self._columns = self._table_columns()
        self._migrate()
        logger.info(
            "RecordStore initialized: %s (wal=%s, columns=%s)",
            db_path, "yes" if self._wal else "no", ",".join(sorted(self._columns)),
        )

    # -- Schema ------------------------------------------------------------

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def wal_enabled(self) -> bool:
        return self._wal

    @property
    def columns(self) -> FrozenSet[str]:
        """Columns currently present in the records table."""
        return self._columns

    def _table_columns(self) -> FrozenSet[str]:
        rows = self._conn.execute(f"PRAGMA table_info({TABLE})").fetchall()
        return frozenset(r["name"] for r in rows)

    def _add_column(self, name: str) -> None:
        with self._conn:
            self._conn.execute(f"ALTER TABLE {TABLE} ADD COLUMN {name} TEXT")

    def _migrate(self) -> None:
        """Add missing optional columns.  Each column is independent and non-fatal."""
        for name in OPTIONAL_FIELDS:
            if name in self._columns:
                continue
            try:
                self._add_column(name)
            except sqlite3.Error as exc:
                logger.warning("Could not add column %s to %s: %s", name, TABLE, exc)
                continue
            logger.info("Added column %s to %s", name, TABLE)
        # Re-read: another process may have added a column concurrently.
        self._columns = self._table_columns()

    def _select_list(self) -> str:
        cols = ["id", "content", "created_at"]
        for name in OPTIONAL_FIELDS:
            if name in self._columns:
                cols.append(f"coalesce({name}, '') AS {name}")
            else:
                cols.append(f"'' AS {name}")
        return ", ".join(cols)

    # -- Connections -------------------------------------------------------

    def _fetch(self, sql: str, params: Sequence[str]) -> List[sqlite3.Row]:
        """Run a read query to completion.  No connection outlives the call."""
        if self._shared:
            with self._lock:
                return self._conn.execute(sql, params).fetchall()
        conn = sqlite3.connect(self._db_path, isolation_level=None)
        try:
            conn.row_factory = sqlite3.Row
            return conn.execute(sql, params).fetchall()
        finally:
            conn.close()

    def close(self) -> None:
        """Close the writer connection."""
        with self._lock:
            self._conn.close()
        logger.debug("RecordStore closed: %s", self._db_path)

    def __enter__(self) -> RecordStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -- Write operations --------------------------------------------------

    def insert(
        self,
        content: str,
        title: str = "",
        tags: str = "",
        status: str = "",
    ) -> MemoryRecord:
        """
        Insert one record.  Returns it with the store-assigned id and created_at.

        Values for optional columns missing from the schema are dropped.
        """
        values = {"content": content, "title": title, "tags": tags, "status": status}
        cols = ["content"] + [f for f in OPTIONAL_FIELDS if f in self._columns]
        dropped = [f for f in OPTIONAL_FIELDS if f not in self._columns and values[f]]
        if dropped:
            logger.debug("Dropping values for missing columns: %s", dropped)
        placeholders = ",".join("?" for _ in cols)
        with self._lock:
            try:
                with self._conn:
                    cur = self._conn.execute(
                        f"INSERT INTO {TABLE} ({', '.join(cols)}) VALUES ({placeholders})",
                        [values[c] for c in cols],
                    )
                    row = self._conn.execute(
                        f"SELECT {self._select_list()} FROM {TABLE} WHERE id=?",
                        (cur.lastrowid,),
                    ).fetchone()
            except sqlite3.Error as exc:
                raise WriteFailed(f"failed to add memory: {exc}") from exc
        return self._row_to_record(row)

    def delete_matching(self, query: str) -> int:
        """Remove every record matching query in one statement.  Returns count."""
        where, params = match_clause(query, self._columns)
        with self._lock:
            try:
                with self._conn:
                    cur = self._conn.execute(
                        f"DELETE FROM {TABLE} WHERE {where}", params,
                    )
            except sqlite3.Error as exc:
                raise WriteFailed(f"failed to delete memories: {exc}") from exc
        return cur.rowcount

    # -- Query operations --------------------------------------------------

    def scan_all(self) -> RecordScan:
        """All visible records, ascending id."""
        return RecordScan(self, VISIBLE_CLAUSE)

    def scan_matching(self, query: str) -> RecordScan:
        """Visible records matching query, ascending id."""
        where, params = match_clause(query, self._columns)
        return RecordScan(self, where, params)

    def count(self) -> int:
        """Number of visible records."""
        return sum(1 for _ in self.scan_all())

    # -- Internal helpers --------------------------------------------------

    def _iter_records(self, where: str, params: List[str]) -> Iterator[MemoryRecord]:
        sql = (
            f"SELECT {self._select_list()} FROM {TABLE} "
            f"WHERE {where} ORDER BY id ASC"
        )
        try:
            rows = self._fetch(sql, params)
        except sqlite3.Error as exc:
            raise ReadFailed(f"failed to read memories: {exc}") from exc
        for row in rows:
            yield self._row_to_record(row)

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> MemoryRecord:
        return MemoryRecord(
            id=row["id"],
            content=row["content"],
            title=row["title"] or "",
            tags=row["tags"] or "",
            status=row["status"] or "",
            created_at=row["created_at"] or "",
        )
