"""
SQLite execution layer for ledgerstore.

Stores talk to the database through the three-call Executor protocol:
    - run(sql, params)  -> Ack          (writes)
    - get(sql, params)  -> row | None   (single row)
    - all(sql, params)  -> list of rows (many rows)

SQLiteExecutor implements it on top of the standard sqlite3 module. One
executor owns one connection to one logical database. Calls are moved off
the event loop with asyncio.to_thread and serialized on the connection, so
every call runs as its own implicit transaction: a multi-row INSERT is
either fully applied or not at all.

Tables are created from the static RecordLayout of each store.
"""

import asyncio
import logging
import sqlite3
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from ledgerstore.codec import RecordLayout
from ledgerstore.errors import StorageConnectionError, StorageReadError, StorageWriteError

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1

CREATE_SCHEMA_VERSION_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
)
"""

Row = dict[str, Any]


@dataclass(frozen=True)
class Ack:
    """Acknowledgement of a write: rows affected and last inserted rowid."""

    rowcount: int
    lastrowid: int | None = None


class Executor(Protocol):
    """Contract for statement execution against one logical database."""

    name: str

    async def run(self, sql: str, params: Sequence[Any] = ()) -> Ack: ...
    async def get(self, sql: str, params: Sequence[Any] = ()) -> Row | None: ...
    async def all(self, sql: str, params: Sequence[Any] = ()) -> list[Row]: ...


def now_iso() -> str:
    """Get current UTC time in ISO format."""
    return datetime.now(UTC).isoformat()


def schema_statements(layout: RecordLayout) -> list[str]:
    """Build CREATE TABLE / CREATE INDEX statements for a layout."""
    columns = []
    for spec in layout.fields:
        column = f"{spec.name} {spec.column_type}"
        if spec.name == layout.primary_key:
            column += " PRIMARY KEY"
        elif not spec.nullable:
            column += " NOT NULL"
        columns.append(column)
    statements = [
        f"CREATE TABLE IF NOT EXISTS {layout.table} (\n    "
        + ",\n    ".join(columns)
        + "\n)"
    ]
    index_groups = [(layout.cycle_column, layout.timestamp_column)]
    if layout.secondary_key:
        index_groups.append((layout.secondary_key,))
    index_groups.extend(layout.indexes)
    for group in index_groups:
        index_name = f"idx_{layout.table}_{'_'.join(group)}"
        statements.append(
            f"CREATE INDEX IF NOT EXISTS {index_name} ON {layout.table}({', '.join(group)})"
        )
    return statements


class SQLiteExecutor:
    """
    Executor backed by a single sqlite3 connection.

    Usage:
        executor = SQLiteExecutor("transactions.sqlite3", name="transactions")
        await executor.open()
        await executor.run("INSERT ...", [...])
        await executor.close()

    Or as an async context manager:
        async with SQLiteExecutor(":memory:") as executor:
            ...
    """

    def __init__(self, db_path: str | Path, name: str | None = None, timeout: float = 5.0) -> None:
        """
        Args:
            db_path: Path to the SQLite database file, or ":memory:".
                     Parent directories are created on open.
            name: Logical database name used in logs
            timeout: Seconds to wait on a locked database
        """
        self.db_path = str(db_path)
        self.name = name or Path(self.db_path).stem
        self.timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    def _connect(self) -> None:
        """Establish database connection."""
        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                self.db_path,
                timeout=self.timeout,
                check_same_thread=False,
            )
            self._conn.row_factory = sqlite3.Row
        except (sqlite3.Error, OSError) as e:
            raise StorageConnectionError(
                db_path=self.db_path,
                operation="connect",
                message=f"Failed to connect to database: {e}",
            ) from e

    async def open(self) -> None:
        """Open the connection if it is not already open."""
        if self._conn is None:
            await asyncio.to_thread(self._connect)
            logger.debug("Opened %s database at %s", self.name, self.db_path)

    def _close(self) -> None:
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    async def close(self) -> None:
        """Close the connection."""
        await asyncio.to_thread(self._close)

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def __aenter__(self) -> "SQLiteExecutor":
        await self.open()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def _connection(self, operation: str) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageConnectionError(
                db_path=self.db_path,
                operation=operation,
                message=f"Database {self.name} is not open",
            )
        return self._conn

    # =========================================================================
    # Statement execution
    # =========================================================================

    def _run(self, sql: str, params: Sequence[Any]) -> Ack:
        with self._lock:
            conn = self._connection("run")
            try:
                with conn:
                    cursor = conn.execute(sql, tuple(params))
                return Ack(rowcount=cursor.rowcount, lastrowid=cursor.lastrowid)
            except (sqlite3.Error, OverflowError) as e:
                raise StorageWriteError(operation="run", underlying_error=str(e)) from e

    def _get(self, sql: str, params: Sequence[Any]) -> Row | None:
        with self._lock:
            conn = self._connection("get")
            try:
                row = conn.execute(sql, tuple(params)).fetchone()
            except (sqlite3.Error, OverflowError) as e:
                raise StorageReadError(operation="get", underlying_error=str(e)) from e
        return dict(row) if row is not None else None

    def _all(self, sql: str, params: Sequence[Any]) -> list[Row]:
        with self._lock:
            conn = self._connection("all")
            try:
                rows = conn.execute(sql, tuple(params)).fetchall()
            except (sqlite3.Error, OverflowError) as e:
                raise StorageReadError(operation="all", underlying_error=str(e)) from e
        return [dict(row) for row in rows]

    async def run(self, sql: str, params: Sequence[Any] = ()) -> Ack:
        """Execute a write statement in its own transaction."""
        return await asyncio.to_thread(self._run, sql, params)

    async def get(self, sql: str, params: Sequence[Any] = ()) -> Row | None:
        """Execute a query and return the first row, or None."""
        return await asyncio.to_thread(self._get, sql, params)

    async def all(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        """Execute a query and return every row."""
        return await asyncio.to_thread(self._all, sql, params)


async def initialize_schema(executor: Executor, layout: RecordLayout) -> None:
    """
    Create the table and indexes for a layout if they do not exist, and
    record the schema version.

    Raises:
        StorageWriteError: If a DDL statement fails
    """
    await executor.run(CREATE_SCHEMA_VERSION_SQL)
    for statement in schema_statements(layout):
        await executor.run(statement)
    row = await executor.get("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1")
    if row is None:
        await executor.run(
            "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
            (SCHEMA_VERSION, now_iso()),
        )
    logger.debug("Schema ready for %s on %s", layout.table, executor.name)
