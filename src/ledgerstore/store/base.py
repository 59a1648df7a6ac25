"""
Generic record store.

RecordStore implements every operation shared by the transaction and
receipt stores. A concrete store only supplies its RecordLayout and its
Pydantic model; SQL is generated from the layout.

Error policy:
    Every operation catches LedgerStoreError at this boundary, logs it with
    the record id where there is one, and returns a FAILED result. Nothing
    raises out of a public method.

Concurrency:
    The store keeps no mutable state of its own. Each write is a single
    INSERT OR REPLACE statement, so concurrent writers of the same primary
    key converge on one row. Reads take no snapshot.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from ledgerstore.codec import RecordLayout, decode_row, encode_record, encode_records
from ledgerstore.errors import (
    EmptyBatchError,
    InvalidQueryError,
    LedgerStoreError,
    RecordDecodeError,
    RecordTypeError,
)
from ledgerstore.results import ReadResult, ReadStatus, WriteResult, WriteStatus
from ledgerstore.store.db import Executor, Row, initialize_schema

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

DEFAULT_LATEST_COUNT = 100
DEFAULT_PAGE_LIMIT = 10000


class RecordStore(Generic[RecordT]):
    """
    Persistence for one record type in one table.

    Subclasses set ``layout`` and ``model``.
    """

    layout: ClassVar[RecordLayout]
    model: ClassVar[type[BaseModel]]

    def __init__(
        self,
        executor: Executor,
        verbose: bool = False,
        latest_default: int = DEFAULT_LATEST_COUNT,
        page_default: int = DEFAULT_PAGE_LIMIT,
    ) -> None:
        self.executor = executor
        self.verbose = verbose
        self.latest_default = latest_default
        self.page_default = page_default

    @property
    def table(self) -> str:
        return self.layout.table

    @property
    def record_name(self) -> str:
        return self.model.__name__

    async def initialize(self) -> None:
        """Create the table and its indexes if missing."""
        await initialize_schema(self.executor, self.layout)

    # =========================================================================
    # Record conversion
    # =========================================================================

    def _record_id(self, record: BaseModel | Mapping[str, Any]) -> str:
        if isinstance(record, BaseModel):
            return str(getattr(record, self.layout.primary_key, ""))
        if isinstance(record, Mapping):
            return str(record.get(self.layout.primary_key, ""))
        return ""

    def _coerce(self, record: BaseModel | Mapping[str, Any]) -> RecordT:
        if isinstance(record, self.model):
            return record  # type: ignore[return-value]
        try:
            if isinstance(record, BaseModel):
                record = record.model_dump()
            return self.model.model_validate(record)  # type: ignore[return-value]
        except ValidationError as e:
            raise RecordTypeError(
                record_id=self._record_id(record),
                expected=len(self.layout.fields),
                validation_error=str(e),
            ) from e

    def _to_row(self, record: RecordT) -> dict[str, Any]:
        return record.model_dump(mode="json")

    def _from_row(self, row: Row) -> RecordT:
        """Decode a stored row into a record."""
        decoded = decode_row(self.layout, row)
        try:
            return self.model.model_validate(decoded)  # type: ignore[return-value]
        except ValidationError as e:
            raise RecordDecodeError(underlying_error=str(e)) from e

    def _log_failure(self, operation: str, error: LedgerStoreError, record_id: str = "") -> None:
        logger.error(
            "%s %s failed%s: %s",
            self.record_name,
            operation,
            f" for {record_id}" if record_id else "",
            error,
            extra={
                "record_id": record_id or None,
                "table": self.table,
                "operation": operation,
                "error_code": error.code,
            },
        )

    @staticmethod
    def _check_window(skip: int, limit: int) -> None:
        if skip < 0:
            raise InvalidQueryError(argument="skip", value=skip)
        if limit < 0:
            raise InvalidQueryError(argument="limit", value=limit)

    # =========================================================================
    # Writes
    # =========================================================================

    async def _count_existing(self, record_ids: Sequence[str]) -> int:
        unique_ids = list(dict.fromkeys(record_ids))
        placeholders = ", ".join("?" for _ in unique_ids)
        row = await self.executor.get(
            f"SELECT COUNT(*) AS count FROM {self.table} "
            f"WHERE {self.layout.primary_key} IN ({placeholders})",
            unique_ids,
        )
        return int(row["count"]) if row else 0

    async def insert(self, record: BaseModel | Mapping[str, Any]) -> WriteResult:
        """
        Insert a record, replacing any row with the same primary key.

        Returns:
            WriteResult with status STORED, REPLACED or FAILED
        """
        record_id = self._record_id(record)
        try:
            typed = self._coerce(record)
            encoded = encode_record(self.layout, self._to_row(typed), record_id)
            existing = await self._count_existing([record_id])
            await self.executor.run(self.layout.insert_sql(), encoded.values)
        except LedgerStoreError as e:
            self._log_failure("insert", e, record_id)
            return WriteResult.failed(e, (record_id,))
        if self.verbose:
            logger.debug("Successfully inserted %s %s", self.record_name, record_id)
        return WriteResult(
            status=WriteStatus.REPLACED if existing else WriteStatus.STORED,
            record_ids=(record_id,),
            replaced=existing,
        )

    async def bulk_insert(self, records: Iterable[BaseModel | Mapping[str, Any]]) -> WriteResult:
        """
        Insert many records with one multi-row statement.

        Every record is validated into the store model before any I/O, so
        all value tuples follow the same column order.

        Returns:
            WriteResult with status STORED, REPLACED or FAILED
        """
        batch = list(records)
        record_ids = tuple(self._record_id(record) for record in batch)
        try:
            if not batch:
                raise EmptyBatchError()
            rows = [self._to_row(self._coerce(record)) for record in batch]
            encoded = encode_records(
                self.layout,
                rows,
                id_of=lambda row: str(row.get(self.layout.primary_key, "")),
            )
            existing = await self._count_existing(record_ids)
            await self.executor.run(self.layout.insert_sql(encoded.rows), encoded.values)
        except LedgerStoreError as e:
            self._log_failure("bulk insert", e, f"{len(batch)} records")
            return WriteResult.failed(e, record_ids)
        logger.debug("Successfully inserted %d %s records", len(batch), self.record_name)
        return WriteResult(
            status=WriteStatus.REPLACED if existing else WriteStatus.STORED,
            record_ids=record_ids,
            replaced=existing,
        )

    # =========================================================================
    # Point lookups
    # =========================================================================

    async def _fetch_one(
        self,
        operation: str,
        sql: str,
        params: Sequence[Any],
        record_id: str = "",
    ) -> ReadResult[RecordT | None]:
        try:
            row = await self.executor.get(sql, params)
            record = self._from_row(row) if row is not None else None
        except LedgerStoreError as e:
            self._log_failure(operation, e, record_id)
            return ReadResult(status=ReadStatus.FAILED, value=None, error=e)
        if self.verbose:
            logger.debug("%s %s %s -> %s", self.record_name, operation, record_id, record)
        if record is None:
            return ReadResult(status=ReadStatus.NOT_FOUND, value=None)
        return ReadResult(status=ReadStatus.OK, value=record)

    async def get_by_id(self, record_id: str) -> ReadResult[RecordT | None]:
        """Look up a record by primary key. A miss is NOT_FOUND, not an error."""
        return await self._fetch_one(
            "get by id",
            f"SELECT * FROM {self.table} WHERE {self.layout.primary_key} = ?",
            (record_id,),
            record_id,
        )

    async def get_by_column(self, column: str, value: Any) -> ReadResult[RecordT | None]:
        """
        Look up one record by a declared, non-serialized column.

        When several rows match, the earliest by (cycle, timestamp) wins.
        """
        spec = self.layout.spec(column)
        if spec is None or spec.is_serialized:
            error = InvalidQueryError(argument="column", value=column)
            self._log_failure("get by column", error, str(value))
            return ReadResult(status=ReadStatus.FAILED, value=None, error=error)
        return await self._fetch_one(
            f"get by {column}",
            f"SELECT * FROM {self.table} WHERE {column} = ? "
            f"ORDER BY {self.layout.cycle_column} ASC, {self.layout.timestamp_column} ASC "
            f"LIMIT 1",
            (value,),
            str(value),
        )

    async def get_by_secondary_key(self, value: Any) -> ReadResult[RecordT | None]:
        """Look up one record by the store's secondary key column."""
        if self.layout.secondary_key is None:
            error = InvalidQueryError(argument="secondary_key", value=None)
            self._log_failure("get by secondary key", error, str(value))
            return ReadResult(status=ReadStatus.FAILED, value=None, error=error)
        return await self.get_by_column(self.layout.secondary_key, value)

    # =========================================================================
    # Range queries
    # =========================================================================

    async def _fetch_many(
        self, operation: str, sql: str, params: Sequence[Any]
    ) -> ReadResult[list[RecordT]]:
        try:
            rows = await self.executor.all(sql, params)
            records = [self._from_row(row) for row in rows]
        except LedgerStoreError as e:
            self._log_failure(operation, e)
            return ReadResult(status=ReadStatus.FAILED, value=[], error=e)
        if self.verbose:
            logger.debug("%s %s returned %d rows", self.record_name, operation, len(records))
        return ReadResult(status=ReadStatus.OK, value=records)

    async def get_latest(self, count: int | None = None) -> ReadResult[list[RecordT]]:
        """
        Most recent records, newest first by (cycle, timestamp).

        Args:
            count: Maximum rows; None or 0 means the configured default (100)
        """
        limit = count or self.latest_default
        if limit < 0:
            error = InvalidQueryError(argument="count", value=count)
            self._log_failure("latest", error)
            return ReadResult(status=ReadStatus.FAILED, value=[], error=error)
        return await self._fetch_many(
            "latest",
            f"SELECT * FROM {self.table} "
            f"ORDER BY {self.layout.cycle_column} DESC, {self.layout.timestamp_column} DESC "
            f"LIMIT ?",
            (limit,),
        )

    async def get_page(self, skip: int = 0, limit: int | None = None) -> ReadResult[list[RecordT]]:
        """
        Offset page of records, oldest first by (cycle, timestamp).

        Args:
            skip: Rows to skip
            limit: Maximum rows; None means the configured default (10000)
        """
        limit = self.page_default if limit is None else limit
        try:
            self._check_window(skip, limit)
        except InvalidQueryError as e:
            self._log_failure("page", e)
            return ReadResult(status=ReadStatus.FAILED, value=[], error=e)
        return await self._fetch_many(
            "page",
            f"SELECT * FROM {self.table} "
            f"ORDER BY {self.layout.cycle_column} ASC, {self.layout.timestamp_column} ASC "
            f"LIMIT ? OFFSET ?",
            (limit, skip),
        )

    async def get_page_in_cycle_range(
        self,
        skip: int,
        limit: int | None,
        start_cycle: int,
        end_cycle: int,
    ) -> ReadResult[list[RecordT]]:
        """
        Like get_page, restricted to start_cycle <= cycle <= end_cycle.

        Every argument is required; pass limit=None for the configured default.
        """
        limit = self.page_default if limit is None else limit
        try:
            self._check_window(skip, limit)
        except InvalidQueryError as e:
            self._log_failure("page in cycle range", e)
            return ReadResult(status=ReadStatus.FAILED, value=[], error=e)
        return await self._fetch_many(
            "page in cycle range",
            f"SELECT * FROM {self.table} "
            f"WHERE {self.layout.cycle_column} BETWEEN ? AND ? "
            f"ORDER BY {self.layout.cycle_column} ASC, {self.layout.timestamp_column} ASC "
            f"LIMIT ? OFFSET ?",
            (start_cycle, end_cycle, limit, skip),
        )

    # =========================================================================
    # Counts
    # =========================================================================

    async def _count(self, operation: str, sql: str, params: Sequence[Any]) -> ReadResult[int]:
        try:
            row = await self.executor.get(sql, params)
        except LedgerStoreError as e:
            self._log_failure(operation, e)
            return ReadResult(status=ReadStatus.FAILED, value=0, error=e)
        total = int(row["count"]) if row else 0
        if self.verbose:
            logger.debug("%s %s: %d", self.record_name, operation, total)
        return ReadResult(status=ReadStatus.OK, value=total)

    async def count(self) -> ReadResult[int]:
        """Total number of stored records."""
        return await self._count("count", f"SELECT COUNT(*) AS count FROM {self.table}", ())

    async def count_in_cycle_range(self, start_cycle: int, end_cycle: int) -> ReadResult[int]:
        """Number of records with start_cycle <= cycle <= end_cycle."""
        return await self._count(
            "count in cycle range",
            f"SELECT COUNT(*) AS count FROM {self.table} "
            f"WHERE {self.layout.cycle_column} BETWEEN ? AND ?",
            (start_cycle, end_cycle),
        )
