"""
Result objects returned by store operations.

Store operations never raise. Each one reports its outcome explicitly so a
caller can tell "already stored" from "failed to store", and "not found"
from "lookup failed", without reading logs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from ledgerstore.errors import LedgerStoreError

T = TypeVar("T")


class WriteStatus(str, Enum):
    """Outcome of an insert or bulk insert."""

    STORED = "stored"
    REPLACED = "replaced"
    FAILED = "failed"


class ReadStatus(str, Enum):
    """Outcome of a query."""

    OK = "ok"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class WriteResult:
    """
    Outcome of a write.

    Attributes:
        status: STORED when every row was new, REPLACED when at least one
            primary key already existed, FAILED otherwise
        record_ids: Ids of the records in the write
        replaced: How many of those ids were already present
        error: The error that failed the write
    """

    status: WriteStatus
    record_ids: tuple[str, ...] = ()
    replaced: int = 0
    error: LedgerStoreError | None = None

    @property
    def ok(self) -> bool:
        """Whether the rows are now stored."""
        return self.status is not WriteStatus.FAILED

    @classmethod
    def failed(cls, error: LedgerStoreError, record_ids: tuple[str, ...] = ()) -> "WriteResult":
        """Create a FAILED result."""
        return cls(status=WriteStatus.FAILED, record_ids=record_ids, error=error)


@dataclass(frozen=True)
class ReadResult(Generic[T]):
    """
    Outcome of a query.

    Attributes:
        status: OK, NOT_FOUND (point lookups only) or FAILED
        value: The decoded value; the empty value of its type when not OK
        error: The error that failed the query
    """

    status: ReadStatus
    value: T
    error: LedgerStoreError | None = None

    @property
    def ok(self) -> bool:
        """Whether the query ran (a miss still counts)."""
        return self.status is not ReadStatus.FAILED

    @property
    def found(self) -> bool:
        return self.status is ReadStatus.OK

    def unwrap(self) -> T:
        """Return the value, raising the stored error if the query failed."""
        if self.error is not None:
            raise self.error
        return self.value
