"""
Exception hierarchy for ledgerstore.

All ledgerstore exceptions inherit from LedgerStoreError, allowing callers to
catch every store-specific failure with a single except clause.

Exception Categories:
    - ExtractionError: A record could not be turned into bindable values
    - StorageError: The execution layer rejected a statement
    - RecordDecodeError: A stored row could not be turned back into a record
    - ConfigError: Configuration could not be loaded
    - InvalidQueryError: Query arguments are out of range or unknown

Store operations never let these escape: they are caught at the store
boundary, logged, and reported through the result objects in
``ledgerstore.results``.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Extraction errors: 1xxx
ERROR_EXTRACTION_EMPTY = 1001
ERROR_EXTRACTION_MISMATCH = 1002
ERROR_EXTRACTION_RECORD_TYPE = 1003
ERROR_EXTRACTION_EMPTY_BATCH = 1004

# Storage errors: 2xxx
ERROR_STORAGE_CONNECTION = 2001
ERROR_STORAGE_WRITE = 2002
ERROR_STORAGE_READ = 2003

# Decode errors: 3xxx
ERROR_DECODE_BLOB = 3001

# Config errors: 4xxx
ERROR_CONFIG_INVALID = 4001

# Query errors: 5xxx
ERROR_QUERY_INVALID = 5001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class LedgerStoreError(Exception):
    """
    Base exception for all ledgerstore errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Extraction Errors
# =============================================================================


@dataclass
class ExtractionError(LedgerStoreError):
    """
    Raised when a record yields no bindable values, or a value list whose
    length does not match the column list.

    Raised before any I/O.

    Attributes:
        record_id: Identifier of the offending record
        expected: Number of columns in the layout
        actual: Number of values produced
    """

    record_id: str = ""
    expected: int = 0
    actual: int = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            if self.actual == 0:
                self.message = f"No values extracted from record {self.record_id}"
            else:
                self.message = (
                    f"Value count mismatch for record {self.record_id}: "
                    f"{self.actual} values for {self.expected} columns"
                )
        if self.code == 0:
            self.code = (
                ERROR_EXTRACTION_EMPTY if self.actual == 0 else ERROR_EXTRACTION_MISMATCH
            )
        self.context.update({
            "record_id": self.record_id,
            "expected": self.expected,
            "actual": self.actual,
        })


@dataclass
class RecordTypeError(ExtractionError):
    """Raised when a record does not validate into the store's model."""

    validation_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Record {self.record_id} is not valid: {self.validation_error}"
        if self.code == 0:
            self.code = ERROR_EXTRACTION_RECORD_TYPE
        super().__post_init__()
        self.context["validation_error"] = self.validation_error


@dataclass
class EmptyBatchError(ExtractionError):
    """Raised when a bulk insert receives no records."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "Bulk insert needs at least one record"
        if self.code == 0:
            self.code = ERROR_EXTRACTION_EMPTY_BATCH
        super().__post_init__()


# =============================================================================
# Storage Errors
# =============================================================================


@dataclass
class StorageError(LedgerStoreError):
    """
    Base class for execution-layer errors.

    Attributes:
        operation: The operation that failed (e.g., "run", "all")
    """

    operation: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["operation"] = self.operation


@dataclass
class StorageConnectionError(StorageError):
    """Raised when a database connection cannot be opened or is closed."""

    db_path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to connect to database: {self.db_path}"
        if self.code == 0:
            self.code = ERROR_STORAGE_CONNECTION
        if not self.suggestion:
            self.suggestion = "Check that the database path is valid and writable"
        super().__post_init__()
        self.context["db_path"] = self.db_path


@dataclass
class StorageWriteError(StorageError):
    """Raised when a write statement fails."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Database write failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_WRITE
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class StorageReadError(StorageError):
    """Raised when a read statement fails."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Database read failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_READ
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


# =============================================================================
# Decode Errors
# =============================================================================


@dataclass
class RecordDecodeError(LedgerStoreError):
    """
    Raised when a stored row cannot be decoded.

    Either a serialized column is not valid JSON, or the decoded row does
    not validate into the record model.

    Attributes:
        column: Column that failed to decode (empty when the whole row failed)
        underlying_error: Text of the original exception
    """

    column: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            target = f"column {self.column}" if self.column else "row"
            self.message = f"Failed to decode {target}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_DECODE_BLOB
        self.context.update({
            "column": self.column,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Config Errors
# =============================================================================


@dataclass
class ConfigError(LedgerStoreError):
    """Raised when the store configuration cannot be loaded."""

    path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid configuration: {self.path}"
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID
        self.context["path"] = self.path


# =============================================================================
# Query Errors
# =============================================================================


@dataclass
class InvalidQueryError(LedgerStoreError):
    """Raised when query arguments are rejected before reaching the database."""

    argument: str = ""
    value: Any = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid value for {self.argument}: {self.value!r}"
        if self.code == 0:
            self.code = ERROR_QUERY_INVALID
        self.context.update({
            "argument": self.argument,
            "value": self.value,
        })
