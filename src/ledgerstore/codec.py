"""
Row codec for ledgerstore.

Maps a record (an ordered mapping of field name to value) onto a flat
relational row and back again.

Each table is described by a static RecordLayout: an ordered list of
FieldSpec entries naming the column, its SQL type, and how its value is
stored. Column lists, placeholders, DDL and decode rules all come from
the layout, never from the keys of whatever record happens to be passed in.

Storage rules:
    - Primitive columns are bound as-is
    - Serialized columns hold the JSON text of the value
    - Boolean columns hold integer 0/1 and decode with ``value == 1``

Decoding is only attempted on truthy stored values:
    - None (absent) stays None
    - Empty-but-present values ("" or 0) pass through undecoded
    - Populated text is parsed back into its structured form
"""

import json
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ledgerstore.errors import EmptyBatchError, ExtractionError, RecordDecodeError


@dataclass(frozen=True)
class FieldSpec:
    """
    One column of a stored record.

    Attributes:
        name: Column name, identical to the record field name
        column_type: SQL type used in the table definition
        is_serialized: Whether the value is stored as JSON text
        is_bool: Whether the value is stored as integer 0/1
        nullable: Whether the column accepts NULL
    """

    name: str
    column_type: str = "TEXT"
    is_serialized: bool = False
    is_bool: bool = False
    nullable: bool = True


@dataclass(frozen=True)
class RecordLayout:
    """
    Static description of a table and the record stored in it.

    Attributes:
        table: Table name
        fields: Columns in insertion order
        primary_key: Column holding the record id
        cycle_column: Column used as the primary ordering axis
        timestamp_column: Column used to break ties within a cycle
        secondary_key: Non-unique indexed column for point lookups
        indexes: Extra column groups to index
    """

    table: str
    fields: tuple[FieldSpec, ...]
    primary_key: str
    cycle_column: str
    timestamp_column: str = "timestamp"
    secondary_key: str | None = None
    indexes: tuple[tuple[str, ...], ...] = field(default_factory=tuple)

    @property
    def columns(self) -> list[str]:
        """Column names in insertion order."""
        return [spec.name for spec in self.fields]

    def spec(self, name: str) -> FieldSpec | None:
        """Return the FieldSpec for a column, or None if it is not declared."""
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    def row_placeholder(self) -> str:
        """Placeholder tuple for one row, e.g. ``(?, ?, ?)``."""
        return "(" + ", ".join("?" for _ in self.fields) + ")"

    def insert_sql(self, rows: int = 1) -> str:
        """Build an INSERT OR REPLACE statement for ``rows`` value tuples."""
        if rows < 1:
            raise ValueError("rows must be at least 1")
        tuples = ", ".join(self.row_placeholder() for _ in range(rows))
        return (
            f"INSERT OR REPLACE INTO {self.table} ({', '.join(self.columns)}) "
            f"VALUES {tuples}"
        )


@dataclass(frozen=True)
class EncodedRow:
    """
    A record (or batch of records) ready to bind to a statement.

    Attributes:
        columns: Column names in order
        placeholders: One ``?`` per column
        values: Bound values, row after row for a batch
        rows: Number of records encoded
    """

    columns: list[str]
    placeholders: list[str]
    values: list[Any]
    rows: int = 1


# =============================================================================
# Value Encoding
# =============================================================================


def serialize_value(value: Any) -> str | None:
    """Serialize a structured value to JSON text. None stays None."""
    if value is None:
        return None
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def deserialize_value(raw: Any, column: str = "") -> Any:
    """
    Parse JSON text back into its structured form.

    Falsy values (None, "", 0) are returned unchanged.

    Raises:
        RecordDecodeError: If the text is not valid JSON
    """
    if not raw:
        return raw
    if not isinstance(raw, str | bytes | bytearray):
        return raw
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise RecordDecodeError(column=column, underlying_error=str(e)) from e


def decode_bool(raw: Any) -> bool:
    """Integer 1 decodes to True, anything else to False."""
    return raw == 1


def encode_value(spec: FieldSpec, value: Any) -> Any:
    """Convert one field value to its bound form."""
    if spec.is_bool:
        if value is None:
            return None
        return 1 if value else 0
    if spec.is_serialized:
        return serialize_value(value)
    return value


def decode_value(spec: FieldSpec, raw: Any) -> Any:
    """Convert one stored column value back to its field form."""
    if spec.is_bool:
        return decode_bool(raw)
    if spec.is_serialized:
        return deserialize_value(raw, column=spec.name)
    return raw


# =============================================================================
# Row Encoding
# =============================================================================


def _extract_values(layout: RecordLayout, record: Mapping[str, Any]) -> list[Any]:
    return [encode_value(spec, record[spec.name]) for spec in layout.fields if spec.name in record]


def encode_record(
    layout: RecordLayout,
    record: Mapping[str, Any],
    record_id: str | None = None,
) -> EncodedRow:
    """
    Encode one record into columns, placeholders and bound values.

    Args:
        layout: Layout of the target table
        record: Field name to value mapping
        record_id: Identifier used in error messages (defaults to the primary key)

    Raises:
        ExtractionError: If no values were extracted or the count does not
            match the layout
    """
    if record_id is None:
        record_id = str(record.get(layout.primary_key, ""))
    values = _extract_values(layout, record)
    if not values or len(values) != len(layout.fields):
        raise ExtractionError(
            record_id=record_id,
            expected=len(layout.fields),
            actual=len(values),
        )
    return EncodedRow(
        columns=layout.columns,
        placeholders=["?"] * len(layout.fields),
        values=values,
    )


def encode_records(
    layout: RecordLayout,
    records: Sequence[Mapping[str, Any]],
    id_of: Callable[[Mapping[str, Any]], str] | None = None,
) -> EncodedRow:
    """
    Encode a batch of records into one flat value list.

    Every record is checked against the layout, so a record with a missing
    field fails the whole batch instead of shifting later columns.

    Raises:
        EmptyBatchError: If ``records`` is empty
        ExtractionError: If any record does not match the layout
    """
    if not records:
        raise EmptyBatchError()
    values: list[Any] = []
    for record in records:
        record_id = id_of(record) if id_of else None
        values.extend(encode_record(layout, record, record_id).values)
    return EncodedRow(
        columns=layout.columns,
        placeholders=["?"] * len(layout.fields),
        values=values,
        rows=len(records),
    )


def decode_row(layout: RecordLayout, row: Mapping[str, Any]) -> dict[str, Any]:
    """
    Invert encode_record for a row read from the database.

    Columns the layout does not declare are passed through unchanged.

    Raises:
        RecordDecodeError: If a serialized column holds invalid JSON
    """
    decoded: dict[str, Any] = {}
    for name, raw in row.items():
        spec = layout.spec(name)
        decoded[name] = decode_value(spec, raw) if spec else raw
    return decoded
