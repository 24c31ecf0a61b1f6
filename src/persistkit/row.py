"""Row codec mapping persistent objects to SQLite column values.

Coercion rules:

- ``double`` and ``float`` map to ``REAL``. Infinities are stored as such; NaN is
  rejected at assignment and negative zero is normalized to ``0.0`` there.
- Signed integers map to ``INTEGER`` unchanged.
- Unsigned 64-bit values map to ``INTEGER`` through their two's-complement bit
  pattern, so values above ``INT64_MAX`` are stored negative and restored on read.
- Dates map to ``INTEGER`` microseconds since the Unix epoch (UTC).
- Unset optional values map to ``NULL``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, TypeVar, Union

from persistkit.errors import SchemaViolation
from persistkit.model import PersistentObject
from persistkit.schema import INT64_MAX, FieldKind, FieldSpec

SqlValue = Union[int, float, str, None]

ROW_ID_COLUMN = "id"
UNIQUE_KEY_COLUMN = "unique_key"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_UINT64_SPAN = 2**64

M = TypeVar("M", bound=PersistentObject)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _to_column(kind: FieldKind, value: Any) -> SqlValue:
    if value is None:
        return None
    if kind is FieldKind.DATE:
        return (value - EPOCH) // timedelta(microseconds=1)
    if kind in (FieldKind.DOUBLE, FieldKind.FLOAT):
        return float(value)
    if kind.is_unsigned and value > INT64_MAX:
        return value - _UINT64_SPAN
    return value


def _from_column(spec: FieldSpec, value: Any) -> Any:
    kind = spec.kind
    if kind in (FieldKind.DOUBLE, FieldKind.FLOAT):
        if not (_is_int(value) or isinstance(value, float)):
            raise SchemaViolation(f"{spec.name}: expected REAL, got {type(value).__name__}")
        return float(value)
    if not _is_int(value):
        raise SchemaViolation(f"{spec.name}: expected INTEGER, got {type(value).__name__}")
    if kind is FieldKind.DATE:
        try:
            return EPOCH + timedelta(microseconds=value)
        except OverflowError as exc:
            raise SchemaViolation(f"{spec.name}: timestamp {value} is out of range") from exc
    if kind.is_unsigned and value < 0:
        return value + _UINT64_SPAN
    return value


def encode_row(obj: PersistentObject, include_row_id: bool = True) -> dict[str, SqlValue]:
    """Return ``obj`` as ordered column values.

    The ``id`` column is present only when the object has a bound row id and
    ``include_row_id`` is true; a first insert leaves it for storage to assign.
    """
    columns: dict[str, SqlValue] = {}
    if include_row_id and obj.row_id is not None:
        columns[ROW_ID_COLUMN] = obj.row_id
    columns[UNIQUE_KEY_COLUMN] = obj.unique_key
    for spec in obj.field_schema.fields:
        columns[spec.name] = _to_column(spec.kind, getattr(obj, spec.name))
    return columns


def decode_row(row: Mapping[str, Any], model_cls: type[M]) -> M:
    """Rebuild a ``model_cls`` instance from a stored row.

    ``row`` may be any mapping from column name to value, including
    ``sqlite3.Row``. The ``id`` column becomes the instance's ``row_id``.

    Raises:
        SchemaViolation: If a column is missing, a non-nullable column is
            NULL, or a value has the wrong storage type.
    """
    schema = model_cls.field_schema
    present = set(row.keys())
    missing = [
        column
        for column in (ROW_ID_COLUMN, UNIQUE_KEY_COLUMN, *schema.field_names)
        if column not in present
    ]
    if missing:
        raise SchemaViolation(f"{schema.table} row is missing columns: {missing}")

    row_id = row[ROW_ID_COLUMN]
    if not _is_int(row_id):
        raise SchemaViolation(f"{schema.table} row has no integer primary key: {row_id!r}")
    unique_key = row[UNIQUE_KEY_COLUMN]
    if not isinstance(unique_key, str):
        raise SchemaViolation(f"{schema.table} row {row_id} has no text unique_key")

    values: dict[str, Any] = {"row_id": row_id, "unique_key": unique_key}
    for spec in schema.fields:
        value = row[spec.name]
        if value is None:
            if not spec.nullable:
                raise SchemaViolation(f"{schema.table} row {row_id}: NULL in non-nullable column {spec.name!r}")
            values[spec.name] = None
            continue
        values[spec.name] = _from_column(spec, value)

    try:
        return model_cls.from_values(values)
    except ValueError as exc:
        raise SchemaViolation(f"{schema.table} row {row_id} rejected by {schema.name}: {exc}") from exc
