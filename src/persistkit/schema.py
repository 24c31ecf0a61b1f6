"""Declarative field schema shared by the constructor, archive, and row codecs."""

from __future__ import annotations

import keyword
import math
import struct
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated

from pydantic import AfterValidator, AwareDatetime, BaseModel, Field, field_validator

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
UINT64_MAX = 2**64 - 1

# Platform-width integers are 64-bit.
INTEGER_MIN = INT64_MIN
INTEGER_MAX = INT64_MAX
UINTEGER_MAX = UINT64_MAX

RESERVED_NAMES = frozenset({"unique_key", "row_id", "id"})


def uinteger_max_value() -> int:
    """Return the largest value a platform-width unsigned field can hold."""
    return UINTEGER_MAX


def _as_double(value: float) -> float:
    value = float(value)
    # SQLite stores NaN as NULL.
    if math.isnan(value):
        raise ValueError("NaN cannot be persisted")
    # SQLite REAL columns drop the sign of zero; -0.0 is stored as 0.0.
    return value + 0.0


def _round_float32(value: float) -> float:
    value = _as_double(value)
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError as exc:
        raise ValueError(f"{value!r} is out of single-precision range") from exc


def _as_utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc)


Double = Annotated[float, AfterValidator(_as_double)]
Float32 = Annotated[float, AfterValidator(_round_float32)]
Int64 = Annotated[int, Field(ge=INT64_MIN, le=INT64_MAX)]
UInt64 = Annotated[int, Field(ge=0, le=UINT64_MAX)]
Integer = Annotated[int, Field(ge=INTEGER_MIN, le=INTEGER_MAX)]
UInteger = Annotated[int, Field(ge=0, le=UINTEGER_MAX)]
UtcDatetime = Annotated[AwareDatetime, AfterValidator(_as_utc)]


class FieldKind(str, Enum):
    """Semantic type of a schema field."""

    DOUBLE = "double"
    FLOAT = "float"
    INT64 = "int64"
    UINT64 = "uint64"
    INTEGER = "integer"
    UINTEGER = "uinteger"
    DATE = "date"

    @property
    def annotation(self) -> str:
        """Name of the validated value alias used in generated code."""
        return _ANNOTATIONS[self]

    @property
    def column_type(self) -> str:
        return _COLUMN_TYPES[self]

    @property
    def archive_tag(self) -> str:
        return _ARCHIVE_TAGS[self]

    @property
    def is_unsigned(self) -> bool:
        return self in (FieldKind.UINT64, FieldKind.UINTEGER)


_ANNOTATIONS = {
    FieldKind.DOUBLE: "Double",
    FieldKind.FLOAT: "Float32",
    FieldKind.INT64: "Int64",
    FieldKind.UINT64: "UInt64",
    FieldKind.INTEGER: "Integer",
    FieldKind.UINTEGER: "UInteger",
    FieldKind.DATE: "UtcDatetime",
}

_COLUMN_TYPES = {
    FieldKind.DOUBLE: "REAL",
    FieldKind.FLOAT: "REAL",
    FieldKind.INT64: "INTEGER",
    FieldKind.UINT64: "INTEGER",
    FieldKind.INTEGER: "INTEGER",
    FieldKind.UINTEGER: "INTEGER",
    FieldKind.DATE: "INTEGER",
}

_ARCHIVE_TAGS = {
    FieldKind.DOUBLE: "f64",
    FieldKind.FLOAT: "f32",
    FieldKind.INT64: "i64",
    FieldKind.UINT64: "u64",
    FieldKind.INTEGER: "int",
    FieldKind.UINTEGER: "uint",
    FieldKind.DATE: "date",
}


class FieldSpec(BaseModel):
    """One typed field: its name, kind, nullability, and legacy archive keys."""

    model_config = {"frozen": True}

    name: str
    kind: FieldKind
    nullable: bool = False
    legacy_names: tuple[str, ...] = ()

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not value.isidentifier() or keyword.iskeyword(value) or value != value.lower():
            raise ValueError(f"Field name must be a lowercase identifier: {value!r}")
        if value in RESERVED_NAMES:
            raise ValueError(f"Field name is reserved for identity columns: {value!r}")
        return value

    @property
    def column_type(self) -> str:
        return self.kind.column_type

    @property
    def annotation(self) -> str:
        base = self.kind.annotation
        return f"{base} | None" if self.nullable else base

    def column_sql(self) -> str:
        constraint = "" if self.nullable else " NOT NULL"
        return f"{self.name} {self.column_type}{constraint}"


class ModelSchema(BaseModel):
    """Ordered field declaration for one persistent model.

    This is the only place a model's fields are listed. The model's generated
    constructor, the archive codec, and the row codec are all derived from it.
    """

    model_config = {"frozen": True}

    name: str
    table: str
    module: str
    fields: tuple[FieldSpec, ...]

    @field_validator("table")
    @classmethod
    def _check_table(cls, value: str) -> str:
        if not value.isidentifier() or value.lower().startswith("sqlite_"):
            raise ValueError(f"Table name must be a plain identifier: {value!r}")
        return value

    @field_validator("fields")
    @classmethod
    def _check_fields(cls, value: tuple[FieldSpec, ...]) -> tuple[FieldSpec, ...]:
        if not value:
            raise ValueError("A model schema needs at least one field")
        seen: set[str] = set()
        for spec in value:
            for key in (spec.name, *spec.legacy_names):
                if key in seen or key in RESERVED_NAMES:
                    raise ValueError(f"Duplicate or reserved field key: {key!r}")
                seen.add(key)
        return value

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(spec.name for spec in self.fields)

    def field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(name)

    def create_table_sql(self) -> str:
        columns = [
            "id INTEGER PRIMARY KEY AUTOINCREMENT",
            "unique_key TEXT NOT NULL UNIQUE",
            *(spec.column_sql() for spec in self.fields),
        ]
        body = ",\n    ".join(columns)
        return f"CREATE TABLE IF NOT EXISTS {self.table} (\n    {body}\n);"
