"""Illustrative model covering every supported field kind."""

from __future__ import annotations

from typing import ClassVar

from persistkit.model import PersistentObject
from persistkit.models.schemas import EXAMPLE_MODEL_SCHEMA
from persistkit.schema import (
    Double,
    Float32,
    Int64,
    Integer,
    ModelSchema,
    UInt64,
    UInteger,
    UtcDatetime,
)


class ExampleModel(PersistentObject):
    field_schema: ClassVar[ModelSchema] = EXAMPLE_MODEL_SCHEMA

    # --- CODE GENERATION MARKER

    # This snippet is generated by `persistkit codegen`. Do not manually edit it, instead rerun the generator.

    boxed_int64_value: Int64 | None
    boxed_uint64_value: UInt64 | None
    date_value: UtcDatetime | None
    double_value: Double
    float_value: Float32
    int64_value: Int64
    integer_value: Integer
    uint64_value: UInt64
    uinteger_value: UInteger

    def __init__(
        self,
        *,
        row_id: int | None = None,
        unique_key: str | None = None,
        boxed_int64_value: Int64 | None,
        boxed_uint64_value: UInt64 | None,
        date_value: UtcDatetime | None,
        double_value: Double,
        float_value: Float32,
        int64_value: Int64,
        integer_value: Integer,
        uint64_value: UInt64,
        uinteger_value: UInteger,
    ) -> None:
        self._init_full(
            row_id=row_id,
            unique_key=unique_key,
            boxed_int64_value=boxed_int64_value,
            boxed_uint64_value=boxed_uint64_value,
            date_value=date_value,
            double_value=double_value,
            float_value=float_value,
            int64_value=int64_value,
            integer_value=integer_value,
            uint64_value=uint64_value,
            uinteger_value=uinteger_value,
        )

    # --- CODE GENERATION MARKER
