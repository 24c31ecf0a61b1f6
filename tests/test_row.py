from __future__ import annotations

import math
import sys
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from persistkit.errors import SchemaViolation
from persistkit.models.example_model import ExampleModel
from persistkit.row import decode_row, encode_row
from persistkit.schema import INT64_MAX, INT64_MIN, INTEGER_MAX, INTEGER_MIN, UINT64_MAX, UINTEGER_MAX


def _stored_row(model: ExampleModel, row_id: int = 1) -> dict[str, object]:
    return {"id": row_id, **encode_row(model)}


def test_encode_row_given_unbound_model_when_encoded_then_id_column_is_omitted(example_model) -> None:
    # When
    columns = encode_row(example_model)

    # Then
    assert "id" not in columns
    assert list(columns)[0] == "unique_key"
    assert columns["unique_key"] == "abc123"
    assert columns["boxed_int64_value"] is None
    assert columns["double_value"] == 3.14
    assert columns["date_value"] == 1_704_067_200_000_000


def test_encode_row_given_unsigned_values_above_int64_when_encoded_then_bit_pattern_is_stored(
    example_model,
) -> None:
    # When
    columns = encode_row(example_model)

    # Then
    assert columns["boxed_uint64_value"] == -1
    assert columns["uint64_value"] == -(2**63) + 11
    assert columns["uinteger_value"] == 7


def test_encode_row_given_bound_model_when_encoded_then_id_leads_unless_excluded(example_model) -> None:
    # Given
    example_model.bind_row_id(9)

    # When
    with_id = encode_row(example_model)
    without_id = encode_row(example_model, include_row_id=False)

    # Then
    assert list(with_id)[0] == "id"
    assert with_id["id"] == 9
    assert "id" not in without_id


def test_row_round_trip_given_full_model_when_decoded_then_fields_match_and_row_id_is_bound(example_model) -> None:
    # When
    decoded = decode_row(_stored_row(example_model, row_id=5), ExampleModel)

    # Then
    assert decoded.field_values() == example_model.field_values()
    assert decoded.row_id == 5
    assert decoded.boxed_uint64_value == 2**64 - 1
    assert decoded.uint64_value == 2**63 + 11


def test_row_round_trip_given_sparse_model_when_decoded_then_nulls_decode_to_unset(sparse_model) -> None:
    # When
    decoded = decode_row(_stored_row(sparse_model), ExampleModel)

    # Then
    assert decoded.field_values() == sparse_model.field_values()
    assert decoded.boxed_int64_value is None
    assert decoded.date_value is None


def test_row_round_trip_given_sub_second_date_when_decoded_then_microseconds_survive(example_values) -> None:
    # Given
    moment = datetime(1969, 7, 20, 20, 17, 40, 123456, tzinfo=timezone.utc)
    model = ExampleModel(unique_key="moon", **{**example_values, "date_value": moment})

    # When
    decoded = decode_row(_stored_row(model), ExampleModel)

    # Then
    assert decoded.date_value == moment


@pytest.mark.parametrize("column", ["int64_value", "integer_value", "uint64_value", "double_value"])
def test_decode_row_given_null_in_required_column_when_decoded_then_schema_violation_is_raised(
    example_model, column: str
) -> None:
    # Given
    row = _stored_row(example_model)
    row[column] = None

    # When / Then
    with pytest.raises(SchemaViolation, match=column):
        decode_row(row, ExampleModel)


@pytest.mark.parametrize(
    ("column", "value"),
    [
        ("int64_value", "12"),
        ("int64_value", 1.5),
        ("double_value", "3.14"),
        ("date_value", 12.5),
        ("date_value", 2**62),
        ("unique_key", None),
        ("id", None),
    ],
)
def test_decode_row_given_wrong_storage_type_when_decoded_then_schema_violation_is_raised(
    example_model, column: str, value: object
) -> None:
    # Given
    row = _stored_row(example_model)
    row[column] = value

    # When / Then
    with pytest.raises(SchemaViolation):
        decode_row(row, ExampleModel)


def test_decode_row_given_missing_column_when_decoded_then_schema_violation_is_raised(example_model) -> None:
    # Given
    row = _stored_row(example_model)
    del row["float_value"]

    # When / Then
    with pytest.raises(SchemaViolation, match="float_value"):
        decode_row(row, ExampleModel)


def test_decode_row_given_out_of_range_float_when_decoded_then_schema_violation_is_raised(example_model) -> None:
    # Given
    row = _stored_row(example_model)
    row["float_value"] = 1e300

    # When / Then
    with pytest.raises(SchemaViolation, match="rejected by ExampleModel"):
        decode_row(row, ExampleModel)


BOUNDARY_VALUES = [
    ("double_value", math.inf),
    ("double_value", -math.inf),
    ("double_value", sys.float_info.max),
    ("double_value", 5e-324),
    ("float_value", math.inf),
    ("float_value", -math.inf),
    ("float_value", 3.4028234663852886e38),
    ("float_value", 1.401298464324817e-45),
    ("int64_value", INT64_MIN),
    ("int64_value", INT64_MAX),
    ("boxed_int64_value", INT64_MIN),
    ("uint64_value", 0),
    ("uint64_value", INT64_MAX),
    ("uint64_value", INT64_MAX + 1),
    ("uint64_value", UINT64_MAX),
    ("boxed_uint64_value", 0),
    ("integer_value", INTEGER_MIN),
    ("integer_value", INTEGER_MAX),
    ("uinteger_value", 0),
    ("uinteger_value", UINTEGER_MAX),
]


@pytest.mark.parametrize(("field", "value"), BOUNDARY_VALUES)
def test_row_round_trip_given_boundary_value_when_decoded_then_value_is_exact(
    example_values, field: str, value: object
) -> None:
    # Given
    model = ExampleModel(unique_key="edge", **{**example_values, field: value})

    # When
    decoded = decode_row(_stored_row(model), ExampleModel)

    # Then
    assert getattr(decoded, field) == value


@pytest.mark.parametrize(("field", "value"), BOUNDARY_VALUES)
def test_store_round_trip_given_boundary_value_when_fetched_then_value_is_exact(
    store, example_values, field: str, value: object
) -> None:
    # Given
    model = ExampleModel(unique_key="edge", **{**example_values, field: value})

    # When
    store.insert(model)
    fetched = store.fetch_by_unique_key(ExampleModel, "edge")

    # Then
    assert getattr(fetched, field) == value
    assert fetched == model


def test_store_round_trip_given_negative_zero_when_fetched_then_zero_is_positive(store, example_values) -> None:
    # Given
    model = ExampleModel(unique_key="zero", **{**example_values, "double_value": -0.0, "float_value": -0.0})

    # When
    store.insert(model)
    fetched = store.fetch_by_unique_key(ExampleModel, "zero")

    # Then
    assert fetched == model
    assert math.copysign(1.0, fetched.double_value) == 1.0
    assert math.copysign(1.0, fetched.float_value) == 1.0


def test_encode_row_given_nan_double_when_assigned_then_model_rejects_it_before_storage(
    store, example_model
) -> None:
    # When
    with pytest.raises(ValidationError, match="NaN"):
        example_model.double_value = math.nan

    # Then
    assert encode_row(example_model)["double_value"] == 3.14
    store.insert(example_model)
    assert store.fetch_by_unique_key(ExampleModel, "abc123").double_value == 3.14
