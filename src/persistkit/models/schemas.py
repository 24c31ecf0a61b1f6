"""Field declarations for every persistent model in the package.

Edit a schema here, then run ``persistkit codegen`` to refresh the generated
region of the model module named by ``module``.
"""

from __future__ import annotations

from persistkit.schema import FieldKind, FieldSpec, ModelSchema

EXAMPLE_MODEL_SCHEMA = ModelSchema(
    name="ExampleModel",
    table="model_example_model",
    module="persistkit.models.example_model",
    fields=(
        FieldSpec(name="boxed_int64_value", kind=FieldKind.INT64, nullable=True),
        FieldSpec(name="boxed_uint64_value", kind=FieldKind.UINT64, nullable=True),
        FieldSpec(name="date_value", kind=FieldKind.DATE, nullable=True, legacy_names=("dateValue",)),
        FieldSpec(name="double_value", kind=FieldKind.DOUBLE, legacy_names=("doubleValue",)),
        FieldSpec(name="float_value", kind=FieldKind.FLOAT),
        FieldSpec(name="int64_value", kind=FieldKind.INT64),
        FieldSpec(name="integer_value", kind=FieldKind.INTEGER),
        FieldSpec(name="uint64_value", kind=FieldKind.UINT64),
        FieldSpec(name="uinteger_value", kind=FieldKind.UINTEGER),
    ),
)

MODEL_SCHEMAS = (EXAMPLE_MODEL_SCHEMA,)
