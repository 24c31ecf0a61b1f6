"""Base persistent model and the full-constructor contract it enforces."""

from __future__ import annotations

import inspect
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from persistkit.errors import SchemaDriftDefect
from persistkit.identity import assign_unique_key, bind_row_id
from persistkit.schema import ModelSchema

IDENTITY_PARAMS = ("row_id", "unique_key")


class PersistentObject(BaseModel):
    """A typed value holder with a unique key and an optional storage row id.

    Concrete models set ``field_schema`` and carry a generated region with one
    annotation per schema field plus the keyword-only full ``__init__``. That
    constructor is the only way to assemble an instance from loose values; both
    codecs reach it through ``from_values``.
    """

    model_config = ConfigDict(strict=True, validate_assignment=True, extra="forbid")

    field_schema: ClassVar[ModelSchema]

    unique_key: str = Field(frozen=True, min_length=1)
    _row_id: int | None = PrivateAttr(default=None)

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        schema = cls.__dict__.get("field_schema")
        if schema is not None:
            verify_model_matches_schema(cls, schema)

    def _init_full(self, *, row_id: int | None, unique_key: str | None, **values: Any) -> None:
        super().__init__(unique_key=assign_unique_key() if unique_key is None else unique_key, **values)
        if row_id is not None:
            bind_row_id(self, row_id)

    @property
    def row_id(self) -> int | None:
        return self._row_id

    def bind_row_id(self, row_id: int) -> None:
        bind_row_id(self, row_id)

    def field_values(self) -> dict[str, Any]:
        """Return ``unique_key`` and every schema field, in schema order."""
        values: dict[str, Any] = {"unique_key": self.unique_key}
        for name in self.field_schema.field_names:
            values[name] = getattr(self, name)
        return values

    @classmethod
    def from_values(cls, values: dict[str, Any]):
        """Build an instance from a flat bag holding exactly the constructor's keys."""
        expected = {*IDENTITY_PARAMS, *cls.field_schema.field_names}
        if set(values) != expected:
            missing = sorted(expected - set(values))
            extra = sorted(set(values) - expected)
            raise SchemaDriftDefect(f"{cls.__name__} value bag mismatch: missing={missing} extra={extra}")
        return cls(**values)


def verify_model_matches_schema(cls: type[PersistentObject], schema: ModelSchema) -> None:
    """Raise ``SchemaDriftDefect`` when a model class no longer matches its schema."""
    expected_fields = ["unique_key", *schema.field_names]
    actual_fields = list(cls.model_fields)
    if actual_fields != expected_fields:
        raise SchemaDriftDefect(f"{cls.__name__} fields {actual_fields} do not match schema {expected_fields}")

    annotations = inspect.get_annotations(cls)
    for spec in schema.fields:
        declared = annotations.get(spec.name)
        if declared != spec.annotation:
            raise SchemaDriftDefect(
                f"{cls.__name__}.{spec.name} is declared as {declared!r}, schema expects {spec.annotation!r}"
            )

    params = list(inspect.signature(cls.__init__).parameters)
    expected_params = ["self", *IDENTITY_PARAMS, *schema.field_names]
    if params != expected_params:
        raise SchemaDriftDefect(f"{cls.__name__}.__init__ takes {params[1:]}, schema expects {expected_params[1:]}")
