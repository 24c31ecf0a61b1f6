from __future__ import annotations

import importlib

from persistkit.model import PersistentObject
from persistkit.models.schemas import MODEL_SCHEMAS
from persistkit.schema import ModelSchema


def load_model(schema: ModelSchema) -> type[PersistentObject]:
    """Import and return the model class declared by ``schema``."""
    module = importlib.import_module(schema.module)
    return getattr(module, schema.name)


def all_models() -> list[type[PersistentObject]]:
    return [load_model(schema) for schema in MODEL_SCHEMAS]


def model_by_name(name: str) -> type[PersistentObject]:
    for schema in MODEL_SCHEMAS:
        if schema.name == name:
            return load_model(schema)
    raise KeyError(name)
