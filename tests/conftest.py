from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from persistkit.models.example_model import ExampleModel
from persistkit.store import Store


@pytest.fixture
def example_values() -> dict[str, object]:
    return {
        "boxed_int64_value": None,
        "boxed_uint64_value": 2**64 - 1,
        "date_value": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "double_value": 3.14,
        "float_value": 0.5,
        "int64_value": -5,
        "integer_value": -(2**63),
        "uint64_value": 2**63 + 11,
        "uinteger_value": 7,
    }


@pytest.fixture
def example_model(example_values) -> ExampleModel:
    return ExampleModel(unique_key="abc123", **example_values)


@pytest.fixture
def sparse_model() -> ExampleModel:
    return ExampleModel(
        unique_key="sparse0001",
        boxed_int64_value=None,
        boxed_uint64_value=None,
        date_value=None,
        double_value=0.0,
        float_value=0.0,
        int64_value=0,
        integer_value=0,
        uint64_value=0,
        uinteger_value=0,
    )


@pytest.fixture
def store(tmp_path) -> Store:
    store = Store(tmp_path / "persistkit.db")
    store.init_db([ExampleModel])
    return store
