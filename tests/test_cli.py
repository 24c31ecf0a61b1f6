from __future__ import annotations

import json
import logging

import pytest
from typer.testing import CliRunner

from persistkit.archive import encode_archive
from persistkit.cli import app
from persistkit.models.example_model import ExampleModel
from persistkit.store import Store

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_codegen_given_committed_models_when_checked_then_exit_code_is_zero() -> None:
    # When
    result = runner.invoke(app, ["codegen", "--check"])

    # Then
    assert result.exit_code == 0
    assert "up to date" in result.output


def test_init_db_given_new_path_when_run_then_database_file_is_created(tmp_path) -> None:
    # Given
    db_path = tmp_path / "nested" / "store.db"

    # When
    result = runner.invoke(app, ["init-db", "--db", str(db_path)])

    # Then
    assert result.exit_code == 0
    assert db_path.exists()


def test_archive_and_restore_given_stored_model_when_round_tripped_then_target_db_matches(
    tmp_path,
    example_model,
) -> None:
    # Given
    source_db = tmp_path / "source.db"
    target_db = tmp_path / "target.db"
    archive_path = tmp_path / "out" / "abc123.json"
    store = Store(source_db)
    store.init_db([ExampleModel])
    store.insert(example_model)

    # When
    archived = runner.invoke(app, ["archive", "abc123", "--out", str(archive_path), "--db", str(source_db)])
    restored = runner.invoke(app, ["restore", str(archive_path), "--db", str(target_db)])
    shown = runner.invoke(app, ["show", "abc123", "--db", str(target_db)])

    # Then
    assert archived.exit_code == 0
    assert restored.exit_code == 0
    assert f"as row {example_model.row_id}" in restored.output
    assert shown.exit_code == 0
    payload = json.loads(shown.output)
    assert payload["unique_key"] == "abc123"
    assert payload["row_id"] == example_model.row_id
    assert payload["int64_value"] == -5


def test_restore_given_malformed_archive_when_run_then_command_fails(tmp_path, example_model) -> None:
    # Given
    archive_path = tmp_path / "broken.json"
    payload = json.loads(encode_archive(example_model))
    payload["entries"] = payload["entries"][:1]
    archive_path.write_text(json.dumps(payload), encoding="utf-8")

    # When
    result = runner.invoke(app, ["restore", str(archive_path), "--db", str(tmp_path / "target.db")])

    # Then
    assert result.exit_code != 0


def test_show_given_unknown_key_when_run_then_command_fails(tmp_path) -> None:
    # Given
    db_path = tmp_path / "store.db"
    runner.invoke(app, ["init-db", "--db", str(db_path)])

    # When
    result = runner.invoke(app, ["show", "missing", "--db", str(db_path)])

    # Then
    assert result.exit_code != 0


def test_doctor_given_missing_db_when_run_then_reports_status(tmp_path) -> None:
    # When
    result = runner.invoke(app, ["doctor", "--db", str(tmp_path / "absent.db")])

    # Then
    assert result.exit_code == 0
    assert "DB exists: False" in result.output
    assert "Generated code: up to date" in result.output
