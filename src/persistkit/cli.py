"""Typer-based CLI for schema code generation and archive/storage round trips."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer

from persistkit.archive import decode_archive, encode_archive
from persistkit.codegen import regenerate
from persistkit.config import get_settings
from persistkit.errors import IdentityConflict, MalformedArchive, SchemaDriftDefect, SchemaViolation
from persistkit.logging import configure_logging
from persistkit.model import PersistentObject
from persistkit.models.registry import all_models, model_by_name
from persistkit.models.schemas import MODEL_SCHEMAS
from persistkit.store import Store

app = typer.Typer(add_completion=False, help="persistkit: one schema, two codecs, one constructor")

DEFAULT_MODEL = "ExampleModel"


def _resolve_db(db_path: Path | None) -> Path:
    return db_path if db_path is not None else get_settings().db_path


def _resolve_model(name: str) -> type[PersistentObject]:
    try:
        return model_by_name(name)
    except KeyError as exc:
        known = ", ".join(schema.name for schema in MODEL_SCHEMAS)
        raise typer.BadParameter(f"Unknown model {name!r} (known: {known})") from exc


def _to_display(obj: PersistentObject) -> dict[str, Any]:
    """Convert a model to a JSON-friendly mapping including its row id."""
    return {"row_id": obj.row_id, **obj.model_dump(mode="json")}


@app.callback()
def main(
    log_level: str | None = typer.Option(None, "--log-level", help="Override PERSISTKIT_LOG_LEVEL"),
) -> None:
    settings = get_settings()
    configure_logging(level=log_level or settings.log_level, json_logs=settings.json_logs)


@app.command("init-db")
def init_db(
    db_path: Path | None = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Create tables for every registered model."""
    db = _resolve_db(db_path)
    Store(db).init_db(all_models())
    typer.echo(f"DB initialized: {db}")


@app.command("codegen")
def codegen(
    check: bool = typer.Option(False, "--check", help="Fail instead of rewriting stale generated regions"),
) -> None:
    """Regenerate model constructors from their schemas."""
    try:
        stale = regenerate(MODEL_SCHEMAS, check_only=check)
    except SchemaDriftDefect as exc:
        typer.echo(f"Schema drift: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if check and stale:
        for path in stale:
            typer.echo(f"stale: {path}", err=True)
        raise typer.Exit(code=1)
    if stale:
        typer.echo(f"Regenerated {len(stale)} module(s)")
    else:
        typer.echo("Generated regions up to date")


@app.command("show")
def show(
    unique_key: str = typer.Argument(..., help="Unique key of the stored object"),
    model: str = typer.Option(DEFAULT_MODEL, help="Model name"),
    db_path: Path | None = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Print a stored object as JSON."""
    model_cls = _resolve_model(model)
    try:
        obj = Store(_resolve_db(db_path)).fetch_by_unique_key(model_cls, unique_key)
    except SchemaViolation as exc:
        raise typer.BadParameter(str(exc)) from exc
    if obj is None:
        raise typer.BadParameter(f"Object not found: {unique_key}")
    typer.echo(json.dumps(_to_display(obj), indent=2))


@app.command("archive")
def archive(
    unique_key: str = typer.Argument(..., help="Unique key of the stored object"),
    out: Path = typer.Option(..., "--out", help="Archive file to write"),
    model: str = typer.Option(DEFAULT_MODEL, help="Model name"),
    db_path: Path | None = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Export a stored object to an archive file."""
    model_cls = _resolve_model(model)
    try:
        obj = Store(_resolve_db(db_path)).fetch_by_unique_key(model_cls, unique_key)
    except SchemaViolation as exc:
        raise typer.BadParameter(str(exc)) from exc
    if obj is None:
        raise typer.BadParameter(f"Object not found: {unique_key}")

    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(encode_archive(obj))
    typer.echo(f"Archived {unique_key} (row {obj.row_id}) to {out}")


@app.command("restore")
def restore(
    archive_path: Path = typer.Argument(..., help="Archive file to load"),
    model: str = typer.Option(DEFAULT_MODEL, help="Model name"),
    db_path: Path | None = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Load an archive file and save it to storage."""
    model_cls = _resolve_model(model)
    if not archive_path.exists():
        raise typer.BadParameter(f"Archive not found: {archive_path}")
    try:
        obj = decode_archive(archive_path.read_bytes(), model_cls)
    except MalformedArchive as exc:
        raise typer.BadParameter(f"Malformed archive: {exc}") from exc

    store = Store(_resolve_db(db_path))
    store.init_db([model_cls])
    try:
        row_id = store.save(obj)
    except IdentityConflict as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(f"Restored {obj.unique_key} as row {row_id}")


@app.command("doctor")
def doctor(
    db_path: Path | None = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Print settings and generated-code diagnostics."""
    db = _resolve_db(db_path)
    typer.echo(f"DB exists: {db.exists()} ({db})")
    try:
        stale = regenerate(MODEL_SCHEMAS, check_only=True)
    except SchemaDriftDefect as exc:
        typer.echo(f"Generated code: drift ({exc})")
        return
    typer.echo(f"Generated code: {'stale' if stale else 'up to date'}")


if __name__ == "__main__":
    app()
