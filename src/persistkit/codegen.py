"""Schema compiler for the generated region of each persistent model.

The region between the two ``CODE GENERATION MARKER`` lines holds the field
annotations and the full keyword-only constructor. It is rendered from the
model's ``ModelSchema`` and must never be edited by hand; ``check`` mode
reports any file whose region differs from a fresh render.
"""

from __future__ import annotations

import importlib.util
from pathlib import Path
from typing import Iterable

from persistkit.errors import SchemaDriftDefect
from persistkit.logging import get_logger
from persistkit.schema import ModelSchema

MARKER = "# --- CODE GENERATION MARKER"
NOTICE = "# This snippet is generated by `persistkit codegen`. Do not manually edit it, instead rerun the generator."
INDENT = "    "

log = get_logger(__name__)


def render_generated_region(schema: ModelSchema) -> str:
    """Render the marker-delimited class-body region for ``schema``."""
    body = [MARKER, "", NOTICE, ""]
    body.extend(f"{spec.name}: {spec.annotation}" for spec in schema.fields)
    body.extend(["", "def __init__(", f"{INDENT}self,", f"{INDENT}*,"])
    body.append(f"{INDENT}row_id: int | None = None,")
    body.append(f"{INDENT}unique_key: str | None = None,")
    body.extend(f"{INDENT}{spec.name}: {spec.annotation}," for spec in schema.fields)
    body.extend([") -> None:", f"{INDENT}self._init_full("])
    body.append(f"{INDENT * 2}row_id=row_id,")
    body.append(f"{INDENT * 2}unique_key=unique_key,")
    body.extend(f"{INDENT * 2}{spec.name}={spec.name}," for spec in schema.fields)
    body.extend([f"{INDENT})", "", MARKER])
    return "\n".join(f"{INDENT}{line}" if line else "" for line in body)


def _find_region(lines: list[str], schema: ModelSchema) -> tuple[int, int]:
    markers = [index for index, line in enumerate(lines) if line.strip() == MARKER]
    if len(markers) != 2:
        raise SchemaDriftDefect(f"{schema.name}: expected 2 generation markers, found {len(markers)}")
    return markers[0], markers[1]


def apply_generated_region(source: str, schema: ModelSchema) -> str:
    """Return ``source`` with its generated region replaced by a fresh render."""
    lines = source.splitlines()
    start, end = _find_region(lines, schema)
    rendered = render_generated_region(schema).split("\n")
    updated = "\n".join([*lines[:start], *rendered, *lines[end + 1 :]])
    return updated + "\n" if source.endswith("\n") else updated


def check_generated_region(source: str, schema: ModelSchema) -> None:
    """Raise ``SchemaDriftDefect`` when the generated region is stale or hand-edited."""
    if apply_generated_region(source, schema) != source:
        raise SchemaDriftDefect(f"{schema.name}: generated region is out of date with its schema")


def model_source_path(schema: ModelSchema) -> Path:
    """Locate the module that defines ``schema``'s model without executing it."""
    spec = importlib.util.find_spec(schema.module)
    if spec is None or spec.origin is None:
        raise SchemaDriftDefect(f"{schema.name}: model module {schema.module!r} not found")
    return Path(spec.origin)


def regenerate(schemas: Iterable[ModelSchema], check_only: bool = False) -> list[Path]:
    """Refresh generated regions and return the paths that were stale.

    Args:
        schemas: Model schemas whose modules should be checked.
        check_only: Report stale files without rewriting them.

    Returns:
        Paths whose generated region differed from a fresh render.
    """
    stale: list[Path] = []
    for schema in schemas:
        path = model_source_path(schema)
        source = path.read_text(encoding="utf-8")
        updated = apply_generated_region(source, schema)
        if updated == source:
            log.debug("generated region up to date: %s", path)
            continue
        stale.append(path)
        if check_only:
            log.warning("generated region is stale: %s", path)
        else:
            path.write_text(updated, encoding="utf-8")
            log.info("regenerated %s", path)
    return stale
