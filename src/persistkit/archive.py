"""Self-describing archive codec for persistent objects.

An archive is UTF-8 JSON::

    {"format": "persistkit.archive", "version": 1, "collection": "ExampleModel",
     "entries": [["unique_key", "text", "abc123"], ["double_value", "f64", 3.14], ...]}

Each entry carries its own type tag so the reader can validate values without
consulting storage. Unset optional fields are omitted; entries the reader does
not know are ignored so older readers accept archives from newer writers.
Infinite floats use the ``Infinity`` and ``-Infinity`` JSON literals.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Iterable, TypeVar

from persistkit.batch import BatchResult, decode_batch
from persistkit.errors import MalformedArchive
from persistkit.logging import get_logger
from persistkit.model import PersistentObject
from persistkit.schema import FieldKind, FieldSpec

ARCHIVE_FORMAT = "persistkit.archive"
ARCHIVE_VERSION = 1
UNIQUE_KEY_TAG = "text"
ROW_ID_TAG = "i64"

M = TypeVar("M", bound=PersistentObject)

log = get_logger(__name__)


def _encode_value(kind: FieldKind, value: Any) -> Any:
    if kind is FieldKind.DATE:
        return value.isoformat()
    if kind in (FieldKind.DOUBLE, FieldKind.FLOAT):
        return float(value)
    return int(value)


def encode_archive(obj: PersistentObject) -> bytes:
    """Serialize every schema field and both identifiers of ``obj``."""
    entries: list[list[Any]] = [["unique_key", UNIQUE_KEY_TAG, obj.unique_key]]
    if obj.row_id is not None:
        entries.append(["row_id", ROW_ID_TAG, obj.row_id])
    for spec in obj.field_schema.fields:
        value = getattr(obj, spec.name)
        if value is None:
            continue
        entries.append([spec.name, spec.kind.archive_tag, _encode_value(spec.kind, value)])

    payload = {
        "format": ARCHIVE_FORMAT,
        "version": ARCHIVE_VERSION,
        "collection": obj.field_schema.name,
        "entries": entries,
    }
    return json.dumps(payload, ensure_ascii=False).encode("utf-8")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _decode_value(spec: FieldSpec, raw: Any) -> Any:
    kind = spec.kind
    if kind is FieldKind.DATE:
        if not isinstance(raw, str):
            raise MalformedArchive(f"{spec.name}: expected an ISO-8601 string, got {type(raw).__name__}")
        try:
            return datetime.fromisoformat(raw)
        except ValueError as exc:
            raise MalformedArchive(f"{spec.name}: invalid timestamp {raw!r}") from exc
    if kind in (FieldKind.DOUBLE, FieldKind.FLOAT):
        if not (_is_int(raw) or isinstance(raw, float)):
            raise MalformedArchive(f"{spec.name}: expected a number, got {type(raw).__name__}")
        return float(raw)
    if not _is_int(raw):
        raise MalformedArchive(f"{spec.name}: expected an integer, got {type(raw).__name__}")
    return raw


def _read_entries(payload: Any, collection: str) -> dict[str, tuple[str, Any]]:
    if not isinstance(payload, dict) or payload.get("format") != ARCHIVE_FORMAT:
        raise MalformedArchive("Not a persistkit archive")

    version = payload.get("version")
    if not _is_int(version) or version < 1:
        raise MalformedArchive(f"Invalid archive version: {version!r}")
    if version > ARCHIVE_VERSION:
        log.debug("reading archive version %s with a version %s reader", version, ARCHIVE_VERSION)

    if payload.get("collection") != collection:
        raise MalformedArchive(f"Archive holds {payload.get('collection')!r}, expected {collection!r}")

    entries = payload.get("entries")
    if not isinstance(entries, list):
        raise MalformedArchive("Archive entries must be a list")

    by_key: dict[str, tuple[str, Any]] = {}
    for entry in entries:
        if not (isinstance(entry, list) and len(entry) == 3 and isinstance(entry[0], str) and isinstance(entry[1], str)):
            raise MalformedArchive(f"Malformed archive entry: {entry!r}")
        name, tag, value = entry
        if name in by_key:
            raise MalformedArchive(f"Duplicate archive entry: {name!r}")
        by_key[name] = (tag, value)
    return by_key


def decode_archive(data: bytes | str, model_cls: type[M]) -> M:
    """Rebuild a ``model_cls`` instance from archive bytes.

    Raises:
        MalformedArchive: If the envelope is invalid, a required field is
            missing or null, a type tag disagrees with the schema, or the
            decoded values fail the model's validation.
    """
    schema = model_cls.field_schema
    try:
        payload = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedArchive(f"Archive is not valid JSON: {exc}") from exc

    by_key = _read_entries(payload, schema.name)
    values: dict[str, Any] = {}

    tag, unique_key = by_key.get("unique_key", (UNIQUE_KEY_TAG, None))
    if tag != UNIQUE_KEY_TAG or not isinstance(unique_key, str):
        raise MalformedArchive("Archive is missing a text unique_key")
    values["unique_key"] = unique_key

    tag, row_id = by_key.get("row_id", (ROW_ID_TAG, None))
    if tag != ROW_ID_TAG or not (row_id is None or _is_int(row_id)):
        raise MalformedArchive(f"Invalid row_id entry: {row_id!r}")
    values["row_id"] = row_id

    known = {"unique_key", "row_id"}
    for spec in schema.fields:
        keys = (spec.name, *spec.legacy_names)
        known.update(keys)
        found = next((by_key[key] for key in keys if key in by_key), None)
        if found is None or found[1] is None:
            if not spec.nullable:
                raise MalformedArchive(f"Archive is missing required field {spec.name!r}")
            values[spec.name] = None
            continue
        tag, raw = found
        if tag != spec.kind.archive_tag:
            raise MalformedArchive(f"{spec.name}: tag {tag!r} does not match {spec.kind.archive_tag!r}")
        values[spec.name] = _decode_value(spec, raw)

    unknown = sorted(set(by_key) - known)
    if unknown:
        log.debug("ignoring unknown archive entries for %s: %s", schema.name, unknown)

    try:
        return model_cls.from_values(values)
    except ValueError as exc:
        raise MalformedArchive(f"Archive values rejected by {schema.name}: {exc}") from exc


def decode_archives(
    payloads: Iterable[bytes | str],
    model_cls: type[M],
    atomic: bool = False,
) -> BatchResult[M]:
    return decode_batch(payloads, lambda data: decode_archive(data, model_cls), atomic=atomic)
