from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Callable, Iterable, TypeVar

from persistkit.batch import BatchResult, decode_batch
from persistkit.errors import IdentityConflict
from persistkit.logging import get_logger
from persistkit.model import PersistentObject
from persistkit.row import ROW_ID_COLUMN, UNIQUE_KEY_COLUMN, SqlValue, decode_row, encode_row

M = TypeVar("M", bound=PersistentObject)

log = get_logger(__name__)


def _insert_sql(table: str, columns: dict[str, SqlValue]) -> str:
    names = ", ".join(columns)
    placeholders = ", ".join("?" for _ in columns)
    return f"INSERT INTO {table}({names}) VALUES ({placeholders})"


def _update_sql(table: str, columns: dict[str, SqlValue]) -> str:
    assignments = ", ".join(f"{name} = ?" for name in columns)
    return f"UPDATE {table} SET {assignments} WHERE {ROW_ID_COLUMN} = ? AND {UNIQUE_KEY_COLUMN} = ?"


def _check_owner(conn: sqlite3.Connection, obj: PersistentObject) -> bool:
    """Return whether ``obj``'s row id is stored; raise if another object owns it."""
    table = obj.field_schema.table
    row = conn.execute(
        f"SELECT {UNIQUE_KEY_COLUMN} FROM {table} WHERE {ROW_ID_COLUMN} = ?",
        (obj.row_id,),
    ).fetchone()
    if row is None:
        return False
    if row[0] != obj.unique_key:
        raise IdentityConflict(f"{table} row {obj.row_id} belongs to {row[0]!r}, not {obj.unique_key!r}")
    return True


class Store:
    """SQLite storage for persistent models.

    Every public call opens its own connection and runs as one transaction.
    Errors raised by SQLite itself, such as unique-key conflicts, propagate
    unchanged.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self, models: Iterable[type[PersistentObject]]) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        script = "\n".join(model.field_schema.create_table_sql() for model in models)
        with self._connect() as conn:
            conn.executescript(script)

    def insert(self, obj: PersistentObject) -> int:
        """Insert ``obj`` as a new row and bind the row id storage assigns."""
        table = obj.field_schema.table
        columns = encode_row(obj, include_row_id=False)
        with self._connect() as conn:
            cursor = conn.execute(_insert_sql(table, columns), tuple(columns.values()))
            row_id = int(cursor.lastrowid)
            # Raising here rolls the insert back.
            obj.bind_row_id(row_id)
        log.info("inserted %s row %s (%s)", table, row_id, obj.unique_key)
        return row_id

    def update(self, obj: PersistentObject) -> bool:
        """Overwrite the stored row for ``obj``; return whether a row matched.

        Raises:
            IdentityConflict: If the row id is stored under a different unique key.
        """
        if obj.row_id is None:
            raise ValueError(f"{type(obj).__name__} {obj.unique_key!r} has no row id; insert it first")
        table = obj.field_schema.table
        columns = encode_row(obj, include_row_id=False)
        with self._connect() as conn:
            if not _check_owner(conn, obj):
                updated = False
            else:
                cursor = conn.execute(
                    _update_sql(table, columns),
                    (*columns.values(), obj.row_id, obj.unique_key),
                )
                updated = cursor.rowcount > 0
        log.info("updated %s row %s: %s", table, obj.row_id, updated)
        return updated

    def save(self, obj: PersistentObject) -> int:
        """Insert an unbound object, or write a bound one under its existing row id.

        Raises:
            IdentityConflict: If the row id is stored under a different unique key.
        """
        if obj.row_id is None:
            return self.insert(obj)
        table = obj.field_schema.table
        with self._connect() as conn:
            if _check_owner(conn, obj):
                columns = encode_row(obj, include_row_id=False)
                conn.execute(_update_sql(table, columns), (*columns.values(), obj.row_id, obj.unique_key))
            else:
                columns = encode_row(obj)
                conn.execute(_insert_sql(table, columns), tuple(columns.values()))
                log.info("inserted %s row %s with its bound id", table, obj.row_id)
        return obj.row_id

    def update_with(self, obj: M, mutate: Callable[[M], None]) -> M:
        """Apply ``mutate`` to the latest stored copy of ``obj`` and persist it.

        ``obj`` receives the same mutation only once the write has committed.

        Changes written by others since ``obj`` was loaded are kept; only the
        fields ``mutate`` touches are overwritten.
        """
        if obj.row_id is None:
            raise ValueError(f"{type(obj).__name__} {obj.unique_key!r} has no row id; insert it first")
        table = obj.field_schema.table
        with self._connect() as conn:
            row = conn.execute(f"SELECT * FROM {table} WHERE {ROW_ID_COLUMN} = ?", (obj.row_id,)).fetchone()
            if row is None:
                raise LookupError(f"{table} row {obj.row_id} does not exist")
            latest = decode_row(row, type(obj))
            if latest.unique_key != obj.unique_key:
                raise IdentityConflict(
                    f"{table} row {obj.row_id} belongs to {latest.unique_key!r}, not {obj.unique_key!r}"
                )
            mutate(latest)
            columns = encode_row(latest, include_row_id=False)
            conn.execute(_update_sql(table, columns), (*columns.values(), latest.row_id, latest.unique_key))
        mutate(obj)
        log.info("updated %s row %s in place", table, latest.row_id)
        return latest

    def fetch_by_row_id(self, model_cls: type[M], row_id: int) -> M | None:
        table = model_cls.field_schema.table
        with self._connect() as conn:
            row = conn.execute(f"SELECT * FROM {table} WHERE {ROW_ID_COLUMN} = ?", (row_id,)).fetchone()
            return decode_row(row, model_cls) if row else None

    def fetch_by_unique_key(self, model_cls: type[M], unique_key: str) -> M | None:
        table = model_cls.field_schema.table
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT * FROM {table} WHERE {UNIQUE_KEY_COLUMN} = ?",
                (unique_key,),
            ).fetchone()
            return decode_row(row, model_cls) if row else None

    def fetch_all(self, model_cls: type[M], atomic: bool = False) -> BatchResult[M]:
        """Load every stored row; undecodable rows are reported, not fatal, unless ``atomic``."""
        table = model_cls.field_schema.table
        with self._connect() as conn:
            rows = conn.execute(f"SELECT * FROM {table} ORDER BY {ROW_ID_COLUMN}").fetchall()
        return decode_batch(rows, lambda row: decode_row(row, model_cls), atomic=atomic)

    def remove(self, obj: PersistentObject) -> bool:
        if obj.row_id is None:
            raise ValueError(f"{type(obj).__name__} {obj.unique_key!r} has no row id")
        table = obj.field_schema.table
        with self._connect() as conn:
            cursor = conn.execute(f"DELETE FROM {table} WHERE {ROW_ID_COLUMN} = ?", (obj.row_id,))
            removed = cursor.rowcount > 0
        log.info("removed %s row %s: %s", table, obj.row_id, removed)
        return removed
