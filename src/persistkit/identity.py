"""Unique keys and storage-assigned row ids carried by every persistent object."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from persistkit.errors import IdentityConflict
from persistkit.logging import get_logger
from persistkit.schema import INT64_MAX, INT64_MIN

if TYPE_CHECKING:
    from persistkit.model import PersistentObject

log = get_logger(__name__)


def assign_unique_key() -> str:
    """Return a fresh collision-resistant unique key."""
    return uuid.uuid4().hex


def validate_row_id(value: object) -> int:
    """Return ``value`` when it is a usable row id, otherwise raise ``ValueError``."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Row id must be an integer, got {type(value).__name__}")
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"Row id {value} is outside the int64 range")
    return value


def bind_row_id(obj: PersistentObject, row_id: int) -> None:
    """Bind a storage-assigned row id to ``obj``.

    Binding the value already held is a no-op. Binding a different value raises
    ``IdentityConflict`` and leaves the object untouched.
    """
    row_id = validate_row_id(row_id)
    current = obj.row_id
    if current is None:
        obj._row_id = row_id
        log.debug("bound row id %s to %s", row_id, obj.unique_key)
        return
    if current != row_id:
        raise IdentityConflict(
            f"{type(obj).__name__} {obj.unique_key!r} is bound to row id {current}, cannot rebind to {row_id}"
        )
