"""Per-object failure isolation when decoding many archives or rows."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, TypeVar

from persistkit.errors import MalformedArchive, SchemaViolation
from persistkit.logging import get_logger

T = TypeVar("T")

log = get_logger(__name__)


@dataclass(frozen=True)
class BatchFailure:
    index: int
    error: MalformedArchive | SchemaViolation


@dataclass
class BatchResult(Generic[T]):
    """Decoded objects in input order plus the inputs that failed to decode."""

    items: list[T] = field(default_factory=list)
    failures: list[BatchFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def decode_batch(
    payloads: Iterable[Any],
    decode: Callable[[Any], T],
    atomic: bool = False,
) -> BatchResult[T]:
    """Decode each payload independently.

    A decode failure drops only that object. With ``atomic=True`` the first
    failure is raised instead and no partial result is returned.
    """
    result: BatchResult[T] = BatchResult()
    for index, payload in enumerate(payloads):
        try:
            result.items.append(decode(payload))
        except (MalformedArchive, SchemaViolation) as exc:
            if atomic:
                raise
            log.warning("skipping object %d: %s", index, exc)
            result.failures.append(BatchFailure(index=index, error=exc))
    return result
