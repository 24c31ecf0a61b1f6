"""Error taxonomy for schema, codec, and identity failures."""

from __future__ import annotations


class PersistError(Exception):
    """Base class for persistkit data-integrity errors."""


class MalformedArchive(PersistError):
    """An archive is missing a required field or carries a mistyped value."""


class SchemaViolation(PersistError):
    """A storage row holds an unexpected NULL or a value of the wrong type."""


class IdentityConflict(PersistError):
    """A bound row id was asked to change to a different value."""


class SchemaDriftDefect(PersistError):
    """Generated code and the declared schema disagree.

    Raised while building or importing model classes and by the code generator,
    never while encoding or decoding values.
    """
