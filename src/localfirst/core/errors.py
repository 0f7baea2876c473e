"""Exception types raised by the engine and the proxy layer.

A failed ``get``/``set`` never leaves a partially applied write behind:
every error below is raised before the joined delta reaches the document.
"""

from __future__ import annotations


class LocalFirstError(Exception):
    """Base class for all localfirst errors."""


class UnsupportedTraversal(LocalFirstError, LookupError):
    """A selector does not fit the kind of the position it is applied to.

    Examples: indexing a Record with an integer, stepping into a leaf, or
    naming a field the schema does not declare.
    """


class NotAValueType(LocalFirstError, TypeError):
    """The value codec was invoked on a position that holds no value.

    Raised for Null leaves and for container positions (Record, Sequence,
    Map) when a scalar is written to them.
    """


class InvalidValue(LocalFirstError, ValueError):
    """A native value cannot be stored in the targeted register."""


class SchemaError(LocalFirstError, ValueError):
    """A schema descriptor or schema text could not be parsed."""


class ConfigError(LocalFirstError, ValueError):
    """The engine configuration is invalid."""


class UnknownDocument(LocalFirstError, KeyError):
    """No document with the requested id is registered with the engine."""
