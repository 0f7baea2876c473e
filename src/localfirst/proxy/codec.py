"""Conversion between native values and leaf positions."""

from __future__ import annotations

from typing import Any

from localfirst.core.causal import Causal
from localfirst.core.cursor import Cursor, LeafKind
from localfirst.core.errors import InvalidValue, NotAValueType


def decode(cursor: Cursor) -> Any:
    """Read the native value at a leaf position.

    A register that holds several concurrently written values reads as
    the first of them in dot order; an unwritten register reads as ``None``.
    """
    leaf = cursor.leaf_kind
    if leaf is None:
        raise NotAValueType(f"Cannot decode a {cursor.kind.value} position")
    if leaf is LeafKind.NULL:
        return None
    if leaf is LeafKind.FLAG:
        return cursor.enabled()
    values = cursor.values()
    return values[0] if values else None


def encode(cursor: Cursor, value: Any) -> Causal:
    """Build the delta that stores *value* at a leaf position."""
    leaf = cursor.leaf_kind
    if leaf is None or leaf is LeafKind.NULL:
        found = leaf.value if leaf else cursor.kind.value
        raise NotAValueType(f"Not pointing at a value type (found {found})")

    if leaf is LeafKind.FLAG:
        return cursor.enable() if value else cursor.disable()
    if leaf is LeafKind.BOOL_REG:
        return cursor.assign(_to_bool(value))
    if leaf in (LeafKind.U64_REG, LeafKind.I64_REG):
        return cursor.assign(_to_int(value))
    return cursor.assign(_to_str(value))


def _to_bool(value: Any) -> bool:
    if value is None:
        raise InvalidValue("Cannot store None in a bool register")
    return bool(value)


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidValue(f"{value!r} is not an integer")
        return int(value)
    if isinstance(value, (str, bytes)):
        try:
            return int(value)
        except ValueError:
            raise InvalidValue(f"{value!r} is not an integer") from None
    raise InvalidValue(f"Cannot store {type(value).__name__} in an integer register")


def _to_str(value: Any) -> str:
    if value is None:
        raise InvalidValue("Cannot store None in a string register")
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidValue("bytes are not valid UTF-8") from None
    return str(value)
