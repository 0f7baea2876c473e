"""The shape of a value being written, decided once at the API boundary.

``classify`` turns a native Python value into a tree of
:class:`SequenceValue`, :class:`MappingValue` and :class:`LeafValue` so the
write path dispatches on tags instead of re-inspecting native types at
every level of recursion.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from localfirst.core.errors import InvalidValue

LEAF_TYPES = (str, bytes, bool, int, float, type(None))


@dataclass(frozen=True)
class LeafValue:
    value: Any


@dataclass(frozen=True)
class SequenceValue:
    items: tuple[WriteValue, ...]


@dataclass(frozen=True)
class MappingValue:
    entries: tuple[tuple[Any, WriteValue], ...]


@dataclass(frozen=True)
class AbsentValue:
    """An unset register or Null leaf captured from a handle; writes nothing."""


WriteValue = LeafValue | SequenceValue | MappingValue | AbsentValue


def classify(value: Any) -> WriteValue:
    """Tag *value* (recursively) as a sequence, mapping or leaf.

    A :class:`DynamicHandle` is captured from its document as it stands,
    so copying a record with unset fields leaves those fields unset.
    """
    if isinstance(value, (LeafValue, SequenceValue, MappingValue, AbsentValue)):
        return value

    from localfirst.proxy.handle import DynamicHandle

    if isinstance(value, DynamicHandle):
        return value._capture()

    if isinstance(value, LEAF_TYPES):
        return LeafValue(value)
    if isinstance(value, (list, tuple)):
        return SequenceValue(tuple(classify(item) for item in value))
    if isinstance(value, Mapping):
        return MappingValue(tuple((key, classify(item)) for key, item in value.items()))
    raise InvalidValue(f"Cannot write a {type(value).__name__}")
