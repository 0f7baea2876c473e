"""Translate property access into cursor navigation and causal deltas.

Reads step a private clone of the starting position and either decode a
leaf or hand back a new handle bound to yet another clone.  Writes unwind
the value being written into elementary deltas (one per leaf assignment,
element/key insertion, or element/key removal), join them, and apply the
single result.  Nothing reaches the document until every elementary
delta has been built, so a failing write leaves the document untouched.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from localfirst.core.causal import Causal, join_all
from localfirst.core.cursor import Cursor, LeafKind, PositionKind
from localfirst.core.errors import NotAValueType, UnsupportedTraversal
from localfirst.proxy.codec import decode, encode
from localfirst.proxy.paths import Path, as_path
from localfirst.proxy.values import (
    AbsentValue,
    LeafValue,
    MappingValue,
    SequenceValue,
    WriteValue,
    classify,
)

if TYPE_CHECKING:
    from localfirst.core.document import Document

logger = logging.getLogger(__name__)


def working_cursor(document: Document, cursor: Cursor | None) -> Cursor:
    """A cursor this operation may step freely."""
    return cursor.clone() if cursor is not None else document.create_cursor()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def get(document: Document, cursor: Cursor | None, selector: int | str) -> Any:
    """Step by *selector*; decode a leaf or return a handle for a container."""
    here = working_cursor(document, cursor)
    here.step(selector)
    if here.kind is PositionKind.LEAF:
        return decode(here)

    from localfirst.proxy.handle import DynamicHandle

    return DynamicHandle(document, here.clone())


def keys(document: Document, cursor: Cursor | None) -> list[str]:
    """Visible keys at the position (field names, indexes or map keys)."""
    return working_cursor(document, cursor).keys()


def materialize(cursor: Cursor) -> Any:
    """Read the whole subtree at *cursor* into plain Python data."""
    kind = cursor.kind
    if kind is PositionKind.LEAF:
        return decode(cursor)
    if kind is PositionKind.SEQUENCE:
        return [
            materialize(cursor.clone().index(i)) for i in range(cursor.array_length())
        ]
    if kind is PositionKind.MAP:
        return {key: materialize(cursor.clone().key(key)) for key in cursor.map_keys()}
    return {name: materialize(cursor.clone().field(name)) for name in cursor.keys()}


def capture(cursor: Cursor) -> WriteValue:
    """Read the subtree at *cursor* as a write value, keeping unset leaves unset."""
    kind = cursor.kind
    if kind is PositionKind.LEAF:
        if cursor.leaf_kind is LeafKind.NULL:
            return AbsentValue()
        if cursor.leaf_kind is LeafKind.FLAG:
            return LeafValue(cursor.enabled())
        values = cursor.values()
        return LeafValue(values[0]) if values else AbsentValue()
    if kind is PositionKind.SEQUENCE:
        return SequenceValue(
            tuple(capture(cursor.clone().index(i)) for i in range(cursor.array_length()))
        )
    if kind is PositionKind.MAP:
        return MappingValue(
            tuple((key, capture(cursor.clone().key(key))) for key in cursor.map_keys())
        )
    return MappingValue(
        tuple((name, capture(cursor.clone().field(name))) for name in cursor.keys())
    )



# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def set(document: Document, cursor: Cursor | None, selector: int | str, value: Any) -> bool:
    """Write *value* at *selector* as one atomic delta.

    Returns ``False`` when the write produced no delta at all (for example
    replacing an empty sequence with another empty sequence).  Map keys
    the starting position passes through are created if they do not exist.
    """
    here = working_cursor(document, cursor)
    deltas = here.key_markers()
    deltas.extend(_write_child(here, selector, classify(value)))
    return _commit(document, deltas)


def _commit(document: Document, deltas: list[Causal]) -> bool:
    delta = join_all(deltas)
    if delta is None:
        logger.debug("write on %s produced no deltas", document.id)
        return False
    logger.debug("write on %s joined %d elementary deltas", document.id, len(deltas))
    document.apply_causal(delta)
    return True


def _write_child(parent: Cursor, selector: Any, value: WriteValue) -> list[Causal]:
    here = parent.clone()
    deltas: list[Causal] = []
    if parent.kind is PositionKind.MAP:
        deltas.append(here.map_insert(selector))
    else:
        here.step(selector)
    deltas.extend(write_value(here, value))
    return deltas


def write_value(here: Cursor, value: WriteValue) -> list[Causal]:
    """Unwind *value* into elementary deltas targeting *here*."""
    kind = here.kind

    if isinstance(value, SequenceValue):
        if kind is PositionKind.LEAF:
            raise NotAValueType(f"Cannot write a sequence into a {here.leaf_kind.value} leaf")  # type: ignore[union-attr]
        if kind is not PositionKind.SEQUENCE:
            raise UnsupportedTraversal(f"Cannot write a sequence into a {kind.value}")
        deltas = [
            here.clone().index(i).array_remove() for i in range(here.array_length())
        ]
        for i, item in enumerate(value.items):
            slot = here.clone()
            deltas.append(slot.array_insert(i))
            deltas.extend(write_value(slot, item))
        return deltas

    if isinstance(value, MappingValue):
        if kind is PositionKind.LEAF:
            raise NotAValueType(f"Cannot write a mapping into a {here.leaf_kind.value} leaf")  # type: ignore[union-attr]
        if kind is PositionKind.SEQUENCE:
            raise UnsupportedTraversal("Cannot write a mapping into a sequence")
        deltas = []
        if kind is PositionKind.MAP:
            deltas.extend(here.clone().key(key).map_remove() for key in here.map_keys())
        for key, item in value.entries:
            deltas.extend(_write_child(here, key, item))
        return deltas

    if isinstance(value, AbsentValue):
        return []

    assert isinstance(value, LeafValue)
    return [encode(here, value.value)]


def insert(document: Document, cursor: Cursor | None, index: int, value: Any) -> bool:
    """Insert *value* as a new Sequence element in front of *index*."""
    here = working_cursor(document, cursor)
    deltas = here.key_markers()
    deltas.append(here.array_insert(index))
    deltas.extend(write_value(here, classify(value)))
    return _commit(document, deltas)


def delete(document: Document, cursor: Cursor | None, selector: int | str) -> bool:
    """Remove one Sequence element or Map entry.

    Returns ``False`` when there was nothing to remove (a Map key that is
    not present).
    """
    here = working_cursor(document, cursor)
    kind = here.kind
    if kind not in (PositionKind.SEQUENCE, PositionKind.MAP):
        raise UnsupportedTraversal(f"Cannot remove {selector!r} from a {kind.value}")
    here.step(selector)
    delta = here.array_remove() if kind is PositionKind.SEQUENCE else here.map_remove()
    if delta.is_empty():
        logger.debug("nothing to remove at %r in %s", selector, document.id)
        return False
    return _commit(document, [delta])


# ---------------------------------------------------------------------------
# Path-based entry points
# ---------------------------------------------------------------------------


def _walk(document: Document, path: Path) -> Cursor:
    cursor = document.create_cursor()
    for segment in path:
        cursor.step(segment.selector)
    return cursor


def get_path(document: Document, path: str | Path | list) -> Any:
    """Read the value or handle at *path* (``"tasks[0].title"``)."""
    segments = as_path(path)
    if not segments:
        from localfirst.proxy.handle import DynamicHandle

        return DynamicHandle(document)
    return get(document, _walk(document, segments[:-1]), segments[-1].selector)


def set_path(document: Document, path: str | Path | list, value: Any) -> bool:
    """Write *value* at *path*; an empty path writes the document root."""
    segments = as_path(path)
    if not segments:
        return _commit(document, write_value(document.create_cursor(), classify(value)))
    parent = _walk(document, segments[:-1])
    deltas = parent.key_markers()
    deltas.extend(_write_child(parent, segments[-1].selector, classify(value)))
    return _commit(document, deltas)
