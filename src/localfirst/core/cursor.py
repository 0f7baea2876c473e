"""Steppable positions inside a document.

A :class:`Cursor` pairs a schema node with a container path.  It decides
how to interpret a selector from the kind of the position it currently
points at, so one traversal routine serves Records, Sequences and Maps.
Cursors are mutable and not safe to share; :meth:`Cursor.clone` before
stepping a position someone else holds.

Sequence elements and Map keys exist through marker entries stored at
the container path: an element marker carries its fractional position
and its dot doubles as the element uid.  Removing an element or key
expires its marker together with everything below it.
"""

from __future__ import annotations

import logging
from enum import Enum
from fractions import Fraction
from typing import TYPE_CHECKING, Any

from localfirst.core.causal import Causal, Dot, Entry
from localfirst.core.errors import InvalidValue, NotAValueType, UnsupportedTraversal
from localfirst.core.schema import (
    ArraySchema,
    FlagSchema,
    NullSchema,
    PrimitiveKind,
    RegSchema,
    Schema,
    StructSchema,
    TableSchema,
)

if TYPE_CHECKING:
    from localfirst.core.document import Document

logger = logging.getLogger(__name__)

U64_MAX = 2**64 - 1
I64_MIN = -(2**63)
I64_MAX = 2**63 - 1

FIELD = "field"
KEY = "key"
ELEM = "elem"


class PositionKind(str, Enum):
    RECORD = "record"
    SEQUENCE = "sequence"
    MAP = "map"
    LEAF = "leaf"


class LeafKind(str, Enum):
    NULL = "null"
    FLAG = "bool"
    BOOL_REG = "Reg<bool>"
    U64_REG = "Reg<u64>"
    I64_REG = "Reg<i64>"
    STR_REG = "Reg<string>"


_REG_LEAF_KINDS: dict[PrimitiveKind, LeafKind] = {
    PrimitiveKind.BOOL: LeafKind.BOOL_REG,
    PrimitiveKind.U64: LeafKind.U64_REG,
    PrimitiveKind.I64: LeafKind.I64_REG,
    PrimitiveKind.STR: LeafKind.STR_REG,
}


def check_primitive(kind: PrimitiveKind, value: Any) -> Any:
    """Return *value* if it is a valid *kind* primitive, else raise InvalidValue."""
    if kind is PrimitiveKind.BOOL:
        if isinstance(value, bool):
            return value
    elif kind is PrimitiveKind.STR:
        if isinstance(value, str):
            return value
    elif isinstance(value, int) and not isinstance(value, bool):
        low, high = (0, U64_MAX) if kind is PrimitiveKind.U64 else (I64_MIN, I64_MAX)
        if low <= value <= high:
            return value
        raise InvalidValue(f"{value} is out of range for {kind.value}")
    raise InvalidValue(f"{value!r} is not a {kind.value}")


def coerce_key(kind: PrimitiveKind, selector: Any) -> Any:
    """Convert a map selector to the key type the table declares."""
    if isinstance(selector, str) and kind is not PrimitiveKind.STR:
        text = selector.strip()
        if kind is PrimitiveKind.BOOL:
            if text.lower() in ("true", "false"):
                return text.lower() == "true"
            raise UnsupportedTraversal(f"{selector!r} is not a bool map key")
        try:
            selector = int(text)
        except ValueError:
            raise UnsupportedTraversal(f"{selector!r} is not a {kind.value} map key") from None
    try:
        return check_primitive(kind, selector)
    except InvalidValue as exc:
        raise UnsupportedTraversal(f"Invalid map key: {exc}") from None


def format_key(key: Any) -> str:
    if isinstance(key, bool):
        return "true" if key else "false"
    return str(key)


class Cursor:
    """An opaque, steppable position within one document."""

    __slots__ = ("_document", "_schema", "_path")

    def __init__(self, document: Document, schema: Schema, path: tuple = ()) -> None:
        self._document = document
        self._schema = schema
        self._path = path

    def __repr__(self) -> str:
        return f"Cursor(doc={self._document.id!r}, path={self._path!r})"

    @property
    def path(self) -> tuple:
        return self._path

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def kind(self) -> PositionKind:
        if isinstance(self._schema, StructSchema):
            return PositionKind.RECORD
        if isinstance(self._schema, ArraySchema):
            return PositionKind.SEQUENCE
        if isinstance(self._schema, TableSchema):
            return PositionKind.MAP
        return PositionKind.LEAF

    @property
    def leaf_kind(self) -> LeafKind | None:
        if isinstance(self._schema, FlagSchema):
            return LeafKind.FLAG
        if isinstance(self._schema, RegSchema):
            return _REG_LEAF_KINDS[self._schema.primitive]
        if isinstance(self._schema, NullSchema):
            return LeafKind.NULL
        return None

    def clone(self) -> Cursor:
        return Cursor(self._document, self._schema, self._path)

    # -- navigation ---------------------------------------------------------

    def step(self, selector: int | str) -> Cursor:
        """Step into a child chosen by the current kind.  Mutates in place."""
        kind = self.kind
        if kind is PositionKind.SEQUENCE:
            if isinstance(selector, str):
                if not selector.isdecimal():
                    raise UnsupportedTraversal(f"Cannot index a Sequence with {selector!r}")
                selector = int(selector)
            return self.index(selector)
        if kind is PositionKind.RECORD:
            return self.field(selector)  # type: ignore[arg-type]
        if kind is PositionKind.MAP:
            return self.key(selector)
        raise UnsupportedTraversal(
            f"Cannot step into {self.leaf_kind.value} leaf with {selector!r}"  # type: ignore[union-attr]
        )

    def field(self, name: str) -> Cursor:
        if not isinstance(self._schema, StructSchema):
            raise UnsupportedTraversal(f"Cannot select field {name!r} of a {self.kind.value}")
        if not isinstance(name, str):
            raise UnsupportedTraversal(f"Record fields are named by strings, got {name!r}")
        if name not in self._schema.fields:
            raise UnsupportedTraversal(f"Record has no field {name!r}")
        self._schema = self._schema.fields[name]
        self._path = self._path + ((FIELD, name),)
        logger.debug("step field %r -> %r", name, self._path)
        return self

    def index(self, index: int) -> Cursor:
        if not isinstance(self._schema, ArraySchema):
            raise UnsupportedTraversal(f"Cannot index a {self.kind.value} with {index!r}")
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise UnsupportedTraversal(f"Sequence indexes are non-negative ints, got {index!r}")

        elements = self._elements()
        if index >= len(elements):
            raise UnsupportedTraversal(
                f"Sequence index {index} out of range (length {len(elements)})"
            )
        _, uid = elements[index]
        self._schema = self._schema.item
        self._path = self._path + ((ELEM, uid),)
        logger.debug("step index %d -> %r", index, self._path)
        return self

    def key(self, key: Any) -> Cursor:
        if not isinstance(self._schema, TableSchema):
            raise UnsupportedTraversal(f"Cannot look up key {key!r} in a {self.kind.value}")
        key = coerce_key(self._schema.key, key)
        self._schema = self._schema.value
        self._path = self._path + ((KEY, key),)
        logger.debug("step key %r -> %r", key, self._path)
        return self

    # -- container introspection ---------------------------------------------

    def _live(self) -> list[Entry]:
        """Live entries at or below this position."""
        return self._document.entries_under(self._path)

    def _markers(self, tag: str) -> list[Entry]:
        return [
            entry
            for entry in self._live()
            if entry.path == self._path and isinstance(entry.value, tuple) and entry.value[0] == tag
        ]

    def _elements(self) -> list[tuple[Fraction, Dot]]:
        """``(position, uid)`` of every live element, in sequence order."""
        return sorted((entry.value[1], entry.dot) for entry in self._markers(ELEM))

    def array_length(self) -> int:
        if self.kind is not PositionKind.SEQUENCE:
            raise UnsupportedTraversal(f"A {self.kind.value} has no length")
        return len(self._elements())

    def map_keys(self) -> list[Any]:
        if self.kind is not PositionKind.MAP:
            raise UnsupportedTraversal(f"A {self.kind.value} has no keys")
        depth = len(self._path)
        found = {entry.value[1] for entry in self._markers(KEY)}
        found.update(
            entry.path[depth][1]
            for entry in self._live()
            if len(entry.path) > depth and entry.path[depth][0] == KEY
        )
        return sorted(found)

    def keys(self) -> list[str]:
        """Visible keys at this position, as strings.

        Record field names, Sequence indexes, or Map keys.  Leaves have none.
        """
        kind = self.kind
        if kind is PositionKind.RECORD:
            return list(self._schema.fields)  # type: ignore[union-attr]
        if kind is PositionKind.SEQUENCE:
            return [str(i) for i in range(self.array_length())]
        if kind is PositionKind.MAP:
            return [format_key(k) for k in self.map_keys()]
        return []

    # -- leaf reads ---------------------------------------------------------

    def _here(self) -> list[Entry]:
        return [entry for entry in self._live() if entry.path == self._path]

    def enabled(self) -> bool:
        self._require_leaf(FlagSchema)
        return bool(self._here())

    def values(self) -> list[Any]:
        """All concurrently assigned register values, in dot order."""
        self._require_leaf(RegSchema)
        return [entry.value for entry in sorted(self._here(), key=lambda e: e.dot)]

    # -- leaf writes --------------------------------------------------------

    def enable(self) -> Causal:
        self._require_leaf(FlagSchema)
        dot = self._document.next_dot()
        return Causal(
            store=frozenset({Entry(self._path, dot)}),
            expired=self._here_dots(),
        )

    def disable(self) -> Causal:
        self._require_leaf(FlagSchema)
        return Causal(expired=self._here_dots())

    def assign(self, value: Any) -> Causal:
        schema = self._require_leaf(RegSchema)
        value = check_primitive(schema.primitive, value)  # type: ignore[union-attr]
        dot = self._document.next_dot()
        return Causal(
            store=frozenset({Entry(self._path, dot, value)}),
            expired=self._here_dots(),
        )

    # -- container writes ---------------------------------------------------

    def array_insert(self, index: int) -> Causal:
        """Create a new element in front of *index* and step onto it.

        Indexes at or past the end append, keeping the distance past the
        end so several appends computed against the same state stay in
        order.  Returns the delta that makes the element exist; writes to
        the element's contents are separate deltas.
        """
        if self.kind is not PositionKind.SEQUENCE:
            raise UnsupportedTraversal(f"Cannot insert into a {self.kind.value}")
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise UnsupportedTraversal(f"Sequence indexes are non-negative ints, got {index!r}")

        elements = self._elements()
        before = elements[index - 1][0] if 0 < index <= len(elements) else None
        if index < len(elements):
            after = elements[index][0]
            position = ((before or Fraction(0)) + after) / 2
        else:
            last = elements[-1][0] if elements else Fraction(0)
            position = last + (index - len(elements)) + 1

        uid = self._document.next_dot()
        marker = Entry(self._path, uid, (ELEM, position))
        self._schema = self._schema.item  # type: ignore[union-attr]
        self._path = self._path + ((ELEM, uid),)
        logger.debug("insert at %d -> %r", index, self._path)
        return Causal(store=frozenset({marker}))

    def map_insert(self, key: Any) -> Causal:
        """Make *key* exist in this Map and step onto it."""
        if self.kind is not PositionKind.MAP:
            raise UnsupportedTraversal(f"Cannot insert key {key!r} into a {self.kind.value}")
        key = coerce_key(self._schema.key, key)  # type: ignore[union-attr]
        stale = frozenset(entry.dot for entry in self._markers(KEY) if entry.value[1] == key)
        marker = Entry(self._path, self._document.next_dot(), (KEY, key))
        self.key(key)
        return Causal(store=frozenset({marker}), expired=stale)

    def key_markers(self) -> list[Causal]:
        """Marker deltas for every Map key on this path that has none yet.

        A write that reaches into a Map entry through an existing cursor
        joins these so the key stays visible once its contents are cleared.
        """
        deltas = []
        for depth, (tag, key) in enumerate(self._path):
            if tag != KEY:
                continue
            parent = self._path[:depth]
            if not any(
                entry.path == parent and entry.value == (KEY, key)
                for entry in self._document.entries_under(parent)
            ):
                marker = Entry(parent, self._document.next_dot(), (KEY, key))
                deltas.append(Causal(store=frozenset({marker})))
        return deltas

    def array_remove(self) -> Causal:
        """Remove the Sequence element this cursor points at."""
        if not self._path or self._path[-1][0] != ELEM:
            raise UnsupportedTraversal("Cursor does not point at a Sequence element")
        uid = self._path[-1][1]
        return Causal(expired=self._subtree_dots() | {uid})

    def map_remove(self) -> Causal:
        """Remove the Map entry this cursor points at."""
        if not self._path or self._path[-1][0] != KEY:
            raise UnsupportedTraversal("Cursor does not point at a Map entry")
        key = self._path[-1][1]
        parent = self._path[:-1]
        markers = {
            entry.dot
            for entry in self._document.entries_under(parent)
            if entry.path == parent and entry.value == (KEY, key)
        }
        return Causal(expired=self._subtree_dots() | markers)

    def _subtree_dots(self) -> frozenset[Dot]:
        return frozenset(entry.dot for entry in self._live())

    def _here_dots(self) -> frozenset[Dot]:
        return frozenset(entry.dot for entry in self._here())

    def _require_leaf(self, schema_type: type) -> Schema:
        if not isinstance(self._schema, schema_type):
            found = self.leaf_kind.value if self.leaf_kind else self.kind.value
            raise NotAValueType(f"Expected a {schema_type.__name__} position, found {found}")
        return self._schema
