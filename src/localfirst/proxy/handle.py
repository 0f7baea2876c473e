"""Dynamic handles: ordinary attribute and item syntax over a document.

    doc = proxy(document)
    doc.title = "Groceries"
    doc.tasks = [{"title": "Buy milk", "complete": False}]
    doc.tasks[0].complete = True
    list(doc.tasks)            # element handles
    doc.tasks._value()         # plain Python data

A handle holds nothing but its document and, below the root, a cursor
it never steps; every access works on a clone.  Helper methods are
underscore-prefixed so they cannot shadow schema field names.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from localfirst.core.cursor import Cursor, PositionKind, format_key
from localfirst.core.document import Document
from localfirst.core.errors import UnsupportedTraversal
from localfirst.proxy import translator
from localfirst.proxy.values import WriteValue


class DynamicHandle:
    """A stateless view of one container position."""

    __slots__ = ("_document", "_cursor")

    def __init__(self, document: Document, cursor: Cursor | None = None) -> None:
        object.__setattr__(self, "_document", document)
        object.__setattr__(self, "_cursor", cursor)

    # -- attribute syntax ---------------------------------------------------

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            raise AttributeError(name)
        try:
            return translator.get(self._document, self._cursor, name)
        except UnsupportedTraversal as exc:
            raise AttributeError(str(exc)) from exc

    def __setattr__(self, name: str, value: Any) -> None:
        if name in DynamicHandle.__slots__:
            raise AttributeError(f"{name} is read-only")
        translator.set(self._document, self._cursor, name, value)

    # -- item syntax --------------------------------------------------------

    def __getitem__(self, selector: int | str) -> Any:
        return translator.get(self._document, self._cursor, selector)

    def __setitem__(self, selector: int | str, value: Any) -> None:
        translator.set(self._document, self._cursor, selector, value)

    def __delitem__(self, selector: int | str) -> None:
        if not translator.delete(self._document, self._cursor, selector):
            raise KeyError(selector)

    # -- enumeration --------------------------------------------------------

    def __iter__(self) -> Iterator[Any]:
        """Sequences yield their elements; Records and Maps yield keys."""
        keys = self._keys()
        if self._kind is PositionKind.SEQUENCE:
            for index in range(len(keys)):
                yield self[index]
        else:
            yield from keys

    def __len__(self) -> int:
        return len(self._keys())

    def __contains__(self, item: object) -> bool:
        """Sequences test their element values; Records and Maps their keys."""
        if self._kind is PositionKind.SEQUENCE:
            if isinstance(item, DynamicHandle):
                item = item._value()
            return item in self._value()
        return format_key(item) in self._keys()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DynamicHandle):
            other = other._value()
        return self._value() == other

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"<DynamicHandle {self._kind.value} {self._value()!r}>"

    # -- helpers ------------------------------------------------------------

    @property
    def _kind(self) -> PositionKind:
        return translator.working_cursor(self._document, self._cursor).kind

    def _keys(self) -> list[str]:
        return translator.keys(self._document, self._cursor)

    def _value(self) -> Any:
        return translator.materialize(translator.working_cursor(self._document, self._cursor))

    def _capture(self) -> WriteValue:
        return translator.capture(translator.working_cursor(self._document, self._cursor))

    def _get(self, selector: int | str) -> Any:
        return translator.get(self._document, self._cursor, selector)

    def _set(self, selector: int | str, value: Any) -> bool:
        """Like item assignment, but report whether anything was applied."""
        return translator.set(self._document, self._cursor, selector, value)

    def _insert(self, index: int, value: Any) -> bool:
        return translator.insert(self._document, self._cursor, index, value)

    def _append(self, value: Any) -> bool:
        return self._insert(len(self), value)

    def _delete(self, selector: int | str) -> bool:
        return translator.delete(self._document, self._cursor, selector)


def proxy(document: Document) -> DynamicHandle:
    """Return a handle on the root of *document*."""
    return DynamicHandle(document)
