"""Mirror a document's read projection into an Automerge document.

Records and Maps become Automerge maps, Sequences become Automerge
lists, flags become booleans, and string registers are stored as
``ImmutableString`` (last-writer-wins scalars) rather than collaborative
Text.  Map keys are stringified because Automerge map keys are strings.
The export is one-way: Automerge tooling can read it, but changes made
there do not flow back as causal deltas.
"""

from __future__ import annotations

from typing import Any

from automerge import Document as AutomergeDocument
from automerge import ImmutableString

from localfirst.core.cursor import format_key
from localfirst.core.document import Document
from localfirst.proxy.translator import materialize as _materialize_cursor


def materialize(document: Document) -> Any:
    """Return the whole document as plain Python data."""
    return _materialize_cursor(document.create_cursor())


def _to_automerge(value: Any) -> Any:
    if isinstance(value, dict):
        return {format_key(key): _to_automerge(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_to_automerge(item) for item in value]
    if isinstance(value, str):
        return ImmutableString(value)
    return value


def document_to_automerge(
    document: Document,
    doc: AutomergeDocument | None = None,
) -> AutomergeDocument:
    """Write *document*'s current state into an Automerge document.

    Every top-level key of *document* is overwritten in *doc*; unset
    registers export as ``None``.  Top-level Map entries removed since an
    earlier export into the same *doc* are left in place.
    """
    if doc is None:
        doc = AutomergeDocument()

    data = materialize(document)
    if not isinstance(data, dict):
        raise TypeError("Only documents with a Record or Map root can be exported")

    with doc.change() as d:
        for key, value in data.items():
            d[format_key(key)] = _to_automerge(value)
    return doc


def _to_plain(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _to_plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_to_plain(item) for item in value]
    if isinstance(value, ImmutableString):
        return str(value)
    return value


def automerge_to_plain(doc: AutomergeDocument) -> dict:
    """Read an exported Automerge document back into plain Python data."""
    return _to_plain(doc.to_py())
