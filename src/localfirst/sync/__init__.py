"""Automerge export for localfirst documents.

Optional module, requires ``pip install localfirst[sync]``.
"""

from __future__ import annotations

from localfirst.sync.automerge_bridge import (
    automerge_to_plain,
    document_to_automerge,
    materialize,
)

__all__ = [
    "automerge_to_plain",
    "document_to_automerge",
    "materialize",
]
