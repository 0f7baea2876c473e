"""localfirst: ordinary Python attribute access over replicated CRDT documents."""

from __future__ import annotations

from localfirst.core.causal import Causal, join, join_all
from localfirst.core.document import Document, Engine, create_memory
from localfirst.core.errors import (
    InvalidValue,
    LocalFirstError,
    NotAValueType,
    SchemaError,
    UnsupportedTraversal,
)
from localfirst.proxy.handle import DynamicHandle, proxy
from localfirst.proxy.paths import Field, Index, Key, parse_path

__all__ = [
    "Causal",
    "Document",
    "DynamicHandle",
    "Engine",
    "Field",
    "Index",
    "InvalidValue",
    "Key",
    "LocalFirstError",
    "NotAValueType",
    "SchemaError",
    "UnsupportedTraversal",
    "create_memory",
    "join",
    "join_all",
    "parse_path",
    "proxy",
]
