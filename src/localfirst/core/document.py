"""Documents and the engine that owns them.

The engine is an explicit handle: construct it once at startup (or
``await Engine.start()``) and pass it wherever documents are created.
There is no process-wide instance.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path

from localfirst.core.bus import Listener, ListenerBus
from localfirst.core.causal import Causal, CausalContext, Dot, Entry
from localfirst.core.config import EngineConfig, default_config, resolve_config, validate_config
from localfirst.core.cursor import Cursor
from localfirst.core.errors import ConfigError, UnknownDocument
from localfirst.core.ids import generate_doc_id
from localfirst.core.schema import (
    LEAF_SCHEMAS,
    ArraySchema,
    Schema,
    StructSchema,
    TableSchema,
    load_schema,
)

logger = logging.getLogger(__name__)

SchemaSource = bytes | str | Schema


def _as_schema(source: SchemaSource) -> Schema:
    if isinstance(source, (bytes, str)):
        return load_schema(source)
    if isinstance(source, (StructSchema, ArraySchema, TableSchema, *LEAF_SCHEMAS)):
        return source
    raise TypeError(f"Expected a descriptor, schema text or schema, got {type(source).__name__}")


class Document:
    """One replicated document.

    The replicated state is a single :class:`Causal`; :meth:`apply_causal`
    joins a delta into it under a lock, so concurrent writers only ever
    observe whole deltas.
    """

    def __init__(self, engine: Engine, schema: Schema, doc_id: str | None = None) -> None:
        self.id = doc_id or generate_doc_id()
        self.schema = schema
        self._engine = engine
        self._state = Causal()
        self._counter = 0
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"Document(id={self.id!r}, peer={self.peer_id!r})"

    @property
    def peer_id(self) -> str:
        return self._engine.peer_id

    @property
    def state(self) -> Causal:
        return self._state

    def next_dot(self) -> Dot:
        """Allocate a fresh dot for this peer."""
        with self._lock:
            self._counter += 1
            return Dot(self.peer_id, self._counter)

    def create_cursor(self) -> Cursor:
        """Return a cursor at the document root."""
        return Cursor(self, self.schema)

    def entries_under(self, prefix: tuple) -> list[Entry]:
        depth = len(prefix)
        return [entry for entry in self._state.store if entry.path[:depth] == prefix]

    def apply_causal(self, delta: Causal) -> None:
        """Atomically join *delta* into the document state."""
        with self._lock:
            self._state = self._state.join(delta)
            # Keep local dots unique even after receiving our own older deltas.
            for dot in delta.dots() | delta.expired:
                if dot.peer == self.peer_id and dot.counter > self._counter:
                    self._counter = dot.counter
        logger.debug(
            "applied delta to %s: %d entries, %d expired",
            self.id,
            len(delta.store),
            len(delta.expired),
        )
        self._engine.bus.notify(self.id, delta)

    def ctx(self) -> CausalContext:
        return self._state.ctx()

    def unjoin(self, ctx: CausalContext) -> Causal:
        """Return the delta a replica at *ctx* is missing."""
        return self._state.unjoin(ctx)


class Engine:
    """Owns documents, the local peer id, and post-apply listeners."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        config = config if config is not None else default_config()
        problems = validate_config(config)
        if problems:
            raise ConfigError("; ".join(problems))
        self.config = config
        self.peer_id: str = config.get("peer_id") or default_config()["peer_id"]
        self.bus = ListenerBus()
        self._documents: dict[str, Document] = {}
        self._lock = threading.Lock()

    @classmethod
    async def start(
        cls,
        config: EngineConfig | None = None,
        config_path: Path | None = None,
    ) -> Engine:
        """Build an engine, reading config from disk/environment if not given."""
        if config is None:
            config = await asyncio.to_thread(resolve_config, config_path)
        engine = cls(config)
        logger.info("engine started as %s", engine.peer_id)
        return engine

    def create_document(self, descriptor: SchemaSource, doc_id: str | None = None) -> Document:
        """Create and register an empty document of the given shape."""
        doc = Document(self, _as_schema(descriptor), doc_id)
        with self._lock:
            self._documents[doc.id] = doc
        logger.debug("created document %s", doc.id)
        return doc

    def document(self, doc_id: str) -> Document:
        with self._lock:
            try:
                return self._documents[doc_id]
            except KeyError:
                raise UnknownDocument(doc_id) from None

    def documents(self) -> list[str]:
        with self._lock:
            return sorted(self._documents)

    def remove_document(self, doc_id: str) -> None:
        with self._lock:
            if self._documents.pop(doc_id, None) is None:
                raise UnknownDocument(doc_id)

    def register_listener(self, fn: Listener) -> None:
        self.bus.register(fn)

    def unregister_listener(self, fn: Listener) -> None:
        self.bus.unregister(fn)


async def create_memory(
    descriptor: SchemaSource,
    config: EngineConfig | None = None,
) -> Document:
    """Start an in-memory engine and return a fresh document on it."""
    engine = await Engine.start(config if config is not None else default_config())
    return engine.create_document(descriptor)
