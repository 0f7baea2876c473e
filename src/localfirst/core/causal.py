"""Causal deltas: mergeable units of pending change.

A delta is a dot store (a set of entries, each tagged with the dot that
created it) plus the set of dots it expires.  Joining two deltas unions
both halves and drops every entry whose dot is expired on either side,
which makes :func:`join` associative, commutative and idempotent.  A
document's replicated state is itself a :class:`Causal`; applying a delta
is a join.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from functools import reduce
from typing import Any, NamedTuple


class Dot(NamedTuple):
    """A unique event id: the *counter*-th event created by *peer*."""

    peer: str
    counter: int


class Entry(NamedTuple):
    """One element of a dot store.

    *path* is the container path of the leaf the entry belongs to.  Flag
    entries carry ``value=None``; register entries carry the assigned
    primitive.
    """

    path: tuple
    dot: Dot
    value: Any = None


@dataclass(frozen=True)
class CausalContext:
    """The dots a replica has seen, split into live and expired."""

    dots: frozenset[Dot] = frozenset()
    expired: frozenset[Dot] = frozenset()


@dataclass(frozen=True)
class Causal:
    """A mergeable description of a pending state change."""

    store: frozenset[Entry] = frozenset()
    expired: frozenset[Dot] = frozenset()

    def is_empty(self) -> bool:
        return not self.store and not self.expired

    def dots(self) -> frozenset[Dot]:
        return frozenset(entry.dot for entry in self.store)

    def join(self, other: Causal) -> Causal:
        """Return the join of this delta and *other*."""
        expired = self.expired | other.expired
        store = frozenset(
            entry for entry in self.store | other.store if entry.dot not in expired
        )
        return Causal(store=store, expired=expired)

    def ctx(self) -> CausalContext:
        return CausalContext(dots=self.dots(), expired=self.expired)

    def unjoin(self, ctx: CausalContext) -> Causal:
        """Return the part of this delta a replica at *ctx* has not seen.

        Joining the result into that replica's state yields the same state
        as joining this whole delta.
        """
        missing = self.dots() - ctx.dots
        return Causal(
            store=frozenset(entry for entry in self.store if entry.dot in missing),
            expired=self.expired - ctx.expired,
        )


def join(a: Causal, b: Causal) -> Causal:
    """Join two deltas.  Order of arguments does not matter."""
    return a.join(b)


def join_all(deltas: Iterable[Causal]) -> Causal | None:
    """Fold *deltas* into one, or return ``None`` if there are none."""
    pending = list(deltas)
    if not pending:
        return None
    return reduce(join, pending)
