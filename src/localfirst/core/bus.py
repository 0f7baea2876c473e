"""Lightweight in-process listener bus for post-apply notifications.

Listeners are fire-and-forget: failures are logged but never raise
exceptions or interrupt the apply path.

Thread-safe: a lock protects the listener list so a listener can be
registered from one thread while another applies deltas.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from localfirst.core.causal import Causal

logger = logging.getLogger(__name__)

Listener = Callable[[str, Causal], None]


class ListenerBus:
    """Listeners owned by one engine."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []

    def register(self, fn: Listener) -> None:
        """Register a callback invoked after every successful apply.

        The callback receives ``(doc_id, delta)``.
        """
        with self._lock:
            self._listeners.append(fn)

    def unregister(self, fn: Listener) -> None:
        """Remove a previously registered listener."""
        with self._lock:
            try:
                self._listeners.remove(fn)
            except ValueError:
                pass

    def notify(self, doc_id: str, delta: Causal) -> None:
        """Fire all registered listeners.  Never raises."""
        with self._lock:
            snapshot_listeners = list(self._listeners)
        for fn in snapshot_listeners:
            try:
                fn(doc_id, delta)
            except Exception:
                logger.exception("listener %r failed for document %s", fn, doc_id)
