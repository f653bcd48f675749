"""Event emission keyed by event kind.

Each emitter holds at most one handler per kind, so registering a handler for
a kind that already has one replaces it instead of stacking a duplicate.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ranksync.codes import EventKind

logger = logging.getLogger(__name__)

Handler = Callable[..., None]


class EventEmitter:
    """Minimal kind -> handler dispatcher used by rankings and view models."""

    def __init__(self):
        self._handlers: Dict[EventKind, Handler] = {}

    def on(self, kind: EventKind, handler: Optional[Handler]) -> None:
        """Register handler for kind; None removes the current handler."""
        if handler is None:
            self._handlers.pop(kind, None)
        else:
            self._handlers[kind] = handler

    def has_listener(self, kind: EventKind) -> bool:
        return kind in self._handlers

    def listener_count(self) -> int:
        return len(self._handlers)

    def fire(self, kind: EventKind, *args: Any) -> None:
        handler = self._handlers.get(kind)
        if handler is not None:
            handler(*args)


class SubscriptionSet:
    """Tracks which (emitter, kind) pairs a controller has subscribed.

    replace() unsubscribes everything previously registered before
    subscribing again, so re-running it after a rebuild never leaves stale or
    duplicate handlers behind.
    """

    def __init__(self):
        self._active: List[Tuple[EventEmitter, EventKind]] = []

    def __len__(self) -> int:
        return len(self._active)

    def clear(self) -> None:
        for emitter, kind in self._active:
            emitter.on(kind, None)
        self._active = []

    def replace(self, bindings: Iterable[Tuple[EventEmitter, EventKind, Handler]]) -> None:
        self.clear()
        for emitter, kind, handler in bindings:
            emitter.on(kind, handler)
            self._active.append((emitter, kind))
        logger.debug(f"Subscribed {len(self._active)} event handlers")
