# recipebox/app/services/event_bus.py
"""
In-process publish/subscribe channel between independently mounted screens.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Optional

from recipebox.app.domain.models import EventKind

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class Subscription:
    """Capability that removes exactly one registered handler."""

    def __init__(self, bus: "EventBus", kind: EventKind, token: object):
        self._bus = bus
        self.kind = kind
        self._token = token
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._bus._remove(self.kind, self._token)

    __call__ = unsubscribe


class EventBus:
    """
    Synchronous fire-and-forget notifications.

    Handlers for a kind run in subscription order on the publisher's
    call stack. A failing handler is logged and skipped; the remaining
    handlers still receive the event. Nothing is persisted or replayed.
    """

    def __init__(self) -> None:
        self._handlers: dict[EventKind, list[tuple[object, Handler]]] = defaultdict(list)
        self._open = True

    def init(self) -> None:
        self._open = True
        logger.debug("event_bus.init")

    def teardown(self) -> None:
        self.unsubscribe_all()
        self._open = False
        logger.debug("event_bus.teardown")

    @property
    def is_open(self) -> bool:
        return self._open

    def subscribe(self, kind: EventKind, handler: Handler) -> Subscription:
        token = object()
        self._handlers[kind].append((token, handler))
        return Subscription(self, kind, token)

    def _remove(self, kind: EventKind, token: object) -> None:
        handlers = self._handlers.get(kind)
        if not handlers:
            return
        self._handlers[kind] = [(t, h) for t, h in handlers if t is not token]

    def unsubscribe_all(self, kind: Optional[EventKind] = None) -> None:
        if kind is None:
            self._handlers.clear()
        else:
            self._handlers.pop(kind, None)

    def listener_count(self, kind: EventKind) -> int:
        return len(self._handlers.get(kind, ()))

    def publish(self, kind: EventKind, payload: Any = None) -> None:
        if not self._open:
            logger.warning("event_bus.publish_after_teardown kind=%s", kind.value)
            return

        # snapshot: handlers added or removed during delivery apply to the next publish
        for _, handler in list(self._handlers.get(kind, ())):
            try:
                handler(payload)
            except Exception:
                logger.exception("event_bus.handler_failed kind=%s handler=%r", kind.value, handler)
