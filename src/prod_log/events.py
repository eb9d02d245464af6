"""Explicit publish/subscribe channel for tracker state changes."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

SLOT_AVAILABLE = "slot_available"
SLOT_COMMITTED = "slot_committed"
CATEGORIES_CHANGED = "categories_changed"
LOGS_RESET = "logs_reset"
INTERVAL_CHANGING = "interval_changing"
INTERVAL_CHANGED = "interval_changed"

Handler = Callable[[Any], None]


class EventChannel:
    """Synchronous dispatcher; handlers run in subscription order."""

    def __init__(self) -> None:
        self._handlers: defaultdict[str, list[Handler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event: str, handler: Handler) -> Callable[[], None]:
        with self._lock:
            self._handlers[event].append(handler)

        def unsubscribe() -> None:
            with self._lock:
                handlers = self._handlers.get(event, [])
                if handler in handlers:
                    handlers.remove(handler)

        return unsubscribe

    def emit(self, event: str, payload: Any = None) -> None:
        with self._lock:
            handlers = list(self._handlers.get(event, ()))
        for handler in handlers:
            try:
                handler(payload)
            except Exception:
                logger.exception("Handler for %s failed.", event)
