"""
Application-scoped publish/subscribe bus.

Views that need to refresh when another view changes data subscribe to a
named event; the view that made the change publishes it.
"""

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

ADVERTISER_DATA_CHANGED = "advertiser_data_changed"

Handler = Callable[..., Any]


class EventBus:
    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register a handler; returns a function that removes it again"""
        with self._lock:
            self._handlers[event].append(handler)

        def unsubscribe():
            with self._lock:
                if handler in self._handlers[event]:
                    self._handlers[event].remove(handler)
        return unsubscribe

    def publish(self, event: str, **payload: Any) -> int:
        """Call every handler of ``event``; returns how many ran successfully"""
        with self._lock:
            handlers = list(self._handlers.get(event, []))
        delivered = 0
        for handler in handlers:
            try:
                handler(**payload)
                delivered += 1
            except Exception as e:
                logger.error(f"Handler {getattr(handler, '__name__', handler)} failed for '{event}': {e}")
        return delivered

    def subscribers(self, event: str) -> int:
        with self._lock:
            return len(self._handlers.get(event, []))

    def clear(self):
        with self._lock:
            self._handlers.clear()
