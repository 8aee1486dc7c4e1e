"""
In-process notifications (new predictions, finalized matches).

Published after the write that caused them has been committed. Delivery is
best effort: a failing handler is logged and never fails the request.
"""
import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, Dict, List

logger = logging.getLogger(__name__)

Handler = Callable[[str, Dict[str, Any]], None]


class NotificationBus:
    def __init__(self):
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, event: str, handler: Handler) -> None:
        self._handlers[event].append(handler)

    def unsubscribe(self, event: str, handler: Handler) -> None:
        if handler in self._handlers.get(event, []):
            self._handlers[event].remove(handler)

    def publish(self, event: str, payload: Dict[str, Any]) -> int:
        """Call every handler for event. Returns how many succeeded."""
        delivered = 0
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(event, payload)
                delivered += 1
            except Exception:
                logger.exception("Notification handler for %r failed", event)
        return delivered


bus = NotificationBus()
