"""Lightweight in-memory publish/subscribe hub for lifecycle events."""
from __future__ import annotations

import threading
from collections import defaultdict
from enum import Enum
from typing import Callable, Dict, List, Optional, Union

from .log import StructuredLogger
from .models import AgentEvent

EventHandler = Callable[[AgentEvent], None]
EventName = Union[str, Enum]


def _key(event: EventName) -> str:
    return getattr(event, "value", event)


class EventEmitter:
    """Explicit observer registry: zero or more handlers per event name.

    Handlers are plain callables invoked synchronously in subscription order.
    A failing handler is logged and skipped so it never breaks the publisher
    or the remaining subscribers.
    """

    def __init__(self, logger: Optional[StructuredLogger] = None) -> None:
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._lock = threading.Lock()
        self._logger = logger or StructuredLogger(__name__)

    def subscribe(self, event: EventName, handler: EventHandler) -> None:
        with self._lock:
            self._handlers[_key(event)].append(handler)

    def unsubscribe(self, event: EventName, handler: EventHandler) -> bool:
        """Remove one registration of ``handler``; return whether it was found."""
        with self._lock:
            handlers = self._handlers.get(_key(event))
            if not handlers or handler not in handlers:
                return False
            handlers.remove(handler)
            if not handlers:
                del self._handlers[_key(event)]
            return True

    def handler_count(self, event: EventName) -> int:
        with self._lock:
            return len(self._handlers.get(_key(event), ()))

    def emit(self, event: EventName, payload: AgentEvent) -> int:
        """Deliver ``payload`` to every handler of ``event``; return how many ran cleanly."""
        with self._lock:
            handlers = list(self._handlers.get(_key(event), ()))

        delivered = 0
        for handler in handlers:
            try:
                handler(payload)
            except Exception as exc:  # noqa: BLE001
                self._logger.error(
                    "Event handler raised",
                    {"event": _key(event), "agent_id": payload.agent_id, "error": str(exc)},
                )
            else:
                delivered += 1
        return delivered
