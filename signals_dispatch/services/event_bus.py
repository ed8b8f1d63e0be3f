from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List

ORDER_STATUS_CHANGED = "order.status.changed"

Handler = Callable[[dict[str, Any]], None]


class EventBus:
    """Barramento síncrono em processo.

    Falha de um handler é logada e não impede os demais nem sobe para quem emitiu.
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)
        self._logger = logging.getLogger(__name__)

    def subscribe(self, event_name: str, handler: Handler) -> None:
        self._handlers[event_name].append(handler)

    def emit(self, event_name: str, payload: dict[str, Any]) -> int:
        handlers = list(self._handlers.get(event_name, []))
        if not handlers:
            self._logger.debug("EventBus: no handlers for %s", event_name)
            return 0
        delivered = 0
        for handler in handlers:
            try:
                handler(payload)
                delivered += 1
            except Exception:
                self._logger.exception("EventBus handler failed for %s", event_name)
        return delivered
