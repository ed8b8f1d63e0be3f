from __future__ import annotations

from typing import Any

from signals_dispatch.dispatch.engine import normalize_order_status
from signals_dispatch.services.event_bus import ORDER_STATUS_CHANGED, EventBus


def build_status_payload(order_id: int, old_status: str | None, new_status: str | None, order: Any = None) -> dict:
    return {
        "order_id": int(order_id),
        "old_status": normalize_order_status(old_status),
        "new_status": normalize_order_status(new_status),
        "order": order,
    }


def emit_order_status_changed(
    bus: EventBus,
    order_id: int,
    old_status: str | None,
    new_status: str | None,
    order: Any = None,
) -> bool:
    payload = build_status_payload(order_id, old_status, new_status, order)
    if payload["old_status"] and payload["old_status"] == payload["new_status"]:
        return False
    bus.emit(ORDER_STATUS_CHANGED, payload)
    return True
