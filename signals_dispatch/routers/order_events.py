import logging

from fastapi import APIRouter, Depends, status

from signals_dispatch.bootstrap import DispatchServices
from signals_dispatch.deps import require_order_events_token
from signals_dispatch.dispatch.engine import event_key_for_status
from signals_dispatch.schemas.dispatch import OrderStatusAccepted, OrderStatusChanged
from signals_dispatch.services.order_events import emit_order_status_changed

router = APIRouter(prefix="/api/orders", tags=["order-events"])
logger = logging.getLogger(__name__)


@router.post(
    "/status-changed",
    response_model=OrderStatusAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
def order_status_changed(
    body: OrderStatusChanged,
    services: DispatchServices = Depends(require_order_events_token),
):
    accepted = emit_order_status_changed(
        services.event_bus,
        body.order_id,
        body.old_status,
        body.new_status,
    )
    logger.info(
        "order status event received",
        extra={"order_id": body.order_id, "status": body.new_status},
    )
    return OrderStatusAccepted(
        accepted=accepted,
        event_key=event_key_for_status(body.new_status) if accepted else "",
    )
