import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse

from signals_dispatch.bootstrap import DispatchServices
from signals_dispatch.deps import get_services

router = APIRouter()
logger = logging.getLogger(__name__)


def _query_param(request: Request, name: str) -> str | None:
    # Alguns proxies reescrevem "hub.mode" como "hub_mode"
    qp = request.query_params
    value = qp.get(f"hub.{name}")
    if value is None:
        value = qp.get(f"hub_{name}")
    return value


@router.get("/webhook/whatsapp")
async def verify_whatsapp_webhook(request: Request, services: DispatchServices = Depends(get_services)):
    mode = _query_param(request, "mode")
    token = _query_param(request, "verify_token")
    challenge = _query_param(request, "challenge")

    verify_token = (services.verify_token or "").strip()
    if mode == "subscribe" and verify_token and token == verify_token:
        return PlainTextResponse(challenge or "")

    raise HTTPException(status_code=403, detail="Verify token inválido")


@router.post("/webhook/whatsapp")
async def whatsapp_webhook(request: Request, services: DispatchServices = Depends(get_services)):
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("webhook body is not valid JSON")
        return PlainTextResponse("OK")

    try:
        updated = services.reconciler.process(payload)
    except Exception:
        logger.exception("webhook processing failed")
        return PlainTextResponse("OK")

    if updated:
        logger.info("webhook processed, %s status updates", updated)
    return PlainTextResponse("OK")
