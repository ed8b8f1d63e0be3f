# signals_dispatch/deps.py
from __future__ import annotations

import hmac

from fastapi import Depends, Header, HTTPException, Request, status

from signals_dispatch.bootstrap import DispatchServices


def get_services(request: Request) -> DispatchServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Serviço não inicializado")
    return services


def _check_token(configured: str, incoming: str | None, *, name: str) -> None:
    configured = (configured or "").strip()
    if not configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{name} não configurado",
        )
    if not hmac.compare_digest(configured, (incoming or "").strip()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token inválido")


def require_admin_token(
    x_admin_token: str | None = Header(default=None),
    services: DispatchServices = Depends(get_services),
) -> DispatchServices:
    _check_token(services.admin_token, x_admin_token, name="ADMIN_API_TOKEN")
    return services


def require_order_events_token(
    x_signals_token: str | None = Header(default=None),
    services: DispatchServices = Depends(get_services),
) -> DispatchServices:
    _check_token(services.order_events_token, x_signals_token, name="ORDER_EVENTS_TOKEN")
    return services
