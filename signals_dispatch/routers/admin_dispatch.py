from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from signals_dispatch.bootstrap import DispatchServices
from signals_dispatch.core.metrics import request_metrics
from signals_dispatch.deps import require_admin_token
from signals_dispatch.dispatch.statuses import DispatchStatus
from signals_dispatch.models.dispatch_log import DispatchLog
from signals_dispatch.models.dispatch_mapping import DispatchMapping
from signals_dispatch.repositories.log_repository import DEFAULT_PER_PAGE, MAX_PER_PAGE
from signals_dispatch.repositories.mapping_repository import (
    AVAILABLE_EVENTS,
    DuplicateEventKeyError,
    sanitize_event_key,
)
from signals_dispatch.schemas.dispatch import (
    ConsentRead,
    ConsentWrite,
    DispatchHealth,
    DispatchLogPage,
    DispatchLogRead,
    ManualSendRequest,
    ManualSendResult,
    MappingRead,
    MappingWrite,
)
from signals_dispatch.services.phone import normalize_phone
from signals_dispatch.services.variables import AVAILABLE_VARIABLES, unknown_variables
from signals_dispatch.whatsapp.base import sanitize_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/dispatch", tags=["admin-dispatch"])


def _serialize_mapping(mapping: DispatchMapping) -> dict:
    return {
        "id": mapping.id,
        "event_key": mapping.event_key,
        "template_name": mapping.template_name,
        "language": mapping.language,
        "variables": mapping.resolver_keys,
        "enabled": bool(mapping.enabled),
        "created_at": mapping.created_at,
        "updated_at": mapping.updated_at,
    }


def _serialize_log(log_entry: DispatchLog) -> dict:
    return {
        "id": log_entry.id,
        "order_id": log_entry.order_id,
        "event_key": log_entry.event_key,
        "attempt": log_entry.attempt or 0,
        "phone_e164": log_entry.phone_e164,
        "template_name": log_entry.template_name,
        "status": log_entry.status,
        "provider_message_id": log_entry.provider_message_id,
        "error_code": log_entry.error_code,
        "error_message": log_entry.error_message,
        "payload": log_entry.payload,
        "response": log_entry.response,
        "created_at": log_entry.created_at,
        "updated_at": log_entry.updated_at,
    }


def _validate_mapping(body: MappingWrite) -> None:
    if not sanitize_event_key(body.event_key):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="event_key inválido")
    unknown = unknown_variables(body.variables)
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Variáveis desconhecidas: {', '.join(unknown)}",
        )


@router.get("/events")
def list_events(_: DispatchServices = Depends(require_admin_token)):
    return [{"key": key, "label": label} for key, label in AVAILABLE_EVENTS.items()]


@router.get("/variables")
def list_variables(_: DispatchServices = Depends(require_admin_token)):
    return [{"key": key, "label": label} for key, label in AVAILABLE_VARIABLES.items()]


@router.get("/mappings", response_model=list[MappingRead])
def list_mappings(services: DispatchServices = Depends(require_admin_token)):
    return [_serialize_mapping(mapping) for mapping in services.mapping_repo.list_all()]


@router.get("/mappings/{mapping_id}", response_model=MappingRead)
def get_mapping(mapping_id: int, services: DispatchServices = Depends(require_admin_token)):
    mapping = services.mapping_repo.get(mapping_id)
    if mapping is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Mapeamento não encontrado")
    return _serialize_mapping(mapping)


@router.post("/mappings", response_model=MappingRead, status_code=status.HTTP_201_CREATED)
def create_mapping(body: MappingWrite, services: DispatchServices = Depends(require_admin_token)):
    _validate_mapping(body)
    try:
        mapping_id = services.mapping_repo.upsert(body.model_dump())
    except DuplicateEventKeyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return _serialize_mapping(services.mapping_repo.get(mapping_id))


@router.put("/mappings/{mapping_id}", response_model=MappingRead)
def update_mapping(
    mapping_id: int,
    body: MappingWrite,
    services: DispatchServices = Depends(require_admin_token),
):
    _validate_mapping(body)
    if services.mapping_repo.get(mapping_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Mapeamento não encontrado")
    try:
        services.mapping_repo.upsert(body.model_dump(), mapping_id=mapping_id)
    except DuplicateEventKeyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return _serialize_mapping(services.mapping_repo.get(mapping_id))


@router.delete("/mappings/{mapping_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_mapping(mapping_id: int, services: DispatchServices = Depends(require_admin_token)):
    if not services.mapping_repo.delete(mapping_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Mapeamento não encontrado")


@router.get("/logs", response_model=DispatchLogPage)
def list_logs(
    status_filter: Optional[DispatchStatus] = Query(default=None, alias="status"),
    search: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=DEFAULT_PER_PAGE, ge=1, le=MAX_PER_PAGE),
    services: DispatchServices = Depends(require_admin_token),
):
    rows, total = services.log_repo.list_paginated(
        status=status_filter.value if status_filter else None,
        search=search,
        page=page,
        per_page=per_page,
    )
    return {
        "items": [_serialize_log(row) for row in rows],
        "total": total,
        "page": page,
        "per_page": per_page,
    }


def _status_counts(services: DispatchServices, hours: int) -> dict[str, int]:
    counts = {item.value: 0 for item in DispatchStatus}
    counts.update(services.log_repo.status_counts(timedelta(hours=hours)))
    return counts


@router.get("/logs/status-counts")
def log_status_counts(
    hours: int = Query(default=24, ge=1, le=24 * 30),
    services: DispatchServices = Depends(require_admin_token),
):
    return {"hours": hours, "counts": _status_counts(services, hours)}


@router.get("/logs/{log_id}", response_model=DispatchLogRead)
def get_log(log_id: int, services: DispatchServices = Depends(require_admin_token)):
    log_entry = services.log_repo.get(log_id)
    if log_entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Log não encontrado")
    return _serialize_log(log_entry)


@router.get("/metrics")
def dispatch_metrics(services: DispatchServices = Depends(require_admin_token)):
    return {
        "dispatch": services.metrics.snapshot(),
        "requests": request_metrics.snapshot(),
    }


@router.post("/consent", response_model=ConsentRead, status_code=status.HTTP_201_CREATED)
def record_consent(body: ConsentWrite, services: DispatchServices = Depends(require_admin_token)):
    phone = normalize_phone(body.phone)
    if not phone:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Telefone inválido")
    services.consent_repo.record_consent(
        phone,
        body.consent,
        source=body.source,
        user_id=body.user_id,
        order_id=body.order_id,
    )
    record = services.consent_repo.find_latest(phone)
    return {
        "phone_e164": record.phone_e164,
        "consent": bool(record.consent),
        "source": record.source,
        "consent_at": record.consent_at,
    }


@router.get("/consent/statistics")
def consent_statistics(services: DispatchServices = Depends(require_admin_token)):
    return services.consent_repo.statistics()


@router.get("/consent/{phone}", response_model=ConsentRead)
def get_consent(phone: str, services: DispatchServices = Depends(require_admin_token)):
    phone_e164 = normalize_phone(phone)
    if not phone_e164:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Telefone inválido")
    record = services.consent_repo.find_latest(phone_e164)
    if record is None:
        return {"phone_e164": phone_e164, "consent": False, "source": None, "consent_at": None}
    return {
        "phone_e164": record.phone_e164,
        "consent": bool(record.consent),
        "source": record.source,
        "consent_at": record.consent_at,
    }


@router.post("/test-send", response_model=ManualSendResult)
def send_test_template(body: ManualSendRequest, services: DispatchServices = Depends(require_admin_token)):
    """Envio avulso de template, fora do pipeline: não grava log nem agenda retry."""
    phone = normalize_phone(body.phone)
    if not phone:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Telefone inválido")

    result = services.client.send_template(phone, body.template_name.strip(), body.language, body.variables)
    logger.info(
        "admin test send template=%s error_code=%s",
        body.template_name,
        result.error_code,
        extra={"status": "sent" if result.success else "failed", "provider_message_id": result.provider_message_id},
    )
    return {
        "success": result.success,
        "phone_e164": phone,
        "provider_message_id": result.provider_message_id,
        "error": result.error,
        "error_code": result.error_code,
        "response": sanitize_payload(result.response),
    }


@router.get("/health", response_model=DispatchHealth)
def dispatch_health(services: DispatchServices = Depends(require_admin_token)):
    checks = {
        "whatsapp_configured": bool(getattr(services.client, "is_configured", True)),
        "verify_token_configured": bool(services.verify_token),
        "order_events_token_configured": bool(services.order_events_token),
        "scheduler_running": bool(getattr(services.scheduler, "running", True)),
    }
    return {
        "status": "healthy" if all(checks.values()) else "degraded",
        **checks,
        "status_counts_24h": _status_counts(services, 24),
    }
