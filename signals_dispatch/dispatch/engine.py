from __future__ import annotations

import logging

from signals_dispatch.core.metrics import InMemoryDispatchMetrics
from signals_dispatch.dispatch.consent import ConsentPolicy
from signals_dispatch.dispatch.scheduler import Scheduler
from signals_dispatch.dispatch.statuses import DispatchStatus
from signals_dispatch.repositories.log_repository import LogRepository
from signals_dispatch.repositories.mapping_repository import MappingRepository
from signals_dispatch.services.template_payload import TemplatePayload, TemplatePayloadBuilder
from signals_dispatch.whatsapp.base import TemplateClient, TemplateSendResult, safe_json, sanitize_payload

logger = logging.getLogger(__name__)

SEND_TEMPLATE_JOB = "signals_dispatch.send_template"
QUEUE_NAME = "signals_dispatch"
MAX_RETRY_ATTEMPTS = 2
RETRY_DELAY_SECONDS = 10

EVENT_BY_ORDER_STATUS: dict[str, str] = {
    "processing": "order_status_processing",
    "completed": "order_status_completed",
    "on-hold": "order_status_on_hold",
    "cancelled": "order_status_cancelled",
}


def normalize_order_status(status: str | None) -> str:
    value = (status or "").strip().lower()
    if value.startswith("wc-"):
        value = value[3:]
    return value


def event_key_for_status(status: str | None) -> str:
    return EVENT_BY_ORDER_STATUS.get(normalize_order_status(status), "")


class DispatchEngine:
    """Liga eventos de status de pedido ao envio de template messages.

    Cada tentativa gera sua própria linha em ``dispatch_logs``: criada como
    ``queued`` antes da chamada ao provider e atualizada uma única vez para
    ``sent`` ou ``failed``. Depois disso só o webhook mexe na linha.
    Retries criam uma nova linha, até ``MAX_RETRY_ATTEMPTS`` reenvios.
    """

    def __init__(
        self,
        *,
        log_repo: LogRepository,
        mapping_repo: MappingRepository,
        payload_builder: TemplatePayloadBuilder,
        client: TemplateClient,
        scheduler: Scheduler,
        consent_policy: ConsentPolicy | None = None,
        metrics: InMemoryDispatchMetrics | None = None,
    ) -> None:
        self._log_repo = log_repo
        self._mapping_repo = mapping_repo
        self._payload_builder = payload_builder
        self._client = client
        self._scheduler = scheduler
        self._consent_policy = consent_policy
        self._metrics = metrics or InMemoryDispatchMetrics()

    def handle_order_status_changed(
        self,
        order_id: int,
        old_status: str,
        new_status: str,
        order: object | None = None,
    ) -> bool:
        """Retorna True quando um envio foi agendado."""
        event_key = event_key_for_status(new_status)
        if not event_key:
            return False

        mapping = self._mapping_repo.find_by_event(event_key)
        if mapping is None:
            logger.info(
                "no enabled mapping for event, skipping",
                extra={"order_id": order_id, "event_key": event_key},
            )
            self._metrics.incr("skipped")
            return False

        self.schedule_send(order_id, event_key, 0)
        return True

    def handle_event(self, payload: dict) -> None:
        """Handler do EventBus para ``order.status.changed``."""
        self.handle_order_status_changed(
            int(payload.get("order_id") or 0),
            str(payload.get("old_status") or ""),
            str(payload.get("new_status") or ""),
            payload.get("order"),
        )

    def schedule_send(
        self,
        order_id: int,
        event_key: str,
        attempt: int = 0,
        *,
        delay_seconds: float | None = None,
    ) -> None:
        if delay_seconds is None:
            delay_seconds = 0 if self._scheduler.supports_immediate else RETRY_DELAY_SECONDS
        self._scheduler.enqueue(
            SEND_TEMPLATE_JOB,
            [order_id, event_key, attempt],
            queue=QUEUE_NAME,
            delay_seconds=delay_seconds,
        )
        self._metrics.incr("scheduled")
        logger.info(
            "dispatch scheduled",
            extra={"order_id": order_id, "event_key": event_key, "attempt": attempt},
        )

    def run_send_job(self, order_id: int, event_key: str, attempt: int = 0) -> None:
        """Entrada do scheduler: nunca propaga exceção."""
        try:
            self.handle_send_template_message(order_id, event_key, attempt)
        except Exception:
            logger.exception(
                "dispatch job crashed",
                extra={"order_id": order_id, "event_key": event_key, "attempt": attempt},
            )

    def handle_send_template_message(self, order_id: int, event_key: str, attempt: int = 0) -> int | None:
        """Executa uma tentativa. Retorna o id do log criado, ou None se nada foi enviado."""
        if int(order_id or 0) <= 0 or not event_key:
            return None

        # relê o mapeamento: desabilitar entre o gatilho e a execução vale
        mapping = self._mapping_repo.find_by_event(event_key)
        if mapping is None:
            self._metrics.incr("skipped")
            return None

        payload = self._payload_builder.build(order_id, mapping)
        if not payload.is_sendable:
            logger.info(
                "order has no usable phone, skipping",
                extra={"order_id": order_id, "event_key": event_key},
            )
            self._metrics.incr("skipped")
            return None

        if self._consent_policy is not None and not self._consent_policy.allows(payload.phone_e164):
            logger.info(
                "no messaging consent for phone, skipping",
                extra={"order_id": order_id, "event_key": event_key},
            )
            self._metrics.incr("skipped")
            return None

        log_id = self._create_log_entry(order_id, event_key, attempt, payload)
        result = self._client.send_template(
            payload.phone_e164,
            payload.template_name,
            payload.language,
            payload.variables,
        )
        self._record_result(log_id, result, order_id, event_key, attempt)
        return log_id

    def _create_log_entry(self, order_id: int, event_key: str, attempt: int, payload: TemplatePayload) -> int:
        return self._log_repo.create(
            {
                "order_id": order_id,
                "event_key": event_key,
                "attempt": attempt,
                "phone_e164": payload.phone_e164,
                "template_name": payload.template_name,
                "payload_json": safe_json(payload.as_dict()),
                "response_json": "{}",
                "status": DispatchStatus.QUEUED,
            }
        )

    def _record_result(
        self,
        log_id: int,
        result: TemplateSendResult,
        order_id: int,
        event_key: str,
        attempt: int,
    ) -> None:
        update = {"response_json": safe_json(sanitize_payload(result.response))}
        # falhas antes da rede não têm payload do provider; mantém o da fila
        if result.payload:
            update["payload_json"] = safe_json(sanitize_payload(result.payload))
        log_extra = {"order_id": order_id, "event_key": event_key, "attempt": attempt, "log_id": log_id}

        if result.success:
            update["status"] = DispatchStatus.SENT
            update["provider_message_id"] = result.provider_message_id
            self._log_repo.update(log_id, update)
            self._metrics.incr("sent")
            logger.info("template message sent", extra=log_extra)
            return

        update["status"] = DispatchStatus.FAILED
        update["error_message"] = result.error or "Unknown error"
        update["error_code"] = result.error_code
        self._log_repo.update(log_id, update)
        self._metrics.incr("failed")

        if attempt < MAX_RETRY_ATTEMPTS:
            logger.warning("template message failed, retrying: %s", result.error, extra=log_extra)
            self._metrics.incr("retried")
            self.schedule_send(order_id, event_key, attempt + 1, delay_seconds=RETRY_DELAY_SECONDS)
            return

        logger.error("template message failed, giving up: %s", result.error, extra=log_extra)
        self._metrics.incr("gave_up")

