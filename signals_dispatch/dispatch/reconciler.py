from __future__ import annotations

import logging
from typing import Any, Iterator

from signals_dispatch.core.metrics import InMemoryDispatchMetrics
from signals_dispatch.dispatch.statuses import DispatchStatus, to_dispatch_status
from signals_dispatch.repositories.log_repository import LogRepository

logger = logging.getLogger(__name__)


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def iter_status_updates(payload: Any) -> Iterator[tuple[str, DispatchStatus]]:
    """Percorre ``entry[].changes[].value.statuses[]`` ignorando itens malformados."""
    for entry in _as_list(_as_dict(payload).get("entry")):
        for change in _as_list(_as_dict(entry).get("changes")):
            value = _as_dict(_as_dict(change).get("value"))
            for status in _as_list(value.get("statuses")):
                status = _as_dict(status)
                message_id = status.get("id")
                token = status.get("status")
                if not message_id or not token:
                    continue
                yield str(message_id), to_dispatch_status(str(token))


class WebhookReconciler:
    def __init__(self, log_repo: LogRepository, metrics: InMemoryDispatchMetrics | None = None) -> None:
        self._log_repo = log_repo
        self._metrics = metrics or InMemoryDispatchMetrics()

    def process(self, payload: Any) -> int:
        """Aplica as atualizações de status do callback; retorna quantas linhas mudaram."""
        updated = 0
        for provider_message_id, status in iter_status_updates(payload):
            try:
                changed = self._log_repo.update_by_provider_message_id(
                    provider_message_id,
                    {"status": status},
                )
            except Exception:
                logger.exception(
                    "webhook status update failed",
                    extra={"provider_message_id": provider_message_id, "status": status.value},
                )
                continue

            if changed:
                updated += 1
                self._metrics.incr("reconciled")
                logger.info(
                    "dispatch status reconciled",
                    extra={"provider_message_id": provider_message_id, "status": status.value},
                )
            else:
                logger.debug("webhook status for unknown message %s", provider_message_id)
        return updated
