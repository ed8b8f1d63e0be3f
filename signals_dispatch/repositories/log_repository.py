from __future__ import annotations

from datetime import timedelta
from typing import Any, Mapping

from sqlalchemy import String, cast, func, or_

from signals_dispatch.dispatch.statuses import DispatchStatus
from signals_dispatch.models.dispatch_log import DispatchLog
from signals_dispatch.repositories.base import SessionRepository, utcnow

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 200

_MUTABLE_FIELDS = {
    "order_id",
    "event_key",
    "attempt",
    "phone_e164",
    "template_name",
    "payload_json",
    "response_json",
    "status",
    "provider_message_id",
    "error_code",
    "error_message",
}


def _clean_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(fields) - _MUTABLE_FIELDS
    if unknown:
        raise ValueError(f"Campos inválidos para dispatch_logs: {sorted(unknown)}")
    cleaned = dict(fields)
    status = cleaned.get("status")
    if isinstance(status, DispatchStatus):
        cleaned["status"] = status.value
    return cleaned


class LogRepository(SessionRepository):
    def create(self, fields: Mapping[str, Any]) -> int:
        values = _clean_fields(fields)
        values.setdefault("status", DispatchStatus.QUEUED.value)
        values.setdefault("payload_json", "{}")
        values.setdefault("response_json", "{}")
        now = utcnow()
        log_entry = DispatchLog(**values, created_at=now, updated_at=now)
        with self._session() as db:
            db.add(log_entry)
            db.flush()
            return int(log_entry.id)

    def update(self, log_id: int, fields: Mapping[str, Any]) -> bool:
        values = _clean_fields(fields)
        values["updated_at"] = utcnow()
        with self._session() as db:
            updated = (
                db.query(DispatchLog)
                .filter(DispatchLog.id == log_id)
                .update(values, synchronize_session=False)
            )
        return bool(updated)

    def get(self, log_id: int) -> DispatchLog | None:
        with self._reading() as db:
            return db.query(DispatchLog).filter(DispatchLog.id == log_id).first()

    def find_by_provider_message_id(self, provider_message_id: str) -> DispatchLog | None:
        if not provider_message_id:
            return None
        with self._reading() as db:
            return (
                db.query(DispatchLog)
                .filter(DispatchLog.provider_message_id == provider_message_id)
                .first()
            )

    def update_by_provider_message_id(self, provider_message_id: str, fields: Mapping[str, Any]) -> bool:
        # Um único UPDATE condicional: webhooks concorrentes não fazem read-modify-write.
        if not provider_message_id:
            return False
        values = _clean_fields(fields)
        values["updated_at"] = utcnow()
        with self._session() as db:
            updated = (
                db.query(DispatchLog)
                .filter(DispatchLog.provider_message_id == provider_message_id)
                .update(values, synchronize_session=False)
            )
        return bool(updated)

    def list_paginated(
        self,
        *,
        status: str | None = None,
        search: str | None = None,
        page: int = 1,
        per_page: int = DEFAULT_PER_PAGE,
    ) -> tuple[list[DispatchLog], int]:
        page = max(1, int(page or 1))
        per_page = min(max(1, int(per_page or DEFAULT_PER_PAGE)), MAX_PER_PAGE)

        with self._reading() as db:
            query = db.query(DispatchLog)
            if status:
                query = query.filter(DispatchLog.status == status)
            term = (search or "").strip()
            if term:
                like = f"%{_escape_like(term)}%"
                query = query.filter(
                    or_(
                        DispatchLog.template_name.like(like, escape="\\"),
                        DispatchLog.phone_e164.like(like, escape="\\"),
                        cast(DispatchLog.order_id, String).like(like, escape="\\"),
                    )
                )

            total = query.count()
            rows = (
                query.order_by(DispatchLog.id.desc())
                .offset((page - 1) * per_page)
                .limit(per_page)
                .all()
            )
        return rows, int(total)

    def status_counts(self, window: timedelta = timedelta(hours=24)) -> dict[str, int]:
        since = utcnow() - window
        with self._reading() as db:
            rows = (
                db.query(DispatchLog.status, func.count(DispatchLog.id))
                .filter(DispatchLog.created_at >= since)
                .group_by(DispatchLog.status)
                .all()
            )
        return {status: int(count) for status, count in rows}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
