from __future__ import annotations

import json
import re
from typing import Any, Mapping

from signals_dispatch.models.dispatch_mapping import DispatchMapping
from signals_dispatch.repositories.base import SessionRepository, utcnow

AVAILABLE_EVENTS: dict[str, str] = {
    "order_status_processing": "Order Processing",
    "order_status_completed": "Order Completed",
    "order_status_on_hold": "Order On Hold",
    "order_status_cancelled": "Order Cancelled",
}

_EVENT_KEY_PATTERN = re.compile(r"[^a-z0-9_\-]")


class DuplicateEventKeyError(ValueError):
    def __init__(self, event_key: str, existing_id: int):
        super().__init__(f"Já existe mapeamento para o evento {event_key} (id={existing_id})")
        self.event_key = event_key
        self.existing_id = existing_id


def sanitize_event_key(value: str | None) -> str:
    return _EVENT_KEY_PATTERN.sub("", (value or "").strip().lower())


def _encode_variables(value: Any) -> str:
    if isinstance(value, str):
        try:
            decoded = json.loads(value or "[]")
        except ValueError:
            return "[]"
        value = decoded
    if not isinstance(value, (list, tuple)):
        return "[]"
    return json.dumps([str(item) for item in value])


class MappingRepository(SessionRepository):
    def find_by_event(self, event_key: str) -> DispatchMapping | None:
        """Mapeamento habilitado para o evento; com duplicatas, vence o mais recente."""
        if not event_key:
            return None
        with self._reading() as db:
            return (
                db.query(DispatchMapping)
                .filter(DispatchMapping.event_key == event_key, DispatchMapping.enabled.is_(True))
                .order_by(DispatchMapping.id.desc())
                .first()
            )

    def get(self, mapping_id: int) -> DispatchMapping | None:
        with self._reading() as db:
            return db.query(DispatchMapping).filter(DispatchMapping.id == mapping_id).first()

    def list_all(self) -> list[DispatchMapping]:
        with self._reading() as db:
            return db.query(DispatchMapping).order_by(DispatchMapping.id.asc()).all()

    def upsert(self, data: Mapping[str, Any], mapping_id: int = 0) -> int:
        now = utcnow()
        values = {
            "event_key": sanitize_event_key(data.get("event_key")),
            "template_name": str(data.get("template_name") or "").strip(),
            "language": str(data.get("language") or "").strip() or "en_US",
            "variables_json": _encode_variables(data.get("variables", [])),
            "enabled": bool(data.get("enabled", True)),
            "updated_at": now,
        }

        with self._session() as db:
            existing = (
                db.query(DispatchMapping.id)
                .filter(DispatchMapping.event_key == values["event_key"], DispatchMapping.id != mapping_id)
                .first()
            )
            if existing is not None:
                raise DuplicateEventKeyError(values["event_key"], int(existing.id))

            if mapping_id > 0:
                updated = (
                    db.query(DispatchMapping)
                    .filter(DispatchMapping.id == mapping_id)
                    .update(values, synchronize_session=False)
                )
                return mapping_id if updated else 0

            mapping = DispatchMapping(**values, created_at=now)
            db.add(mapping)
            db.flush()
            return int(mapping.id)

    def delete(self, mapping_id: int) -> bool:
        with self._session() as db:
            deleted = (
                db.query(DispatchMapping)
                .filter(DispatchMapping.id == mapping_id)
                .delete(synchronize_session=False)
            )
        return bool(deleted)
