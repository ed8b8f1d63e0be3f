from __future__ import annotations

from sqlalchemy import case, func

from signals_dispatch.models.consent_record import ConsentRecord
from signals_dispatch.repositories.base import SessionRepository, utcnow


class ConsentRepository(SessionRepository):
    """Livro de opt-in, somente inserção.

    O consentimento vigente de um telefone é o do registro mais recente.
    """

    def record_consent(
        self,
        phone_e164: str,
        consent: bool,
        source: str = "checkout",
        user_id: int | None = None,
        order_id: int | None = None,
    ) -> int:
        record = ConsentRecord(
            phone_e164=phone_e164,
            consent=bool(consent),
            source=(source or "checkout")[:20],
            user_id=user_id,
            order_id=order_id,
            consent_at=utcnow(),
        )
        with self._session() as db:
            db.add(record)
            db.flush()
            return int(record.id)

    def find_latest(self, phone_e164: str) -> ConsentRecord | None:
        if not phone_e164:
            return None
        with self._reading() as db:
            return (
                db.query(ConsentRecord)
                .filter(ConsentRecord.phone_e164 == phone_e164)
                .order_by(ConsentRecord.id.desc())
                .first()
            )

    def has_consent(self, phone_e164: str) -> bool:
        record = self.find_latest(phone_e164)
        if record is None:
            return False
        return bool(record.consent)

    def statistics(self) -> dict[str, int]:
        with self._reading() as db:
            total, opted_in, opted_out = db.query(
                func.count(ConsentRecord.id),
                func.sum(case((ConsentRecord.consent.is_(True), 1), else_=0)),
                func.sum(case((ConsentRecord.consent.is_(False), 1), else_=0)),
            ).one()
        return {
            "total": int(total or 0),
            "opted_in": int(opted_in or 0),
            "opted_out": int(opted_out or 0),
        }
