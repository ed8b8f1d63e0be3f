import json

from sqlalchemy import Column, DateTime, Index, Integer, String, Text, func

from signals_dispatch.core.database import Base


class DispatchLog(Base):
    __tablename__ = "dispatch_logs"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, nullable=True, index=True)
    event_key = Column(String(191), nullable=True)
    attempt = Column(Integer, nullable=False, default=0)
    phone_e164 = Column(String(32), nullable=False)
    template_name = Column(String(191), nullable=False)
    payload_json = Column(Text, nullable=False, default="{}")
    response_json = Column(Text, nullable=False, default="{}")
    status = Column(String(20), nullable=False, index=True)
    provider_message_id = Column(String(191), nullable=True, unique=True)
    error_code = Column(String(191), nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def payload(self) -> dict:
        return _loads(self.payload_json)

    @property
    def response(self) -> dict:
        return _loads(self.response_json)


def _loads(raw: str | None) -> dict:
    try:
        value = json.loads(raw or "{}")
    except (TypeError, ValueError):
        return {}
    return value if isinstance(value, dict) else {}


Index("ix_dispatch_logs_created_at", DispatchLog.created_at)
