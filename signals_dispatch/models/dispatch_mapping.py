import json

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, func

from signals_dispatch.core.database import Base


class DispatchMapping(Base):
    __tablename__ = "dispatch_mappings"

    id = Column(Integer, primary_key=True)
    event_key = Column(String(191), nullable=False, index=True)
    template_name = Column(String(191), nullable=False)
    language = Column(String(20), nullable=False, default="en_US")
    variables_json = Column(Text, nullable=False, default="[]")
    enabled = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def resolver_keys(self) -> list[str]:
        try:
            decoded = json.loads(self.variables_json or "[]")
        except (TypeError, ValueError):
            return []
        if not isinstance(decoded, list):
            return []
        return [str(key) for key in decoded]
