from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from signals_dispatch.core.database import Base


class ConsentRecord(Base):
    __tablename__ = "consent_records"

    id = Column(Integer, primary_key=True)
    phone_e164 = Column(String(32), nullable=False, index=True)
    consent = Column(Boolean, nullable=False, default=False)
    source = Column(String(20), nullable=False, default="checkout")
    user_id = Column(Integer, nullable=True)
    order_id = Column(Integer, nullable=True)
    consent_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
