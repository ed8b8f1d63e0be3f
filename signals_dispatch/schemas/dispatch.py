from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class OrderStatusChanged(BaseModel):
    order_id: int = Field(..., gt=0)
    old_status: str = ""
    new_status: str = Field(..., min_length=1)


class OrderStatusAccepted(BaseModel):
    accepted: bool
    event_key: str = ""


class MappingWrite(BaseModel):
    event_key: str = Field(..., min_length=1)
    template_name: str = Field(..., min_length=1)
    language: str = "en_US"
    variables: list[str] = Field(default_factory=list)
    enabled: bool = True


class MappingRead(BaseModel):
    id: int
    event_key: str
    template_name: str
    language: str
    variables: list[str]
    enabled: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DispatchLogRead(BaseModel):
    id: int
    order_id: Optional[int] = None
    event_key: Optional[str] = None
    attempt: int = 0
    phone_e164: str
    template_name: str
    status: str
    provider_message_id: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    payload: dict = Field(default_factory=dict)
    response: dict = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DispatchLogPage(BaseModel):
    items: list[DispatchLogRead]
    total: int
    page: int
    per_page: int


class ConsentWrite(BaseModel):
    phone: str = Field(..., min_length=7)
    consent: bool
    source: str = "checkout"
    user_id: Optional[int] = None
    order_id: Optional[int] = None


class ConsentRead(BaseModel):
    phone_e164: str
    consent: bool
    source: Optional[str] = None
    consent_at: Optional[datetime] = None


class ManualSendRequest(BaseModel):
    phone: str = Field(..., min_length=7)
    template_name: str = Field(..., min_length=1)
    language: str = "en_US"
    variables: list[str] = Field(default_factory=list)


class ManualSendResult(BaseModel):
    success: bool
    phone_e164: str
    provider_message_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    response: dict = Field(default_factory=dict)


class DispatchHealth(BaseModel):
    status: str
    whatsapp_configured: bool
    verify_token_configured: bool
    order_events_token_configured: bool
    scheduler_running: bool
    status_counts_24h: dict[str, int]
