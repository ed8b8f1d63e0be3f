from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from signals_dispatch.models.dispatch_mapping import DispatchMapping
from signals_dispatch.orders.source import OrderSource
from signals_dispatch.services.phone import normalize_phone
from signals_dispatch.services.variables import VariableResolver

DEFAULT_LANGUAGE = "en_US"


@dataclass
class TemplatePayload:
    phone_e164: str
    template_name: str
    language: str = DEFAULT_LANGUAGE
    variables: list[str] = field(default_factory=list)

    @property
    def is_sendable(self) -> bool:
        return bool(self.phone_e164)

    def as_dict(self) -> dict[str, Any]:
        return {
            "phone_e164": self.phone_e164,
            "template_name": self.template_name,
            "language": self.language,
            "variables": list(self.variables),
        }


class TemplatePayloadBuilder:
    def __init__(self, order_source: OrderSource, resolver: VariableResolver) -> None:
        self._order_source = order_source
        self._resolver = resolver

    def build(self, order_id: int, mapping: DispatchMapping) -> TemplatePayload:
        order = self._order_source.get_order(order_id)
        if order is None:
            return TemplatePayload(phone_e164="", template_name="")

        phone = normalize_phone(order.billing_phone)
        if not phone:
            return TemplatePayload(phone_e164="", template_name="")

        return TemplatePayload(
            phone_e164=phone,
            template_name=mapping.template_name or "",
            language=mapping.language or DEFAULT_LANGUAGE,
            variables=self._resolver.resolve(order, mapping.resolver_keys),
        )
