from __future__ import annotations

from typing import Callable, Iterable

from signals_dispatch.orders.source import OrderSnapshot

# Ordem importa: o índice na lista do mapeamento vira o slot {{n}} do template.
AVAILABLE_VARIABLES: dict[str, str] = {
    "order_id": "Order ID",
    "order_number": "Order Number",
    "order_total": "Order Total",
    "order_currency": "Currency",
    "billing_first_name": "Billing First Name",
    "billing_last_name": "Billing Last Name",
    "billing_phone": "Billing Phone",
    "billing_email": "Billing Email",
    "shipping_first_name": "Shipping First Name",
    "shipping_last_name": "Shipping Last Name",
    "status": "Order Status",
    "site_name": "Site Name",
}

_ORDER_RESOLVERS: dict[str, Callable[[OrderSnapshot], str]] = {
    "order_id": lambda order: str(order.id),
    "order_number": lambda order: order.number,
    "order_total": lambda order: order.total,
    "order_currency": lambda order: order.currency,
    "billing_first_name": lambda order: order.billing_first_name,
    "billing_last_name": lambda order: order.billing_last_name,
    "billing_phone": lambda order: order.billing_phone,
    "billing_email": lambda order: order.billing_email,
    "shipping_first_name": lambda order: order.shipping_first_name,
    "shipping_last_name": lambda order: order.shipping_last_name,
    "status": lambda order: order.status,
}


def unknown_variables(keys: Iterable[str]) -> list[str]:
    return [key for key in keys if key not in AVAILABLE_VARIABLES]


class VariableResolver:
    def __init__(self, *, site_name: str = "") -> None:
        self.site_name = site_name

    def resolve(self, order: OrderSnapshot, keys: Iterable[str]) -> list[str]:
        """Um valor por chave, na mesma ordem; chave desconhecida vira ``""``."""
        return [self._resolve_one(order, str(key)) for key in keys]

    def _resolve_one(self, order: OrderSnapshot, key: str) -> str:
        if key == "site_name":
            return self.site_name
        resolver = _ORDER_RESOLVERS.get(key)
        if resolver is None:
            return ""
        value = resolver(order)
        return "" if value is None else str(value)
