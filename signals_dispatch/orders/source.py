from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderSnapshot:
    """Visão somente leitura de um pedido da loja."""

    id: int
    number: str = ""
    total: str = ""
    currency: str = ""
    status: str = ""
    billing_first_name: str = ""
    billing_last_name: str = ""
    billing_phone: str = ""
    billing_email: str = ""
    shipping_first_name: str = ""
    shipping_last_name: str = ""

    @classmethod
    def from_woocommerce(cls, data: Mapping[str, Any]) -> OrderSnapshot:
        billing = data.get("billing") or {}
        shipping = data.get("shipping") or {}
        order_id = int(data.get("id") or 0)
        return cls(
            id=order_id,
            number=str(data.get("number") or order_id),
            total=str(data.get("total") or ""),
            currency=str(data.get("currency") or ""),
            status=str(data.get("status") or ""),
            billing_first_name=str(billing.get("first_name") or ""),
            billing_last_name=str(billing.get("last_name") or ""),
            billing_phone=str(billing.get("phone") or ""),
            billing_email=str(billing.get("email") or ""),
            shipping_first_name=str(shipping.get("first_name") or ""),
            shipping_last_name=str(shipping.get("last_name") or ""),
        )


class OrderSource(Protocol):
    def get_order(self, order_id: int) -> OrderSnapshot | None:
        ...


class InMemoryOrderSource:
    def __init__(self, orders: Mapping[int, OrderSnapshot] | None = None) -> None:
        self._orders: dict[int, OrderSnapshot] = dict(orders or {})

    def add(self, order: OrderSnapshot) -> None:
        self._orders[order.id] = order

    def get_order(self, order_id: int) -> OrderSnapshot | None:
        return self._orders.get(order_id)


class WooCommerceOrderSource:
    """Lê pedidos pela REST API do WooCommerce (``/wp-json/wc/v3``)."""

    def __init__(
        self,
        *,
        store_url: str,
        consumer_key: str,
        consumer_secret: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.store_url = store_url.rstrip("/")
        self._auth = (consumer_key, consumer_secret)
        self._timeout = timeout
        self._transport = transport

    def get_order(self, order_id: int) -> OrderSnapshot | None:
        if not self.store_url or order_id <= 0:
            return None

        url = f"{self.store_url}/wp-json/wc/v3/orders/{order_id}"
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.get(url, auth=self._auth)
        except httpx.HTTPError as exc:
            logger.warning("order source request failed: %s", exc, extra={"order_id": order_id})
            return None

        if response.status_code == 404:
            return None
        if not 200 <= response.status_code < 300:
            logger.warning(
                "order source returned %s",
                response.status_code,
                extra={"order_id": order_id},
            )
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning("order source returned invalid JSON", extra={"order_id": order_id})
            return None
        if not isinstance(data, dict):
            return None
        return OrderSnapshot.from_woocommerce(data)
