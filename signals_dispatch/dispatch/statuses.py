from __future__ import annotations

from enum import Enum


class DispatchStatus(str, Enum):
    QUEUED = "queued"
    SENT = "sent"
    FAILED = "failed"
    DELIVERED = "delivered"
    READ = "read"


class ProviderStatus(str, Enum):
    """Status reportados pelo WhatsApp Cloud nos webhooks de entrega."""

    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"

    @classmethod
    def parse(cls, token: str | None) -> ProviderStatus | None:
        # comparação exata: "READ" ou " read" não são status conhecidos
        try:
            return cls(token)
        except ValueError:
            return None


_PROVIDER_TO_DISPATCH: dict[ProviderStatus, DispatchStatus] = {
    ProviderStatus.SENT: DispatchStatus.SENT,
    ProviderStatus.DELIVERED: DispatchStatus.DELIVERED,
    ProviderStatus.READ: DispatchStatus.READ,
    ProviderStatus.FAILED: DispatchStatus.FAILED,
}


def to_dispatch_status(token: str | ProviderStatus | None) -> DispatchStatus:
    """Unrecognized provider tokens fall back to ``sent``."""
    provider_status = token if isinstance(token, ProviderStatus) else ProviderStatus.parse(token)
    if provider_status is None:
        return DispatchStatus.SENT
    return _PROVIDER_TO_DISPATCH[provider_status]
