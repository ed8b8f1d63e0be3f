from __future__ import annotations

import logging

from signals_dispatch.whatsapp.base import TemplateClient
from signals_dispatch.whatsapp.cloud_provider import CloudTemplateClient
from signals_dispatch.whatsapp.mock_provider import MockTemplateClient

logger = logging.getLogger(__name__)

PROVIDERS = {"cloud", "mock"}


def build_template_client(
    *,
    provider: str,
    access_token: str,
    phone_number_id: str,
    api_version: str = "v18.0",
    timeout: float = 20.0,
) -> TemplateClient:
    provider = (provider or "cloud").strip().lower()
    if provider not in PROVIDERS:
        raise ValueError(f"Provider de WhatsApp inválido: {provider}")

    if provider == "mock":
        logger.warning("WhatsApp provider=mock: nenhuma mensagem real será enviada")
        return MockTemplateClient()

    client = CloudTemplateClient(
        access_token=access_token,
        phone_number_id=phone_number_id,
        api_version=api_version,
        timeout=timeout,
    )
    if not client.is_configured:
        logger.warning("WhatsApp Cloud sem credenciais: envios vão falhar até configurar o .env")
    return client
