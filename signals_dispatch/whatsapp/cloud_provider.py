from __future__ import annotations

import json
import logging
from typing import Any, Sequence
from urllib.parse import quote

import httpx

from signals_dispatch.whatsapp.base import TemplateSendResult, build_template_payload

logger = logging.getLogger(__name__)

GRAPH_API_BASE_URL = "https://graph.facebook.com"
DEFAULT_ERROR_MESSAGE = "Falha na requisição ao WhatsApp Cloud"
MISSING_CREDENTIALS_ERROR = "Credenciais do WhatsApp Cloud incompletas"
INVALID_PHONE_ERROR = "Telefone inválido"


class CloudTemplateClient:
    """Envia template messages pela WhatsApp Cloud API.

    Uma única tentativa por chamada: o reenvio é decisão do DispatchEngine.
    Nunca levanta exceção; todo desfecho vira um ``TemplateSendResult``
    com o payload enviado e a resposta capturada.
    """

    def __init__(
        self,
        *,
        access_token: str,
        phone_number_id: str,
        api_version: str = "v18.0",
        timeout: float = 20.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._access_token = access_token
        self._phone_number_id = phone_number_id
        self._api_version = api_version
        self._timeout = timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self._access_token and self._phone_number_id)

    @property
    def endpoint(self) -> str:
        return f"{GRAPH_API_BASE_URL}/{self._api_version}/{quote(self._phone_number_id, safe='')}/messages"

    def send_template(
        self,
        phone_e164: str,
        template_name: str,
        language: str,
        variables: Sequence[str],
    ) -> TemplateSendResult:
        if not self.is_configured:
            return TemplateSendResult(success=False, error=MISSING_CREDENTIALS_ERROR)

        # o telefone já chega normalizado; aqui só exigimos que exista
        if not phone_e164:
            return TemplateSendResult(success=False, error=INVALID_PHONE_ERROR)

        payload = build_template_payload(phone_e164, template_name, language, variables)
        headers = {"Authorization": f"Bearer {self._access_token}", "Content-Type": "application/json"}

        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(self.endpoint, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            error = str(exc) or exc.__class__.__name__
            logger.warning("whatsapp template request failed: %s", error)
            return TemplateSendResult(success=False, payload=payload, response={"error": error}, error=error)

        data = _decode_body(response)
        if 200 <= response.status_code < 300:
            return TemplateSendResult(success=True, payload=payload, response=data)

        error_info = data.get("error") if isinstance(data.get("error"), dict) else {}
        error_message = error_info.get("message") or DEFAULT_ERROR_MESSAGE
        error_code = error_info.get("code")
        logger.warning(
            "whatsapp template rejected status=%s code=%s",
            response.status_code,
            error_code,
            extra={"status_code": response.status_code},
        )
        return TemplateSendResult(
            success=False,
            payload=payload,
            response=data,
            error=str(error_message),
            error_code=str(error_code) if error_code is not None else None,
        )


def _decode_body(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}
