from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence


@dataclass
class TemplateSendResult:
    success: bool
    payload: dict[str, Any] = field(default_factory=dict)
    response: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    error_code: str | None = None

    @property
    def provider_message_id(self) -> str | None:
        messages = self.response.get("messages") or []
        if not messages or not isinstance(messages[0], dict):
            return None
        message_id = messages[0].get("id")
        return str(message_id) if message_id else None


class TemplateClient(Protocol):
    def send_template(
        self,
        phone_e164: str,
        template_name: str,
        language: str,
        variables: Sequence[str],
    ) -> TemplateSendResult:
        ...


def build_template_payload(
    phone_e164: str,
    template_name: str,
    language: str,
    variables: Sequence[str],
) -> dict[str, Any]:
    return {
        "messaging_product": "whatsapp",
        "to": phone_e164,
        "type": "template",
        "template": {
            "name": template_name,
            "language": {"code": language},
            "components": [
                {
                    "type": "body",
                    "parameters": [{"type": "text", "text": str(value)} for value in variables],
                }
            ],
        },
    }


SENSITIVE_KEYS = {"access_token", "verify_token", "webhook_secret", "authorization", "token"}


def _mask_value(value: Any) -> Any:
    if value is None:
        return None
    text = str(value)
    if len(text) <= 4:
        return "****"
    return f"****{text[-4:]}"


def sanitize_payload(payload: dict[str, Any]) -> dict[str, Any]:
    def _sanitize(value: Any) -> Any:
        if isinstance(value, dict):
            return {key: _sanitize_value(key, inner) for key, inner in value.items()}
        if isinstance(value, list):
            return [_sanitize(item) for item in value]
        return value

    def _sanitize_value(key: str, value: Any) -> Any:
        if str(key).lower() in SENSITIVE_KEYS:
            return _mask_value(value)
        return _sanitize(value)

    return _sanitize(payload)


def safe_json(payload: dict[str, Any]) -> str:
    try:
        return json.dumps(payload, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return "{}"
