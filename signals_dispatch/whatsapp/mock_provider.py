from __future__ import annotations

import uuid
from typing import Sequence

from signals_dispatch.whatsapp.base import TemplateSendResult, build_template_payload


class MockTemplateClient:
    """Provider de desenvolvimento: aceita tudo e devolve um id ``mock-...``."""

    def send_template(
        self,
        phone_e164: str,
        template_name: str,
        language: str,
        variables: Sequence[str],
    ) -> TemplateSendResult:
        payload = build_template_payload(phone_e164, template_name, language, variables)
        return TemplateSendResult(
            success=True,
            payload=payload,
            response={
                "messaging_product": "whatsapp",
                "contacts": [{"input": phone_e164, "wa_id": phone_e164.lstrip("+")}],
                "messages": [{"id": f"mock-{uuid.uuid4().hex[:10]}"}],
            },
        )
