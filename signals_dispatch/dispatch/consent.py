from __future__ import annotations

from typing import Protocol

from signals_dispatch.repositories.consent_repository import ConsentRepository


class ConsentPolicy(Protocol):
    def allows(self, phone_e164: str) -> bool:
        ...


class LedgerConsentPolicy:
    """Só libera telefones cujo registro de opt-in mais recente é positivo."""

    def __init__(self, consent_repo: ConsentRepository) -> None:
        self._consent_repo = consent_repo

    def allows(self, phone_e164: str) -> bool:
        return self._consent_repo.has_consent(phone_e164)
