from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator

from sqlalchemy.orm import Session

SessionFactory = Callable[[], Session]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionRepository:
    """Abre uma sessão curta por operação; nada fica em memória entre chamadas."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @contextmanager
    def _reading(self) -> Iterator[Session]:
        # Sem commit: os objetos saem da sessão já carregados, sem expirar.
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()
