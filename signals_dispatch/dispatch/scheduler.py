from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Protocol, Sequence

from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy import create_engine

from signals_dispatch.core.request_context import clear_request_context, set_request_context

logger = logging.getLogger(__name__)

Job = Callable[..., Any]

JOBSTORE_TABLE = "dispatch_scheduled_jobs"

# Jobs persistidos guardam só a referência textual de run_registered_job;
# o handler real é resolvido pelo nome no momento da execução.
_JOB_HANDLERS: dict[str, Job] = {}


class Scheduler(Protocol):
    """Capacidade externa de agendar um job por nome.

    Semântica at-least-once: o mesmo job pode rodar mais de uma vez.
    """

    supports_immediate: bool

    def enqueue(
        self,
        job_name: str,
        args: Sequence[Any],
        *,
        queue: str,
        delay_seconds: float = 0,
    ) -> None:
        ...


def run_registered_job(job_name: str, args: list[Any], job_id: str) -> None:
    set_request_context(job_id=job_id)
    try:
        handler = _JOB_HANDLERS.get(job_name)
        if handler is None:
            logger.error("no handler registered for job %s, dropping", job_name)
            return
        handler(*args)
    except Exception:
        logger.exception("scheduled job %s failed", job_name)
    finally:
        clear_request_context()


def build_jobstore(url: str | None):
    if not url:
        return MemoryJobStore()
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)
    return SQLAlchemyJobStore(engine=engine, tablename=JOBSTORE_TABLE)


class BackgroundJobScheduler:
    """``Scheduler`` sobre o ``BackgroundScheduler`` do APScheduler.

    Cada envio vira um job de trigger ``date``. Com ``jobstore_url`` os jobs
    ficam numa tabela SQL e sobrevivem a restart; sem URL ficam em memória.
    Jobs atrasados rodam assim que o scheduler volta (sem limite de misfire).
    """

    supports_immediate = True

    def __init__(self, *, jobstore_url: str | None = None) -> None:
        self._scheduler = BackgroundScheduler(
            jobstores={"default": build_jobstore(jobstore_url)},
            job_defaults={"coalesce": False, "misfire_grace_time": None, "max_instances": 1},
            timezone=timezone.utc,
        )

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def register(self, job_name: str, job: Job) -> None:
        _JOB_HANDLERS[job_name] = job

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("scheduler started with %s persisted jobs", len(self._scheduler.get_jobs()))

    def enqueue(
        self,
        job_name: str,
        args: Sequence[Any],
        *,
        queue: str,
        delay_seconds: float = 0,
    ) -> None:
        if job_name not in _JOB_HANDLERS:
            raise KeyError(f"Job não registrado: {job_name}")

        job_id = uuid.uuid4().hex
        run_date = datetime.now(timezone.utc) + timedelta(seconds=max(0.0, float(delay_seconds)))
        self._scheduler.add_job(
            run_registered_job,
            trigger="date",
            run_date=run_date,
            args=[job_name, list(args), job_id],
            id=job_id,
            name=f"{queue}:{job_name}",
        )
        logger.debug("job scheduled %s args=%s delay=%s", job_name, list(args), delay_seconds)

    def pending(self) -> int:
        return len(self._scheduler.get_jobs())

    def shutdown(self) -> None:
        if not self._scheduler.running:
            return
        # jobs ainda não executados continuam no jobstore
        self._scheduler.shutdown(wait=False)
