from __future__ import annotations

import logging
from dataclasses import dataclass

from signals_dispatch.core import config
from signals_dispatch.core.database import SessionLocal
from signals_dispatch.core.metrics import InMemoryDispatchMetrics
from signals_dispatch.dispatch.consent import LedgerConsentPolicy
from signals_dispatch.dispatch.engine import SEND_TEMPLATE_JOB, DispatchEngine
from signals_dispatch.dispatch.reconciler import WebhookReconciler
from signals_dispatch.dispatch.scheduler import BackgroundJobScheduler, Scheduler
from signals_dispatch.orders.source import InMemoryOrderSource, OrderSource, WooCommerceOrderSource
from signals_dispatch.repositories.base import SessionFactory
from signals_dispatch.repositories.consent_repository import ConsentRepository
from signals_dispatch.repositories.log_repository import LogRepository
from signals_dispatch.repositories.mapping_repository import MappingRepository
from signals_dispatch.services.event_bus import ORDER_STATUS_CHANGED, EventBus
from signals_dispatch.services.template_payload import TemplatePayloadBuilder
from signals_dispatch.services.variables import VariableResolver
from signals_dispatch.whatsapp.base import TemplateClient
from signals_dispatch.whatsapp.service import build_template_client

logger = logging.getLogger(__name__)


@dataclass
class DispatchServices:
    log_repo: LogRepository
    mapping_repo: MappingRepository
    consent_repo: ConsentRepository
    engine: DispatchEngine
    reconciler: WebhookReconciler
    event_bus: EventBus
    scheduler: Scheduler
    client: TemplateClient
    metrics: InMemoryDispatchMetrics
    verify_token: str
    order_events_token: str
    admin_token: str

    def shutdown(self) -> None:
        shutdown = getattr(self.scheduler, "shutdown", None)
        if callable(shutdown):
            shutdown()


def build_order_source() -> OrderSource:
    if config.WC_STORE_URL:
        return WooCommerceOrderSource(
            store_url=config.WC_STORE_URL,
            consumer_key=config.WC_CONSUMER_KEY,
            consumer_secret=config.WC_CONSUMER_SECRET,
            timeout=config.WC_TIMEOUT_SECONDS,
        )
    logger.warning("WC_STORE_URL não configurado: usando fonte de pedidos em memória")
    return InMemoryOrderSource()


def build_services(
    *,
    session_factory: SessionFactory = SessionLocal,
    client: TemplateClient | None = None,
    scheduler: Scheduler | None = None,
    order_source: OrderSource | None = None,
    site_name: str | None = None,
    enforce_consent: bool | None = None,
    verify_token: str | None = None,
    order_events_token: str | None = None,
    admin_token: str | None = None,
) -> DispatchServices:
    """Monta cada componente uma vez e injeta as dependências explicitamente."""
    metrics = InMemoryDispatchMetrics()
    log_repo = LogRepository(session_factory)
    mapping_repo = MappingRepository(session_factory)
    consent_repo = ConsentRepository(session_factory)

    if client is None:
        client = build_template_client(
            provider=config.WHATSAPP_PROVIDER,
            access_token=config.META_WA_ACCESS_TOKEN,
            phone_number_id=config.META_WA_PHONE_NUMBER_ID,
            api_version=config.META_API_VERSION,
            timeout=config.WHATSAPP_TIMEOUT_SECONDS,
        )
    if scheduler is None:
        scheduler = BackgroundJobScheduler(jobstore_url=config.SCHEDULER_JOBSTORE_URL)
    if order_source is None:
        order_source = build_order_source()
    if enforce_consent is None:
        enforce_consent = config.ENFORCE_CONSENT

    payload_builder = TemplatePayloadBuilder(
        order_source,
        VariableResolver(site_name=config.SITE_NAME if site_name is None else site_name),
    )
    engine = DispatchEngine(
        log_repo=log_repo,
        mapping_repo=mapping_repo,
        payload_builder=payload_builder,
        client=client,
        scheduler=scheduler,
        consent_policy=LedgerConsentPolicy(consent_repo) if enforce_consent else None,
        metrics=metrics,
    )

    register = getattr(scheduler, "register", None)
    if callable(register):
        register(SEND_TEMPLATE_JOB, engine.run_send_job)

    event_bus = EventBus()
    event_bus.subscribe(ORDER_STATUS_CHANGED, engine.handle_event)

    # só depois do register: jobs persistidos podem disparar no start
    start = getattr(scheduler, "start", None)
    if callable(start):
        start()

    return DispatchServices(
        log_repo=log_repo,
        mapping_repo=mapping_repo,
        consent_repo=consent_repo,
        engine=engine,
        reconciler=WebhookReconciler(log_repo, metrics),
        event_bus=event_bus,
        scheduler=scheduler,
        client=client,
        metrics=metrics,
        verify_token=config.WHATSAPP_VERIFY_TOKEN if verify_token is None else verify_token,
        order_events_token=config.ORDER_EVENTS_TOKEN if order_events_token is None else order_events_token,
        admin_token=config.ADMIN_API_TOKEN if admin_token is None else admin_token,
    )
