"""Fakes e dados reutilizáveis para os cenários do pipeline de envio."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from signals_dispatch.core.database import Base
from signals_dispatch.orders.source import OrderSnapshot
from signals_dispatch.whatsapp.base import TemplateSendResult, build_template_payload
import signals_dispatch.models  # noqa: F401

HAPPY_PATH_ORDER = OrderSnapshot(
    id=1001,
    number="1001",
    total="59.90",
    currency="BRL",
    status="processing",
    billing_first_name="Ana",
    billing_last_name="Souza",
    billing_phone="+55 (11) 98765-4321",
    billing_email="ana@example.com",
    shipping_first_name="Ana",
    shipping_last_name="Souza",
)

HAPPY_PATH_PHONE = "+5511987654321"

DELIVERED_WEBHOOK = {
    "object": "whatsapp_business_account",
    "entry": [
        {
            "id": "WABA_ID",
            "changes": [
                {
                    "field": "messages",
                    "value": {
                        "messaging_product": "whatsapp",
                        "statuses": [
                            {"id": "wamid.123", "status": "delivered", "timestamp": "1700000000"},
                        ],
                    },
                }
            ],
        }
    ],
}


def build_session_factory():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


class FakeScheduler:
    """Guarda os jobs agendados; o teste decide quando rodar."""

    def __init__(self, supports_immediate=True):
        self.supports_immediate = supports_immediate
        self.jobs = []

    def enqueue(self, job_name, args, *, queue, delay_seconds=0):
        self.jobs.append(
            {"job_name": job_name, "args": list(args), "queue": queue, "delay_seconds": delay_seconds}
        )

    def pop(self):
        return self.jobs.pop(0)


class FakeTemplateClient:
    def __init__(self, results=None, on_send=None):
        self._results = list(results or [])
        self._on_send = on_send
        self.calls = []

    def send_template(self, phone_e164, template_name, language, variables):
        self.calls.append(
            {
                "phone_e164": phone_e164,
                "template_name": template_name,
                "language": language,
                "variables": list(variables),
            }
        )
        if self._on_send is not None:
            self._on_send()
        if self._results:
            return self._results.pop(0)
        return success_result(phone_e164, template_name, language, variables)


def success_result(phone_e164, template_name, language="en_US", variables=(), message_id="wamid.OK"):
    return TemplateSendResult(
        success=True,
        payload=build_template_payload(phone_e164, template_name, language, variables),
        response={"messaging_product": "whatsapp", "messages": [{"id": message_id}]},
    )


def failure_result(error="Template name does not exist", code="132001"):
    return TemplateSendResult(
        success=False,
        payload={"messaging_product": "whatsapp"},
        response={"error": {"message": error, "code": int(code)}},
        error=error,
        error_code=code,
    )


VERIFY_TOKEN = "verify-me"
ADMIN_TOKEN = "admin-secret"
ORDER_EVENTS_TOKEN = "signals-secret"


def build_test_services(client=None, scheduler=None, orders=None, **overrides):
    from signals_dispatch.bootstrap import build_services
    from signals_dispatch.orders.source import InMemoryOrderSource

    options = {
        "session_factory": build_session_factory(),
        "client": client or FakeTemplateClient(),
        "scheduler": scheduler or FakeScheduler(),
        "order_source": InMemoryOrderSource(orders if orders is not None else {HAPPY_PATH_ORDER.id: HAPPY_PATH_ORDER}),
        "site_name": "Loja Teste",
        "enforce_consent": False,
        "verify_token": VERIFY_TOKEN,
        "order_events_token": ORDER_EVENTS_TOKEN,
        "admin_token": ADMIN_TOKEN,
    }
    options.update(overrides)
    return build_services(**options)


def build_test_app(services, *routers):
    from fastapi import FastAPI

    app = FastAPI()
    for router in routers:
        app.include_router(router)
    app.state.services = services
    return app
