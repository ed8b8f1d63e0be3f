import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from signals_dispatch.bootstrap import build_services
from signals_dispatch.core.config import AUTO_CREATE_TABLES, ENV
from signals_dispatch.core.database import Base, engine
from signals_dispatch.core.logging_setup import configure_logging
from signals_dispatch.core.startup_checks import ensure_schema_ready, validate_database_environment
from signals_dispatch.middleware.observability import ObservabilityMiddleware
import signals_dispatch.models  # garante que os models são importados antes do create_all

from signals_dispatch.routers.admin_dispatch import router as admin_dispatch_router
from signals_dispatch.routers.order_events import router as order_events_router
from signals_dispatch.routers.webhook import router as webhook_router

configure_logging()

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = REPO_ROOT / "alembic.ini"


def _prepare_database() -> None:
    validate_database_environment()
    if AUTO_CREATE_TABLES:
        # dev/test; em produção, use migrations
        Base.metadata.create_all(bind=engine)
        logger.info("%s tables ensured via create_all", STARTUP_PREFIX)
        return
    ensure_schema_ready(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        _prepare_database()
        app.state.services = build_services()
    except Exception:
        logger.exception("%s ERROR startup failed", STARTUP_PREFIX)
        raise
    logger.info("%s dispatch services ready env=%s", STARTUP_PREFIX, ENV)
    try:
        yield
    finally:
        app.state.services.shutdown()


app = FastAPI(
    title="Signals Dispatch API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(ObservabilityMiddleware)

app.include_router(webhook_router)
app.include_router(order_events_router)
app.include_router(admin_dispatch_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
