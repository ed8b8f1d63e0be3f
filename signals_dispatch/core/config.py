import os

from dotenv import load_dotenv

# Carrega o .env da raiz do projeto
load_dotenv()


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./signals_dispatch.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_PROD = ENV_NORMALIZED in {"prod", "production"}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
AUTO_CREATE_TABLES = _env_flag("AUTO_CREATE_TABLES", "1" if IS_DEV else "0")

SITE_NAME = os.getenv("SITE_NAME", "").strip()

# WhatsApp Cloud API
META_WA_ACCESS_TOKEN = os.getenv("META_WA_ACCESS_TOKEN", "").strip()
META_WA_PHONE_NUMBER_ID = os.getenv("META_WA_PHONE_NUMBER_ID", "").strip()
META_API_VERSION = os.getenv("META_API_VERSION", "v18.0").strip()
WHATSAPP_VERIFY_TOKEN = os.getenv("WHATSAPP_VERIFY_TOKEN", "").strip()
WHATSAPP_PROVIDER = os.getenv("WHATSAPP_PROVIDER", "cloud").strip().lower()
WHATSAPP_TIMEOUT_SECONDS = float(os.getenv("WHATSAPP_TIMEOUT_SECONDS", "20"))

# WooCommerce REST (fonte de pedidos, somente leitura)
WC_STORE_URL = os.getenv("WC_STORE_URL", "").strip().rstrip("/")
WC_CONSUMER_KEY = os.getenv("WC_CONSUMER_KEY", "").strip()
WC_CONSUMER_SECRET = os.getenv("WC_CONSUMER_SECRET", "").strip()
WC_TIMEOUT_SECONDS = float(os.getenv("WC_TIMEOUT_SECONDS", "10"))

# Tokens das superfícies HTTP
ORDER_EVENTS_TOKEN = os.getenv("ORDER_EVENTS_TOKEN", "").strip()
ADMIN_API_TOKEN = os.getenv("ADMIN_API_TOKEN", "").strip()

ENFORCE_CONSENT = _env_flag("ENFORCE_CONSENT")

# Jobstore do APScheduler; vazio = memória (retries pendentes somem no restart)
SCHEDULER_JOBSTORE_URL = os.getenv("SCHEDULER_JOBSTORE_URL", DATABASE_URL).strip()
