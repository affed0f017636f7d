import os

APP_NAME = "NPS Survey API"
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000").rstrip("/")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]

JWT_SECRET = os.getenv("JWT_SECRET", "")
ACCESS_TOKEN_TTL_MINUTES = int(os.getenv("ACCESS_TOKEN_TTL_MINUTES", "1440"))
REFRESH_TOKEN_TTL_DAYS = int(os.getenv("REFRESH_TOKEN_TTL_DAYS", "7"))

DEFAULT_TENANT_TIMEZONE = os.getenv("DEFAULT_TENANT_TIMEZONE", "UTC")
DEFAULT_TENANT_LANGUAGE = os.getenv("DEFAULT_TENANT_LANGUAGE", "pt-BR")
DEFAULT_FROM_NAME = os.getenv("DEFAULT_FROM_NAME", "Equipe NPS")
DEFAULT_FROM_EMAIL = os.getenv("DEFAULT_FROM_EMAIL", "noreply@nps-saas.com")

# Outbound providers
PROVIDER_TIMEOUT_SECONDS = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "15"))
MAILGUN_API_KEY = os.getenv("MAILGUN_API_KEY", "")
MAILGUN_DOMAIN = os.getenv("MAILGUN_DOMAIN", "")
MAILGUN_BASE_URL = os.getenv("MAILGUN_BASE_URL", "https://api.mailgun.net/v3").rstrip("/")
SUNCO_BASE_URL = os.getenv("SUNCO_BASE_URL", "https://api.smooch.io").rstrip("/")
SUNCO_APP_ID = os.getenv("SUNCO_APP_ID", "")
SUNCO_API_KEY_ID = os.getenv("SUNCO_API_KEY_ID", "")
SUNCO_API_SECRET = os.getenv("SUNCO_API_SECRET", "")
SUNCO_WHATSAPP_INTEGRATION_ID = os.getenv("SUNCO_WHATSAPP_INTEGRATION_ID", "")

# Inbound webhooks
ZENDESK_WEBHOOK_SECRET = os.getenv("ZENDESK_WEBHOOK_SECRET", "")
SUNCO_WEBHOOK_SECRET = os.getenv("SUNCO_WEBHOOK_SECRET", "")

# Dispatch queue and delivery worker
QUEUE_MAX_DELAY_SECONDS = int(os.getenv("QUEUE_MAX_DELAY_SECONDS", "900"))
QUEUE_VISIBILITY_TIMEOUT_SECONDS = int(os.getenv("QUEUE_VISIBILITY_TIMEOUT_SECONDS", "60"))
DELIVERY_SKIP_DELIVERED = os.getenv("DELIVERY_SKIP_DELIVERED", "true").lower() == "true"
WORKER_POLL_INTERVAL_SECONDS = float(os.getenv("WORKER_POLL_INTERVAL_SECONDS", "5"))
WORKER_BATCH_SIZE = int(os.getenv("WORKER_BATCH_SIZE", "10"))

RL_AUTH_SIGNUP_LIMIT = int(os.getenv("RL_AUTH_SIGNUP_LIMIT", "20"))
RL_AUTH_LOGIN_LIMIT = int(os.getenv("RL_AUTH_LOGIN_LIMIT", "60"))
RL_AUTH_REFRESH_LIMIT = int(os.getenv("RL_AUTH_REFRESH_LIMIT", "120"))
RL_WINDOW_SECONDS = int(os.getenv("RL_WINDOW_SECONDS", "60"))
