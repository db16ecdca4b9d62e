import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./campaigns.db")
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")

    # WhatsApp Cloud API (Meta Graph API)
    META_GRAPH_API_URL = data.get("META_GRAPH_API_URL", "https://graph.facebook.com")
    META_API_VERSION = data.get("META_API_VERSION", "v22.0")
    META_PHONE_NUMBER_ID = data.get("META_PHONE_NUMBER_ID", None)
    META_ACCESS_TOKEN = data.get("META_ACCESS_TOKEN", None)
    META_WEBHOOK_VERIFY_TOKEN = data.get("META_WEBHOOK_VERIFY_TOKEN", None)
    SEND_TIMEOUT_SECONDS = data.get("SEND_TIMEOUT_SECONDS", 30)

    # Provider send ceilings (0 disables a window)
    RATE_LIMIT_PER_MINUTE = data.get("RATE_LIMIT_PER_MINUTE", 60)
    RATE_LIMIT_PER_HOUR = data.get("RATE_LIMIT_PER_HOUR", 1000)
    RATE_LIMIT_PER_DAY = data.get("RATE_LIMIT_PER_DAY", 5000)

    # Dispatch loop
    DEFAULT_MAX_RETRIES = data.get("DEFAULT_MAX_RETRIES", 3)
    STATUS_POLL_SECONDS = data.get("STATUS_POLL_SECONDS", 5)

    # Credit expiry sweep
    CREDIT_EXPIRY_SWEEP_ENABLED = bool(data.get("CREDIT_EXPIRY_SWEEP_ENABLED", True))
    CREDIT_EXPIRY_SWEEP_INTERVAL_SECONDS = data.get("CREDIT_EXPIRY_SWEEP_INTERVAL_SECONDS", 86400)  # Daily

    # Scheduled campaign starter
    CAMPAIGN_SCHEDULER_ENABLED = bool(data.get("CAMPAIGN_SCHEDULER_ENABLED", True))
    CAMPAIGN_SCHEDULER_INTERVAL_SECONDS = data.get("CAMPAIGN_SCHEDULER_INTERVAL_SECONDS", 60)
    RATE_LIMIT_RESUME_AFTER_SECONDS = data.get("RATE_LIMIT_RESUME_AFTER_SECONDS", 300)
