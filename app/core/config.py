# app/core/config.py

import os
import logging
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

# =====================================================
# APPLICATION
# =====================================================
APP_ENV = os.getenv("APP_ENV")
if APP_ENV not in {"development", "staging", "production"}:
    raise ValueError("APP_ENV must be development | staging | production")

IS_PRODUCTION = APP_ENV == "production"

# =====================================================
# DATABASE
# =====================================================
DB_TYPE = os.getenv("DB_TYPE")
if DB_TYPE not in {"postgres", "sqlite"}:
    raise ValueError("DB_TYPE must be postgres | sqlite")

if DB_TYPE == "postgres":
    DATABASE_URL = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL is required for Postgres")

elif DB_TYPE == "sqlite":
    if IS_PRODUCTION:
        raise ValueError("SQLite is NOT allowed in production")
    DATABASE_URL = os.getenv("SQLITE_URL", "sqlite+aiosqlite:///./inventory.db")

# ---- Pool tuning (safe defaults) ----
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 10))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 20))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", 30))
DB_ECHO_POOL = os.getenv("DB_ECHO_POOL", "false").lower() == "true"

# ---- SSL ----
DB_SSL_VERIFY = os.getenv("DB_SSL_VERIFY", "true").lower() == "true"
if IS_PRODUCTION and not DB_SSL_VERIFY:
    logger.warning("Running in production with relaxed SSL verification")

# =====================================================
# INVENTORY
# =====================================================
INVENTORY_CACHE_TTL_SECONDS = int(os.getenv("INVENTORY_CACHE_TTL_SECONDS", 300))
INVENTORY_UPDATE_MAX_RETRIES = int(os.getenv("INVENTORY_UPDATE_MAX_RETRIES", 3))
if INVENTORY_UPDATE_MAX_RETRIES < 1:
    raise ValueError("INVENTORY_UPDATE_MAX_RETRIES must be at least 1")

# ---- Reorder defaults (used when a product carries no settings) ----
DEFAULT_REORDER_THRESHOLD = int(os.getenv("DEFAULT_REORDER_THRESHOLD", 10))
DEFAULT_REORDER_QUANTITY = int(os.getenv("DEFAULT_REORDER_QUANTITY", 50))
DEFAULT_LEAD_TIME_DAYS = int(os.getenv("DEFAULT_LEAD_TIME_DAYS", 7))

# =====================================================
# SCHEDULER
# =====================================================
REORDER_SCAN_INTERVAL_MINUTES = int(os.getenv("REORDER_SCAN_INTERVAL_MINUTES", 60))
ENABLE_SCHEDULER = os.getenv(
    "ENABLE_SCHEDULER", "false" if IS_PRODUCTION else "true"
).lower() == "true"

# =====================================================
# NOTIFICATIONS
# =====================================================
ALERT_WEBHOOK_URLS = [
    u.strip() for u in os.getenv("ALERT_WEBHOOK_URLS", "").split(",") if u.strip()
]
ALERT_WEBHOOK_TIMEOUT = float(os.getenv("ALERT_WEBHOOK_TIMEOUT", 10.0))
EVENT_STREAM_HEARTBEAT_SECONDS = float(os.getenv("EVENT_STREAM_HEARTBEAT_SECONDS", 15.0))
