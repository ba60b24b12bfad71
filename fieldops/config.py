import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# SQLite is the development default; production points this at Postgres
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./fieldops.db")

# Connection pool (ignored for SQLite)
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "20"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "30"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
DB_LOG_SLOW_QUERIES = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
DB_SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))

# Outbound collaborators - each call is skipped when its URL is unset
NOTIFICATION_WEBHOOK_URL = os.getenv("NOTIFICATION_WEBHOOK_URL")
CALENDAR_SERVICE_URL = os.getenv("CALENDAR_SERVICE_URL")
CHAT_SERVICE_URL = os.getenv("CHAT_SERVICE_URL")
INTEGRATION_TIMEOUT_SECONDS = float(os.getenv("INTEGRATION_TIMEOUT_SECONDS", "10"))

# Human-readable numbering
JOB_NUMBER_PREFIX = os.getenv("JOB_NUMBER_PREFIX", "JOB")
QUOTE_NUMBER_PREFIX = os.getenv("QUOTE_NUMBER_PREFIX", "Q")

# Actor recorded on transitions when the request carries no X-Actor-Id header
DEFAULT_ACTOR = os.getenv("DEFAULT_ACTOR", "contractor")

# CORS origins for the dispatcher UI
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000"
).split(",")
