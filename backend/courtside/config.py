import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./courtside.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")

# Fixture generation
MIN_ENTRIES = int(os.getenv("COURTSIDE_MIN_ENTRIES", "2"))
DEFAULT_START_HOUR = int(os.getenv("COURTSIDE_DEFAULT_START_HOUR", "9"))

# Per-tournament lock; older rows are treated as abandoned
LOCK_TTL_SECONDS = int(os.getenv("COURTSIDE_LOCK_TTL_SECONDS", "300"))

LOG_LEVEL = os.getenv("COURTSIDE_LOG_LEVEL", "INFO").upper()
