"""
config.py
---------
Central configuration module. Loads all environment variables
from the .env file and exposes them as typed constants.
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    """Read a boolean flag such as 'true', '1' or 'no'."""
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# ── PostgreSQL ────────────────────────────────────────────
DB_HOST: str = os.getenv("DB_HOST", "localhost")
DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
DB_NAME: str = os.getenv("DB_NAME", "postgres")
DB_USER: str = os.getenv("DB_USER", "")
DB_PASS: str = os.getenv("DB_PASS", "")

# Credentials travel separately from the DSN, so they are not embedded here.
DATABASE_URL: str = os.getenv(
    "DATABASE_URL", f"postgresql://{DB_HOST}:{DB_PORT}/{DB_NAME}"
)

# ── Session behaviour ─────────────────────────────────────
DB_AUTOCOMMIT: bool = _env_flag("DB_AUTOCOMMIT", "true")
DB_RECONNECT_EXISTING: bool = _env_flag("DB_RECONNECT_EXISTING", "true")

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
# "stderr" or "stdout". Query results are printed on stdout.
LOG_STREAM: str = os.getenv("LOG_STREAM", "stderr").strip().lower()
LOG_FORMAT: str = os.getenv(
    "LOG_FORMAT", "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
)
LOG_DATE_FORMAT: str = os.getenv("LOG_DATE_FORMAT", "%Y-%m-%d %H:%M:%S")
