"""
Centralised configuration constants and environment helpers.
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()

# ── Service ──────────────────────────────────────────────────────────
SERVICE_NAME = "medical-service"
SERVICE_VERSION = "1.0.0"

# ── Listing limits ───────────────────────────────────────────────────
DEFAULT_LIST_LIMIT = 100
MAX_LIST_LIMIT = 1000

# ── Auth ─────────────────────────────────────────────────────────────
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
TOKEN_EXPIRY_HOURS = 24

# ── Sibling services ─────────────────────────────────────────────────
USER_SERVICE_URL = os.getenv("USER_SERVICE_URL", "http://user-service:3001")
COMMUNICATION_SERVICE_URL = os.getenv(
    "COMMUNICATION_SERVICE_URL", "http://communication-service:3003"
)
SERVICE_TIMEOUT_SECONDS = float(os.getenv("SERVICE_TIMEOUT_SECONDS", "5"))


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value
