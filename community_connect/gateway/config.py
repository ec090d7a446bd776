"""
Runtime configuration read from the environment.

`.env` is loaded once here; every other module imports the values it needs
from this module instead of calling os.getenv itself.
"""

import logging
import os
from datetime import timedelta
from typing import Any, Dict, List

from dotenv import load_dotenv

load_dotenv()

DEFAULT_SESSION_SECRET = "community-connect-secret"


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


SESSION_SECRET = os.getenv("SESSION_SECRET", DEFAULT_SESSION_SECRET)
SESSION_LIFETIME_DAYS = int(os.getenv("SESSION_LIFETIME_DAYS", 7))
SESSION_COOKIE_SECURE = _flag("SESSION_COOKIE_SECURE")

# Argon2id cost; memory is in KiB
PASSWORD_TIME_COST = int(os.getenv("PASSWORD_TIME_COST", 2))
PASSWORD_MEMORY_COST = int(os.getenv("PASSWORD_MEMORY_COST", 19456))
PASSWORD_PARALLELISM = int(os.getenv("PASSWORD_PARALLELISM", 1))

CORS_ORIGINS: List[str] = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:5000").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
GATEWAY_PORT = int(os.getenv("GATEWAY_PORT", 5000))


def flask_config() -> Dict[str, Any]:
    """
    Build the Flask config mapping for `create_app`.

    Returns:
        dict: SECRET_KEY and session cookie settings.
    """
    if SESSION_SECRET == DEFAULT_SESSION_SECRET:
        logging.warning("SESSION_SECRET is not set; using the development default.")

    return {
        "SECRET_KEY": SESSION_SECRET,
        "PERMANENT_SESSION_LIFETIME": timedelta(days=SESSION_LIFETIME_DAYS),
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": SESSION_COOKIE_SECURE,
    }
