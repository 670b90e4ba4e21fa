"""Environment variable resolution for gemclient.

Values are read from the process environment after loading a ``.env``
file from the working directory (existing variables take precedence).
"""

import logging
import os
from typing import List, Optional

from dotenv import load_dotenv

from .models import API_BASE_URL, DEFAULT_CONNECT_TIMEOUT, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

ENV_API_KEY = "GEMINI_API_KEY"
ENV_MODEL = "GEMINI_MODEL"
ENV_BASE_URL = "GEMINI_BASE_URL"
ENV_TIMEOUT = "GEMINI_TIMEOUT"
ENV_CONNECT_TIMEOUT = "GEMINI_CONNECT_TIMEOUT"


def load_env() -> None:
    """Load variables from a ``.env`` file without overriding the environment."""
    load_dotenv(override=False)


def resolve_api_key() -> Optional[str]:
    """Resolve the Gemini API key.

    Checks:
    1. GEMINI_API_KEY environment variable
    2. GEMINI_API_KEY in a .env file

    Returns:
        API key if found, None otherwise.
    """
    load_env()
    return os.environ.get(ENV_API_KEY) or None


def resolve_model() -> Optional[str]:
    """Resolve the default model name from GEMINI_MODEL."""
    load_env()
    return os.environ.get(ENV_MODEL) or None


def resolve_base_url() -> str:
    """Resolve the API base URL.

    Returns:
        GEMINI_BASE_URL if set, otherwise the public endpoint.
    """
    load_env()
    return os.environ.get(ENV_BASE_URL) or API_BASE_URL


def _resolve_seconds(var: str, default: float) -> float:
    val = os.environ.get(var)
    if not val:
        return default
    try:
        seconds = float(val)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", var, val, default)
        return default
    if seconds <= 0:
        logger.warning("Ignoring non-positive %s=%r, using %s", var, val, default)
        return default
    return seconds


def resolve_timeout() -> float:
    """Resolve the request timeout in seconds (default: 30)."""
    load_env()
    return _resolve_seconds(ENV_TIMEOUT, DEFAULT_TIMEOUT)


def resolve_connect_timeout() -> float:
    """Resolve the connection timeout in seconds (default: 30)."""
    load_env()
    return _resolve_seconds(ENV_CONNECT_TIMEOUT, DEFAULT_CONNECT_TIMEOUT)


def get_checked_credential_locations() -> List[str]:
    """Get list of locations checked for the API key."""
    return [
        f"{ENV_API_KEY} environment variable",
        f".env file in {os.getcwd()}",
    ]
