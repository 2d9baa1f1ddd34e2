"""
    00 config

config.py

Environment-driven settings shared by the Streamlit page and the extraction
service, plus the log handler both of them install on start-up.
"""

import os
import sys
import logging
from typing import NamedTuple, Optional

DEFAULT_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
DEFAULT_MODEL = "google/gemini-2.5-flash"
DEFAULT_SERVICE_URL = "http://localhost:8080/extract-document"

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class Settings(NamedTuple):
    api_key: Optional[str]
    gateway_url: str
    model: str
    gateway_timeout: float
    service_url: str
    service_timeout: float


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise EnvironmentError(f"{name} must be a number of seconds, got {raw!r}")


def load_settings() -> Settings:
    """Read settings from the process environment.

    A missing API key is not an error here: the service reports it per
    request so the operator sees it without the process refusing to boot.
    """
    api_key = os.getenv("AI_GATEWAY_API_KEY") or None
    return Settings(
        api_key=api_key.strip() if api_key else None,
        gateway_url=os.getenv("AI_GATEWAY_URL") or DEFAULT_GATEWAY_URL,
        model=os.getenv("AI_GATEWAY_MODEL") or DEFAULT_MODEL,
        gateway_timeout=_float_env("GATEWAY_TIMEOUT", 120.0),
        service_url=os.getenv("EXTRACTION_SERVICE_URL") or DEFAULT_SERVICE_URL,
        service_timeout=_float_env("SERVICE_TIMEOUT", 180.0),
    )


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a stdout handler to the package logger once and return it."""
    logger = logging.getLogger("marksheet")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
        logger.addHandler(handler)
    logger.setLevel((level or os.getenv("LOG_LEVEL") or "INFO").upper())
    return logger
