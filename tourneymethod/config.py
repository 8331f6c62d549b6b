"""Configuration helpers for the TourneyMethod backend."""

from __future__ import annotations

import os
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

# Load environment variables from a .env file if present.
load_dotenv()


def _normalize_base_url(value: Optional[str], fallback: str) -> str:
    """Reduce a configured public URL to its scheme and host.

    Args:
        value (Optional[str]): Raw value from the environment.
        fallback (str): URL used when the value is missing or unparsable.
    Returns:
        str: ``scheme://host[:port]`` without a trailing slash.
    """
    candidate = (value or fallback or "").strip()
    if not candidate:
        return fallback
    parsed = urlparse(candidate if "://" in candidate else f"https://{candidate}")
    if not parsed.scheme or not parsed.netloc:
        return fallback
    return f"{parsed.scheme}://{parsed.netloc}"


ENVIRONMENT = os.getenv("TOURNEY_ENV", "development").strip().lower()
API_HOST = os.getenv("TOURNEY_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("TOURNEY_API_PORT", "8000"))

APP_BASE_URL = _normalize_base_url(os.getenv("APP_BASE_URL"), "http://localhost:8000")


def is_production() -> bool:
    """Return True when running with production settings."""

    return ENVIRONMENT == "production"
