"""Configuration helpers for the admin authentication subsystem."""

from __future__ import annotations

import os
from typing import FrozenSet, Optional

from dotenv import load_dotenv

from ..config import APP_BASE_URL, is_production

load_dotenv()


def _bool_env(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_allowlist(value: Optional[str]) -> FrozenSet[int]:
    """Parse a comma separated list of osu! user ids into an immutable set."""
    identifiers = set()
    for chunk in (value or "").split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        identifiers.add(int(chunk))
    return frozenset(identifiers)


# osu! OAuth 2.0 endpoints
OSU_AUTHORIZE_URL = "https://osu.ppy.sh/oauth/authorize"
OSU_TOKEN_URL = "https://osu.ppy.sh/oauth/token"
OSU_PROFILE_URL = "https://osu.ppy.sh/api/v2/me"
OSU_RESPONSE_TYPE = "code"
OSU_SCOPE = os.getenv("OSU_SCOPE", "public")
OSU_USER_AGENT = "TourneyMethod/1.0"

OSU_CLIENT_ID = os.getenv("OSU_CLIENT_ID") or None
OSU_CLIENT_SECRET = os.getenv("OSU_CLIENT_SECRET") or None
OSU_REDIRECT_PATH = os.getenv("OSU_REDIRECT_PATH", "/api/auth/callback")
OSU_REDIRECT_URI = f"{APP_BASE_URL.rstrip('/')}{OSU_REDIRECT_PATH}"

OSU_HTTP_TIMEOUT_SECONDS = float(os.getenv("OSU_HTTP_TIMEOUT_SECONDS", "30"))
OSU_CONNECT_TIMEOUT_SECONDS = float(os.getenv("OSU_CONNECT_TIMEOUT_SECONDS", "10"))
OSU_MAX_RETRIES = int(os.getenv("OSU_MAX_RETRIES", "3"))
OSU_BACKOFF_BASE_SECONDS = float(os.getenv("OSU_BACKOFF_BASE_SECONDS", "2.0"))
OSU_API_RATE_LIMIT_PER_MINUTE = int(os.getenv("OSU_API_RATE_LIMIT_PER_MINUTE", "1000"))
OSU_MIN_REQUEST_INTERVAL_SECONDS = 60.0 / OSU_API_RATE_LIMIT_PER_MINUTE if OSU_API_RATE_LIMIT_PER_MINUTE > 0 else 0.0

# Fixed after process start; membership is the only admin authorization input.
ADMIN_ALLOWLIST: FrozenSet[int] = _parse_allowlist(os.getenv("ADMIN_OSU_IDS", "757783"))

SESSION_SECRET = os.getenv("SESSION_SECRET", "dev-session-secret")
SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", "3600"))
LOGIN_STATE_TTL_SECONDS = int(os.getenv("LOGIN_STATE_TTL_SECONDS", "600"))

SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "tourney_admin_session")
LOGIN_STATE_COOKIE_NAME = os.getenv("LOGIN_STATE_COOKIE_NAME", "tourney_login_state")
SESSION_COOKIE_DOMAIN = os.getenv("SESSION_COOKIE_DOMAIN") or None
SESSION_COOKIE_PATH = os.getenv("SESSION_COOKIE_PATH", "/")
SESSION_COOKIE_SECURE = _bool_env("SESSION_COOKIE_SECURE", default=APP_BASE_URL.startswith("https://") or is_production())
SESSION_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE", "Lax").capitalize()

ADMIN_HOME_PATH = "/admin/"
ADMIN_LOGIN_PATH = "/admin/login"

MAX_CODE_LENGTH = 2000
MAX_STATE_LENGTH = 64


def oauth_configured() -> bool:
    """Return True if the osu! client credentials are present."""

    return bool(OSU_CLIENT_ID and OSU_CLIENT_SECRET)
