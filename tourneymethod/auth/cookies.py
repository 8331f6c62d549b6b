"""Cookie helpers for admin sessions and pending login state."""

from __future__ import annotations

from typing import Optional

from fastapi import Request, Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from . import config

_state_serializer = URLSafeTimedSerializer(config.SESSION_SECRET, salt="osu-login-state")


def attach_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=session_id,
        domain=config.SESSION_COOKIE_DOMAIN,
        path=config.SESSION_COOKIE_PATH,
        httponly=True,
        secure=config.SESSION_COOKIE_SECURE,
        samesite=config.SESSION_COOKIE_SAMESITE,
        max_age=config.SESSION_TTL_SECONDS,
    )


def attach_login_state_cookie(response: Response, state: str) -> None:
    response.set_cookie(
        key=config.LOGIN_STATE_COOKIE_NAME,
        value=_state_serializer.dumps(state),
        domain=config.SESSION_COOKIE_DOMAIN,
        path=config.SESSION_COOKIE_PATH,
        httponly=True,
        secure=config.SESSION_COOKIE_SECURE,
        samesite=config.SESSION_COOKIE_SAMESITE,
        max_age=config.LOGIN_STATE_TTL_SECONDS,
    )


def read_login_state_cookie(request: Request) -> Optional[str]:
    """Return the state bound to this browser, or None if absent or tampered."""
    raw = request.cookies.get(config.LOGIN_STATE_COOKIE_NAME)
    if not raw:
        return None
    try:
        value = _state_serializer.loads(raw, max_age=config.LOGIN_STATE_TTL_SECONDS)
    except (SignatureExpired, BadSignature):
        return None
    return value if isinstance(value, str) else None


def read_session_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(config.SESSION_COOKIE_NAME) or None


def clear_login_state_cookie(response: Response) -> None:
    response.delete_cookie(
        key=config.LOGIN_STATE_COOKIE_NAME,
        domain=config.SESSION_COOKIE_DOMAIN,
        path=config.SESSION_COOKIE_PATH,
    )


def clear_session_cookies(response: Response) -> None:
    for cookie_name in (config.SESSION_COOKIE_NAME, config.LOGIN_STATE_COOKIE_NAME):
        response.delete_cookie(
            key=cookie_name,
            domain=config.SESSION_COOKIE_DOMAIN,
            path=config.SESSION_COOKIE_PATH,
        )
