"""FastAPI dependencies for admin-only routes."""

from __future__ import annotations

from fastapi import Depends, Request

from .cookies import read_session_cookie
from .errors import SessionExpired, SessionInvalid
from .models import AdminUserRecord
from .sessions import SessionManager, get_session_manager


class AdminLoginRequired(Exception):
    """Raised by guarded routes; the app turns it into a re-login redirect."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


def require_admin(
    request: Request,
    sessions: SessionManager = Depends(get_session_manager),
) -> AdminUserRecord:
    session_id = read_session_cookie(request)
    try:
        return sessions.validate(session_id)
    except SessionExpired as exc:
        raise AdminLoginRequired("session_expired") from exc
    except SessionInvalid as exc:
        # Drop whatever the browser presented; a stale id is never revalidated.
        sessions.destroy(session_id)
        raise AdminLoginRequired("login_required") from exc


def get_optional_admin(
    request: Request,
    sessions: SessionManager = Depends(get_session_manager),
) -> AdminUserRecord | None:
    try:
        return sessions.validate(read_session_cookie(request))
    except SessionInvalid:
        return None
