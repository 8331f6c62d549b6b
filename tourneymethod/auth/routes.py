"""FastAPI routes exposing the osu! admin login flow."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse

from . import config
from .cookies import (
    attach_login_state_cookie,
    attach_session_cookie,
    clear_login_state_cookie,
    clear_session_cookies,
    read_login_state_cookie,
    read_session_cookie,
)
from .deps import get_optional_admin, require_admin
from .errors import AuthFlowError, InvalidCallbackRequest, category_for
from .flow import AuthFlowController, get_auth_flow
from .models import AdminUserRecord
from .schemas import AdminSessionResponse, AdminUserPublic, LoginPageResponse
from .sessions import SessionManager, get_session_manager

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

LOGIN_START_PATH = "/api/auth/login"
LOGOUT_PATH = "/api/auth/logout"

_RETRY_LOGIN = "Authentication failed. Please log in again."
ERROR_MESSAGES = {
    "auth_failed": _RETRY_LOGIN,
    "csrf_error": _RETRY_LOGIN,
    "not_authorized": _RETRY_LOGIN,
    "oauth_error": "The osu! authentication service reported a problem. Please try again shortly.",
    "server_error": "A server error occurred. Please try again later.",
}
INFO_MESSAGES = {
    "logged_out": "You have been logged out.",
    "session_expired": "Your session has expired. Please log in again.",
    "login_required": "Please log in to continue.",
}


def login_redirect(**params: str) -> RedirectResponse:
    target = config.ADMIN_LOGIN_PATH
    if params:
        target = f"{target}?{urlencode(params)}"
    return RedirectResponse(target, status_code=status.HTTP_302_FOUND)


def failed_login_response(error: BaseException) -> RedirectResponse:
    """Redirect to the login page with a coarse category and no residual cookies."""
    category = category_for(error)
    if isinstance(error, AuthFlowError):
        LOGGER.warning("Admin authentication failed (%s): %s; detail=%s", category, error, error.detail)
    else:
        LOGGER.error("OAuth callback unexpected error", exc_info=error)
    response = login_redirect(error=category)
    clear_session_cookies(response)
    response.headers["Cache-Control"] = "no-store"
    return response


def _validated_param(value: Optional[str], max_length: int) -> Optional[str]:
    value = (value or "").strip()
    if not value or len(value) > max_length:
        return None
    return value


def _serialize_admin(user: AdminUserRecord) -> AdminUserPublic:
    return AdminUserPublic(
        id=user.id,
        osu_id=user.provider_user_id,
        username=user.username,
        last_login_at=user.last_login_at,
    )


@router.get(config.ADMIN_LOGIN_PATH, response_model=LoginPageResponse)
def login_page(
    error: Optional[str] = None,
    message: Optional[str] = None,
    admin: Optional[AdminUserRecord] = Depends(get_optional_admin),
):
    if admin is not None:
        return RedirectResponse(config.ADMIN_HOME_PATH, status_code=status.HTTP_302_FOUND)
    payload = LoginPageResponse(login_url=LOGIN_START_PATH, oauth_configured=config.oauth_configured())
    if error:
        payload.error = error if error in ERROR_MESSAGES else "auth_failed"
        payload.message = ERROR_MESSAGES[payload.error]
    elif message in INFO_MESSAGES:
        payload.message = INFO_MESSAGES[message]
    return payload


@router.get(LOGIN_START_PATH)
def begin_login(flow: AuthFlowController = Depends(get_auth_flow)) -> RedirectResponse:
    redirect = flow.begin_login()
    response = RedirectResponse(redirect.url, status_code=status.HTTP_302_FOUND)
    attach_login_state_cookie(response, redirect.state)
    response.headers["Cache-Control"] = "no-store"
    return response


@router.get(config.OSU_REDIRECT_PATH)
def oauth_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    flow: AuthFlowController = Depends(get_auth_flow),
) -> RedirectResponse:
    session_bound_state = read_login_state_cookie(request)
    previous_session_id = read_session_cookie(request)
    try:
        if error:
            flow.abort_login(state, error[:100])
        state_value = _validated_param(state, config.MAX_STATE_LENGTH)
        code_value = _validated_param(code, config.MAX_CODE_LENGTH)
        if state_value is None or code_value is None:
            flow.state_store.discard(state)
            raise InvalidCallbackRequest("Missing required OAuth parameters (code or state)")
        session_id = flow.complete_login(
            code_value,
            state_value,
            session_bound_state,
            previous_session_id=previous_session_id,
        )
    except Exception as exc:  # pylint: disable=broad-except
        # Failed attempts also end any session the browser carried in.
        flow.sessions.destroy(previous_session_id)
        return failed_login_response(exc)

    response = RedirectResponse(config.ADMIN_HOME_PATH, status_code=status.HTTP_302_FOUND)
    clear_login_state_cookie(response)
    attach_session_cookie(response, session_id)
    response.headers["Cache-Control"] = "no-store"
    return response


@router.post(LOGOUT_PATH)
def logout(request: Request, sessions: SessionManager = Depends(get_session_manager)) -> RedirectResponse:
    sessions.destroy(read_session_cookie(request))
    response = login_redirect(message="logged_out")
    clear_session_cookies(response)
    return response


@router.get(config.ADMIN_HOME_PATH, response_model=AdminSessionResponse)
def admin_home(admin: AdminUserRecord = Depends(require_admin)) -> AdminSessionResponse:
    return AdminSessionResponse(user=_serialize_admin(admin))
