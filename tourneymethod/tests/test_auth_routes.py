"""HTTP-level tests for the admin login routes."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from tourneymethod.app import app
from tourneymethod.auth import config
from tourneymethod.auth.errors import ProviderNotConfigured, SessionInvalid
from tourneymethod.auth.flow import get_auth_flow
from tourneymethod.auth.sessions import get_session_manager


@pytest.fixture
def client(auth_flow):
    app.dependency_overrides[get_auth_flow] = lambda: auth_flow
    app.dependency_overrides[get_session_manager] = lambda: auth_flow.sessions
    test_client = TestClient(app, follow_redirects=False)
    yield test_client
    test_client.close()
    app.dependency_overrides.clear()


def _query(location: str) -> dict:
    return {key: values[0] for key, values in parse_qs(urlparse(location).query).items()}


def _start_login(client: TestClient) -> str:
    response = client.get("/api/auth/login")
    assert response.status_code == 302
    return _query(response.headers["location"])["state"]


def _log_in(client: TestClient) -> str:
    state = _start_login(client)
    response = client.get("/api/auth/callback", params={"code": "validcode", "state": state})
    assert response.status_code == 302
    assert response.headers["location"] == "/admin/"
    return client.cookies.get(config.SESSION_COOKIE_NAME)


def test_login_redirects_to_osu(client):
    response = client.get("/api/auth/login")

    assert response.status_code == 302
    location = response.headers["location"]
    assert location.startswith("https://osu.ppy.sh/oauth/authorize?")
    query = _query(location)
    assert query["client_id"] == "test_client_id"
    assert query["redirect_uri"] == "http://testserver/api/auth/callback"
    assert query["response_type"] == "code"
    assert query["scope"] == "public"
    assert len(query["state"]) == 64
    assert config.LOGIN_STATE_COOKIE_NAME in response.headers["set-cookie"]
    assert "httponly" in response.headers["set-cookie"].lower()
    assert response.headers["cache-control"] == "no-store"


def test_successful_callback_issues_session(client, auth_flow):
    session_id = _log_in(client)

    assert session_id
    assert auth_flow.sessions.validate(session_id).provider_user_id == 42

    response = client.get("/admin/")
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["osu_id"] == 42
    assert user["username"] == "peppy"


def test_logged_in_admin_skips_login_page(client):
    _log_in(client)

    response = client.get("/admin/login")

    assert response.status_code == 302
    assert response.headers["location"] == "/admin/"


def test_callback_with_forged_state(client, osu_stub):
    _start_login(client)

    response = client.get("/api/auth/callback", params={"code": "validcode", "state": "f" * 64})

    assert response.status_code == 302
    assert response.headers["location"] == "/admin/login?error=csrf_error"
    assert osu_stub.requests == []


def test_callback_without_browser_binding(client, osu_stub):
    state = _start_login(client)
    client.cookies.clear()

    response = client.get("/api/auth/callback", params={"code": "validcode", "state": state})

    assert response.headers["location"] == "/admin/login?error=csrf_error"
    assert osu_stub.requests == []


def test_callback_for_unlisted_identity(client, osu_stub):
    osu_stub.set_profile(999, "stranger")
    state = _start_login(client)

    response = client.get("/api/auth/callback", params={"code": "validcode", "state": state})

    assert response.headers["location"] == "/admin/login?error=not_authorized"
    assert client.cookies.get(config.SESSION_COOKIE_NAME) is None


def test_callback_with_provider_error(client, osu_stub):
    state = _start_login(client)

    response = client.get("/api/auth/callback", params={"error": "access_denied", "state": state})

    assert response.headers["location"] == "/admin/login?error=oauth_error"
    assert osu_stub.requests == []


@pytest.mark.parametrize(
    "params",
    [
        {},
        {"code": "validcode"},
        {"code": "x" * 2001, "state": "ignored"},
        {"code": "validcode", "state": "s" * 65},
    ],
)
def test_callback_with_unusable_parameters(client, osu_stub, params):
    _start_login(client)

    response = client.get("/api/auth/callback", params=params)

    assert response.headers["location"] == "/admin/login?error=auth_failed"
    assert osu_stub.requests == []


def test_callback_missing_code_retires_state(client):
    state = _start_login(client)
    client.get("/api/auth/callback", params={"state": state})

    response = client.get("/api/auth/callback", params={"code": "validcode", "state": state})

    assert response.headers["location"] == "/admin/login?error=csrf_error"


def test_unconfigured_provider_reports_server_error(client):
    def _unconfigured():
        raise ProviderNotConfigured("missing credentials")

    app.dependency_overrides[get_auth_flow] = _unconfigured

    response = client.get("/api/auth/login")

    assert response.status_code == 302
    assert response.headers["location"] == "/admin/login?error=server_error"


def test_callback_rejects_post(client):
    response = client.post("/api/auth/callback", data={"code": "validcode", "state": "abc"})

    assert response.status_code == 405
    assert "GET" in response.headers["allow"]


def test_admin_home_requires_session(client):
    response = client.get("/admin/")

    assert response.status_code == 302
    assert response.headers["location"] == "/admin/login?message=login_required"


def test_admin_home_after_expiry(client, clock):
    _log_in(client)
    clock.advance(3601)

    response = client.get("/admin/")

    assert response.headers["location"] == "/admin/login?message=session_expired"


def test_logout_destroys_session(client, auth_flow):
    session_id = _log_in(client)

    response = client.post("/api/auth/logout")

    assert response.status_code == 302
    assert response.headers["location"] == "/admin/login?message=logged_out"
    with pytest.raises(SessionInvalid):
        auth_flow.sessions.validate(session_id)
    assert client.get("/admin/").headers["location"] == "/admin/login?message=login_required"


def test_relogin_replaces_browser_session(client, auth_flow):
    first = _log_in(client)
    second = _log_in(client)

    assert first != second
    with pytest.raises(SessionInvalid):
        auth_flow.sessions.validate(first)


@pytest.mark.parametrize("category", ["csrf_error", "not_authorized", "auth_failed"])
def test_login_page_uses_generic_retry_message(client, category):
    payload = client.get("/admin/login", params={"error": category}).json()

    assert payload["error"] == category
    assert payload["message"] == "Authentication failed. Please log in again."
    assert payload["login_url"] == "/api/auth/login"
    assert payload["oauth_configured"] is True


def test_login_page_normalizes_unknown_error(client):
    payload = client.get("/admin/login", params={"error": "<script>"}).json()

    assert payload["error"] == "auth_failed"


def test_login_page_info_message(client):
    payload = client.get("/admin/login", params={"message": "logged_out"}).json()

    assert payload["error"] is None
    assert payload["message"] == "You have been logged out."


def _session_set_cookie(response) -> str:
    headers = [value for value in response.headers.get_list("set-cookie") if value.startswith(f"{config.SESSION_COOKIE_NAME}=")]
    assert len(headers) == 1
    return headers[0]


def _successful_callback(client: TestClient):
    state = _start_login(client)
    response = client.get("/api/auth/callback", params={"code": "validcode", "state": state})
    assert response.headers["location"] == "/admin/"
    return response


def test_session_cookie_attributes(client):
    cookie = _session_set_cookie(_successful_callback(client))
    attributes = [part.strip().lower() for part in cookie.split(";")]

    assert "httponly" in attributes
    assert "path=/" in attributes
    assert "max-age=3600" in attributes
    assert "samesite=lax" in attributes
    assert "secure" not in attributes


def test_session_cookie_is_secure_when_configured(client, monkeypatch):
    monkeypatch.setattr(config, "SESSION_COOKIE_SECURE", True)

    cookie = _session_set_cookie(_successful_callback(client))
    attributes = [part.strip().lower() for part in cookie.split(";")]

    assert "secure" in attributes
    assert "httponly" in attributes


@pytest.mark.parametrize(
    "callback_params",
    [
        {"code": "validcode", "state": "f" * 64},
        {"error": "access_denied"},
        {},
    ],
)
def test_failed_callback_ends_earlier_session(client, auth_flow, callback_params):
    old_session = _log_in(client)
    _start_login(client)

    response = client.get("/api/auth/callback", params=callback_params)

    assert response.headers["location"].startswith("/admin/login?error=")
    with pytest.raises(SessionInvalid):
        auth_flow.sessions.validate(old_session)


def test_unlisted_login_ends_earlier_session(client, auth_flow, osu_stub):
    old_session = _log_in(client)
    osu_stub.set_profile(999, "stranger")
    state = _start_login(client)

    response = client.get("/api/auth/callback", params={"code": "validcode", "state": state})

    assert response.headers["location"] == "/admin/login?error=not_authorized"
    with pytest.raises(SessionInvalid):
        auth_flow.sessions.validate(old_session)
    assert client.get("/admin/").headers["location"] == "/admin/login?message=login_required"


def test_logout_rejects_get(client, auth_flow):
    session_id = _log_in(client)

    response = client.get("/api/auth/logout")

    assert response.status_code == 405
    assert auth_flow.sessions.validate(session_id).provider_user_id == 42
