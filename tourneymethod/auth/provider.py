"""HTTP client for the osu! OAuth 2.0 and API v2 endpoints."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

import httpx

from . import config
from .errors import (
    OAuthExchangeFailed,
    PermanentProfileFetchFailed,
    ProviderNotConfigured,
    TransientProfileFetchFailed,
)

LOGGER = logging.getLogger(__name__)

_TRANSIENT_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})


@dataclass(frozen=True)
class AccessToken:
    value: str = field(repr=False)
    token_type: str = "Bearer"
    expires_in: Optional[int] = None


@dataclass(frozen=True)
class ProviderIdentity:
    """Identity reported by ``/api/v2/me``.

    Only ``provider_user_id`` is used for authorization; ``username`` is
    display data.
    """

    provider_user_id: int
    username: str


class ProviderRequestError(Exception):
    """A provider call failed after the retry policy was applied."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, detail: Optional[str] = None, transient: bool) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail
        self.transient = transient


def _error_detail(response: httpx.Response) -> str:
    """Pull the provider's error description out of a failed response."""
    try:
        payload = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(payload, dict):
        parts = [str(payload[key]) for key in ("error", "error_description", "hint", "message") if payload.get(key)]
        if parts:
            return ": ".join(parts)
    return response.text[:500]


def _retry_after_seconds(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("retry-after")
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


class IdentityProviderClient:
    """osu! OAuth client with bounded retries and request pacing.

    Transient failures (timeouts, transport errors, 408/425/429/5xx) are
    retried up to ``max_retries`` times with delays of ``backoff_base``,
    ``2 * backoff_base``, ``4 * backoff_base`` and so on. Other 4xx responses
    fail on the first attempt. Consecutive calls are spaced at least
    ``min_interval`` seconds apart to stay under the published rate limit.
    """

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str = config.OSU_REDIRECT_URI,
        scope: str = config.OSU_SCOPE,
        authorize_url: str = config.OSU_AUTHORIZE_URL,
        token_url: str = config.OSU_TOKEN_URL,
        profile_url: str = config.OSU_PROFILE_URL,
        timeout: Optional[httpx.Timeout] = None,
        max_retries: int = config.OSU_MAX_RETRIES,
        backoff_base: float = config.OSU_BACKOFF_BASE_SECONDS,
        min_interval: float = config.OSU_MIN_REQUEST_INTERVAL_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        if not client_id or not client_secret:
            raise ProviderNotConfigured("osu! client id and secret must both be configured")
        self.client_id = client_id
        self._client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scope = scope
        self.authorize_url = authorize_url
        self.token_url = token_url
        self.profile_url = profile_url
        self.max_retries = max(0, max_retries)
        self.backoff_base = backoff_base
        self.min_interval = max(0.0, min_interval)
        self._sleep = sleep
        self._monotonic = monotonic
        self._pace_lock = threading.Lock()
        self._last_request_at: Optional[float] = None
        self._client = httpx.Client(
            timeout=timeout or httpx.Timeout(config.OSU_HTTP_TIMEOUT_SECONDS, connect=config.OSU_CONNECT_TIMEOUT_SECONDS),
            headers={"Accept": "application/json", "User-Agent": config.OSU_USER_AGENT},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def build_authorization_url(self, state: str) -> str:
        query = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": config.OSU_RESPONSE_TYPE,
            "scope": self.scope,
            "state": state,
        }
        return f"{self.authorize_url}?{urlencode(query)}"

    def exchange_code_for_token(self, code: str) -> AccessToken:
        data = {
            "client_id": self.client_id,
            "client_secret": self._client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
        }
        try:
            response = self._request_with_retry("POST", self.token_url, operation="token exchange", data=data)
        except ProviderRequestError as exc:
            raise OAuthExchangeFailed(
                f"OAuth token request failed: {exc}",
                detail=exc.detail,
                status_code=exc.status_code,
                transient=exc.transient,
            ) from exc

        payload = self._json_object(response)
        access_token = payload.get("access_token") if payload else None
        if not isinstance(access_token, str) or not access_token:
            raise OAuthExchangeFailed("Invalid OAuth token response", status_code=response.status_code)
        expires_in = payload.get("expires_in")
        return AccessToken(
            value=access_token,
            token_type=str(payload.get("token_type") or "Bearer"),
            expires_in=expires_in if isinstance(expires_in, int) else None,
        )

    def fetch_profile(self, token: AccessToken) -> ProviderIdentity:
        headers = {"Authorization": f"Bearer {token.value}"}
        try:
            response = self._request_with_retry("GET", self.profile_url, operation="profile fetch", headers=headers)
        except ProviderRequestError as exc:
            error_cls = TransientProfileFetchFailed if exc.transient else PermanentProfileFetchFailed
            raise error_cls(f"User info request failed: {exc}", detail=exc.detail, status_code=exc.status_code) from exc

        payload = self._json_object(response)
        user_id = payload.get("id") if payload else None
        username = payload.get("username") if payload else None
        # bool is an int subclass; reject it explicitly
        if not isinstance(user_id, int) or isinstance(user_id, bool) or user_id <= 0:
            raise PermanentProfileFetchFailed("Invalid user info response: missing id", status_code=response.status_code)
        if not isinstance(username, str) or not username.strip():
            raise PermanentProfileFetchFailed("Invalid user info response: missing username", status_code=response.status_code)
        return ProviderIdentity(provider_user_id=user_id, username=username.strip())

    @staticmethod
    def _json_object(response: httpx.Response) -> Optional[Dict[str, Any]]:
        try:
            payload = response.json()
        except ValueError:
            return None
        return payload if isinstance(payload, dict) else None

    def backoff_delay(self, retry_number: int) -> float:
        """Delay before retry ``retry_number`` (1-based)."""
        return self.backoff_base * (2 ** (retry_number - 1))

    def _pace(self) -> None:
        with self._pace_lock:
            if self._last_request_at is not None and self.min_interval > 0:
                elapsed = self._monotonic() - self._last_request_at
                if elapsed < self.min_interval:
                    self._sleep(self.min_interval - elapsed)
            self._last_request_at = self._monotonic()

    def _request_with_retry(self, method: str, url: str, *, operation: str, **kwargs: Any) -> httpx.Response:
        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            self._pace()
            retry_after: Optional[float] = None
            try:
                response = self._client.request(method, url, **kwargs)
            except httpx.TimeoutException as exc:
                failure = ProviderRequestError(f"{operation} timed out", detail=str(exc), transient=True)
            except httpx.TransportError as exc:
                failure = ProviderRequestError(f"{operation} network error", detail=str(exc), transient=True)
            else:
                if response.is_success:
                    return response
                transient = response.status_code in _TRANSIENT_STATUS_CODES or response.status_code >= 500
                failure = ProviderRequestError(
                    f"{operation} returned HTTP {response.status_code}",
                    status_code=response.status_code,
                    detail=_error_detail(response),
                    transient=transient,
                )
                if response.status_code == 429:
                    retry_after = _retry_after_seconds(response)

            if not failure.transient:
                LOGGER.warning("osu! %s failed permanently: %s (%s)", operation, failure, failure.detail)
                raise failure
            if attempt >= attempts:
                LOGGER.error("osu! %s failed after %d attempts: %s", operation, attempts, failure)
                raise failure

            delay = self.backoff_delay(attempt)
            if retry_after is not None:
                delay = max(delay, retry_after)
            LOGGER.warning(
                "osu! %s attempt %d/%d failed (%s); retrying in %.1fs",
                operation,
                attempt,
                attempts,
                failure,
                delay,
            )
            self._sleep(delay)
        raise RuntimeError("unreachable")  # pragma: no cover


_PROVIDER_CLIENT: Optional[IdentityProviderClient] = None


def get_identity_provider() -> IdentityProviderClient:
    global _PROVIDER_CLIENT
    if _PROVIDER_CLIENT is None:
        if not config.oauth_configured():
            raise ProviderNotConfigured("OSU_CLIENT_ID and OSU_CLIENT_SECRET environment variables must be set")
        _PROVIDER_CLIENT = IdentityProviderClient(
            client_id=config.OSU_CLIENT_ID or "",
            client_secret=config.OSU_CLIENT_SECRET or "",
        )
    return _PROVIDER_CLIENT
