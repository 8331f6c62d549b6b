"""Error taxonomy for the admin authentication flow.

Every failure carries a coarse ``category`` that the HTTP layer forwards to
the login page. Internal detail stays on the exception for server-side
logging and is never rendered to the browser.
"""

from __future__ import annotations

from typing import Optional


class AuthFlowError(Exception):
    """Base class for every admin authentication failure."""

    category = "auth_failed"

    def __init__(self, message: str = "", *, detail: Optional[str] = None) -> None:
        super().__init__(message or self.__class__.__name__)
        self.detail = detail


class CsrfValidationFailed(AuthFlowError):
    """State parameter missing, expired, replayed, or not bound to this browser."""

    category = "csrf_error"


class InvalidCallbackRequest(AuthFlowError):
    """Callback arrived without usable ``code``/``state`` parameters."""


class ProviderDeniedAccess(AuthFlowError):
    """The provider redirected back with an ``error`` parameter."""

    category = "oauth_error"


class OAuthExchangeFailed(AuthFlowError):
    """Authorization code could not be exchanged for an access token."""

    category = "oauth_error"

    def __init__(
        self,
        message: str = "",
        *,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
        transient: bool = False,
    ) -> None:
        super().__init__(message, detail=detail)
        self.status_code = status_code
        self.transient = transient
        if transient:
            # Retries were exhausted against an unavailable provider.
            self.category = "server_error"


class ProfileFetchFailed(AuthFlowError):
    """The provider's current-user endpoint did not yield an identity."""

    category = "oauth_error"

    def __init__(
        self,
        message: str = "",
        *,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, detail=detail)
        self.status_code = status_code


class TransientProfileFetchFailed(ProfileFetchFailed):
    """Timeouts, 5xx or rate limiting persisted through every retry."""

    category = "server_error"


class PermanentProfileFetchFailed(ProfileFetchFailed):
    """A non-retryable 4xx or a malformed profile payload."""


class NotAuthorized(AuthFlowError):
    """The identity is not on the admin allow-list.

    Raised identically for unknown and explicitly excluded identities.
    """

    category = "not_authorized"


class SessionInvalid(AuthFlowError):
    """No live session exists for the presented identifier."""


class SessionExpired(SessionInvalid):
    """The session existed but its absolute expiry has passed."""


class ProviderNotConfigured(RuntimeError):
    """Client credentials for the identity provider are missing."""


def category_for(error: BaseException) -> str:
    """Map any exception raised during login to a user-facing category."""

    if isinstance(error, AuthFlowError):
        return error.category
    return "server_error"
