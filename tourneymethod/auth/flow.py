"""Orchestration of the osu! admin login flow."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from . import config
from .authorizer import AdminAuthorizer, get_admin_authorizer
from .crypto import redact
from .errors import InvalidCallbackRequest, ProviderDeniedAccess
from .provider import IdentityProviderClient, get_identity_provider
from .sessions import SessionManager, get_session_manager
from .state import StateTokenStore, get_state_store

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginRedirect:
    url: str
    state: str


class AuthFlowController:
    """Tie state validation, code exchange, authorization and session issue together.

    The controller holds no state of its own; pending logins live in the
    ``StateTokenStore`` and sessions in the ``SessionManager``.
    """

    def __init__(
        self,
        *,
        state_store: StateTokenStore,
        provider: IdentityProviderClient,
        authorizer: AdminAuthorizer,
        sessions: SessionManager,
    ) -> None:
        self.state_store = state_store
        self.provider = provider
        self.authorizer = authorizer
        self.sessions = sessions

    def begin_login(self) -> LoginRedirect:
        """Start a login attempt.

        The returned state must be bound to the browser (the HTTP layer keeps
        it in a signed cookie) and handed back to ``complete_login``.
        """
        state = self.state_store.issue()
        return LoginRedirect(url=self.provider.build_authorization_url(state), state=state)

    def complete_login(
        self,
        code: Optional[str],
        state: Optional[str],
        session_bound_state: Optional[str],
        *,
        previous_session_id: Optional[str] = None,
    ) -> str:
        """Finish a login attempt and return the new session identifier.

        Steps short-circuit on the first failure: state check, code exchange,
        profile fetch, allow-list authorization, session creation. The state
        check completes before any request leaves the process.

        Raises:
            AuthFlowError: one of the taxonomy subclasses describing the step
                that failed.
        """
        self.state_store.consume(state, session_bound_state)
        code = (code or "").strip()
        if not code or len(code) > config.MAX_CODE_LENGTH:
            raise InvalidCallbackRequest("Authorization code missing or too long")

        token = self.provider.exchange_code_for_token(code)
        identity = self.provider.fetch_profile(token)
        admin_user = self.authorizer.authorize(identity)

        # A session id the browser carried in before login is never reused.
        self.sessions.destroy(previous_session_id)
        session_id = self.sessions.create(admin_user)
        LOGGER.info(
            "Admin login successful: user_id=%d, osu_id=%d, session_id=%s",
            admin_user.id,
            admin_user.provider_user_id,
            redact(session_id),
        )
        return session_id

    def abort_login(self, state: Optional[str], error: str) -> None:
        """Retire the pending state after the provider reported ``error``."""
        self.state_store.discard(state)
        raise ProviderDeniedAccess(f"OAuth authorization failed: {error}")


_AUTH_FLOW: Optional[AuthFlowController] = None


def get_auth_flow() -> AuthFlowController:
    global _AUTH_FLOW
    if _AUTH_FLOW is None:
        _AUTH_FLOW = AuthFlowController(
            state_store=get_state_store(),
            provider=get_identity_provider(),
            authorizer=get_admin_authorizer(),
            sessions=get_session_manager(),
        )
    return _AUTH_FLOW
