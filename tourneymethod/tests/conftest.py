"""Shared fixtures for the admin authentication tests."""

from __future__ import annotations

import os

os.environ.setdefault("TOURNEY_SQLITE_PATH", ":memory:")
os.environ.setdefault("APP_BASE_URL", "http://testserver")
os.environ.setdefault("OSU_CLIENT_ID", "test_client_id")
os.environ.setdefault("OSU_CLIENT_SECRET", "test_client_secret")
os.environ.setdefault("ADMIN_OSU_IDS", "42")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tourneymethod.auth import models as auth_models  # noqa: F401
from tourneymethod.auth.authorizer import AdminAuthorizer
from tourneymethod.auth.flow import AuthFlowController
from tourneymethod.auth.provider import IdentityProviderClient
from tourneymethod.auth.sessions import SessionManager
from tourneymethod.auth.state import StateTokenStore
from tourneymethod.db import Base


class FakeClock:
    """Wall clock that only moves when a test says so."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class OsuStub:
    """Scripted stand-in for the osu! token and profile endpoints.

    Each queue holds either ``httpx.Response`` objects or exceptions; the last
    entry repeats once the queue is down to one item.
    """

    def __init__(self) -> None:
        self.token_responses: List[Any] = [httpx.Response(200, json={"access_token": "token-123", "token_type": "Bearer", "expires_in": 86400})]
        self.profile_responses: List[Any] = [httpx.Response(200, json={"id": 42, "username": "peppy"})]
        self.requests: List[httpx.Request] = []

    def set_profile(self, user_id: int, username: str = "someone") -> None:
        self.profile_responses = [httpx.Response(200, json={"id": user_id, "username": username})]

    def _next(self, queue: List[Any], request: httpx.Request) -> httpx.Response:
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        # Hand out a fresh copy so a repeated entry is never read twice.
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/oauth/token":
            return self._next(self.token_responses, request)
        if request.url.path == "/api/v2/me":
            return self._next(self.profile_responses, request)
        return httpx.Response(404, json={"error": "not_found"})

    def paths(self) -> List[str]:
        return [request.url.path for request in self.requests]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def session_factory() -> Callable:
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False, future=True)

    @contextmanager
    def _session_scope():
        session = SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    yield _session_scope
    engine.dispose()


@pytest.fixture
def osu_stub() -> OsuStub:
    return OsuStub()


def build_provider(stub: OsuStub, sleeper: SleepRecorder, **overrides: Any) -> IdentityProviderClient:
    options: Dict[str, Any] = {
        "client_id": "test_client_id",
        "client_secret": "test_client_secret",
        "redirect_uri": "http://testserver/api/auth/callback",
        "min_interval": 0.0,
        "transport": httpx.MockTransport(stub.handler),
        "sleep": sleeper,
    }
    options.update(overrides)
    return IdentityProviderClient(**options)


@pytest.fixture
def provider_factory(osu_stub: OsuStub, sleeper: SleepRecorder) -> Callable[..., IdentityProviderClient]:
    clients: List[IdentityProviderClient] = []

    def _factory(**overrides: Any) -> IdentityProviderClient:
        client = build_provider(osu_stub, sleeper, **overrides)
        clients.append(client)
        return client

    yield _factory
    for client in clients:
        client.close()


@pytest.fixture
def provider(provider_factory) -> IdentityProviderClient:
    return provider_factory()


@pytest.fixture
def auth_flow(provider, session_factory, clock) -> AuthFlowController:
    return AuthFlowController(
        state_store=StateTokenStore(clock=clock),
        provider=provider,
        authorizer=AdminAuthorizer([42], session_factory=session_factory, clock=clock),
        sessions=SessionManager(session_factory=session_factory, clock=clock),
    )
