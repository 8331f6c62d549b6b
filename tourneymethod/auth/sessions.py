"""Server-side admin sessions with absolute expiry."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, ContextManager, Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from ..db import session_scope
from . import config
from .crypto import generate_token, hash_token, redact
from .errors import SessionExpired, SessionInvalid
from .models import AdminSessionRecord, AdminUserRecord

LOGGER = logging.getLogger(__name__)

SessionFactory = Callable[[], ContextManager[Session]]


class SessionManager:
    """Issue, validate and revoke admin sessions.

    Only the HMAC of a session identifier is stored. Creating a session
    revokes every other session of the same admin, so each admin has at most
    one live session. Validation never extends ``expires_at``.
    """

    def __init__(
        self,
        *,
        ttl_seconds: int = config.SESSION_TTL_SECONDS,
        session_factory: SessionFactory = session_scope,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._session_factory = session_factory
        self._clock = clock

    @staticmethod
    def _normalize_dt(value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def create(self, admin_user: AdminUserRecord) -> str:
        now = self._clock()
        session_id = generate_token(32)
        with self._session_factory() as db:
            db.execute(delete(AdminSessionRecord).where(AdminSessionRecord.admin_user_id == admin_user.id))
            db.execute(delete(AdminSessionRecord).where(AdminSessionRecord.expires_at <= now))
            db.add(
                AdminSessionRecord(
                    session_hash=hash_token(session_id),
                    admin_user_id=admin_user.id,
                    created_at=now,
                    expires_at=now + self._ttl,
                )
            )
        LOGGER.info("Issued admin session %s for admin %d", redact(session_id), admin_user.id)
        return session_id

    def validate(self, session_id: Optional[str]) -> AdminUserRecord:
        if not session_id:
            raise SessionInvalid("No session identifier presented")
        now = self._clock()
        expired = False
        admin_user: Optional[AdminUserRecord] = None
        with self._session_factory() as db:
            record = db.get(AdminSessionRecord, hash_token(session_id))
            if record is not None:
                if self._normalize_dt(record.expires_at) <= now:
                    expired = True
                    db.delete(record)
                else:
                    admin_user = db.get(AdminUserRecord, record.admin_user_id)
                    if admin_user is None:
                        db.delete(record)
        if expired:
            raise SessionExpired("Admin session expired")
        if admin_user is None:
            raise SessionInvalid("Unknown admin session")
        return admin_user

    def destroy(self, session_id: Optional[str]) -> None:
        if not session_id:
            return
        with self._session_factory() as db:
            result = db.execute(delete(AdminSessionRecord).where(AdminSessionRecord.session_hash == hash_token(session_id)))
        if result.rowcount:
            LOGGER.info("Destroyed admin session %s", redact(session_id))

    def purge_expired(self) -> int:
        now = self._clock()
        with self._session_factory() as db:
            result = db.execute(delete(AdminSessionRecord).where(AdminSessionRecord.expires_at <= now))
        return result.rowcount or 0


_SESSION_MANAGER: Optional[SessionManager] = None


def get_session_manager() -> SessionManager:
    global _SESSION_MANAGER
    if _SESSION_MANAGER is None:
        _SESSION_MANAGER = SessionManager()
    return _SESSION_MANAGER
