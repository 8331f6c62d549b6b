"""Allow-list authorization for osu! identities."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, ContextManager, FrozenSet, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db import session_scope
from . import config
from .errors import NotAuthorized
from .models import AdminUserRecord
from .provider import ProviderIdentity

LOGGER = logging.getLogger(__name__)

SessionFactory = Callable[[], ContextManager[Session]]


class AdminAuthorizer:
    """Gate admin access on a fixed set of osu! user ids.

    Passing the check creates or refreshes the local ``AdminUserRecord``;
    failing it touches nothing. The allow-list is frozen at construction.
    """

    def __init__(
        self,
        allowlist: Iterable[int] = config.ADMIN_ALLOWLIST,
        *,
        session_factory: SessionFactory = session_scope,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._allowlist: FrozenSet[int] = frozenset(int(value) for value in allowlist)
        self._session_factory = session_factory
        self._clock = clock

    @property
    def allowlist(self) -> FrozenSet[int]:
        return self._allowlist

    def is_allowed(self, provider_user_id: int) -> bool:
        return provider_user_id in self._allowlist

    def authorize(self, identity: ProviderIdentity) -> AdminUserRecord:
        if not self.is_allowed(identity.provider_user_id):
            LOGGER.warning("Rejected admin login for osu! user %d", identity.provider_user_id)
            raise NotAuthorized("User is not authorized as admin")

        try:
            return self._upsert(identity)
        except IntegrityError:
            # Two first-time logins for the same identity raced on the unique index.
            LOGGER.info("Concurrent admin record creation for osu! user %d; retrying as update", identity.provider_user_id)
            return self._upsert(identity)

    def get_by_provider_id(self, provider_user_id: int) -> Optional[AdminUserRecord]:
        with self._session_factory() as db:
            return db.execute(
                select(AdminUserRecord).where(AdminUserRecord.provider_user_id == provider_user_id)
            ).scalar_one_or_none()

    def _upsert(self, identity: ProviderIdentity) -> AdminUserRecord:
        now = self._clock()
        with self._session_factory() as db:
            record = db.execute(
                select(AdminUserRecord).where(AdminUserRecord.provider_user_id == identity.provider_user_id)
            ).scalar_one_or_none()
            if record is None:
                record = AdminUserRecord(
                    provider_user_id=identity.provider_user_id,
                    username=identity.username,
                    last_login_at=now,
                )
                db.add(record)
                db.flush()
                LOGGER.info("Created admin record %d for osu! user %d", record.id, identity.provider_user_id)
            else:
                record.username = identity.username
                record.last_login_at = now
                db.add(record)
            return record


_AUTHORIZER: Optional[AdminAuthorizer] = None


def get_admin_authorizer() -> AdminAuthorizer:
    global _AUTHORIZER
    if _AUTHORIZER is None:
        _AUTHORIZER = AdminAuthorizer()
    return _AUTHORIZER
