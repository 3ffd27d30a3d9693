from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timedelta
from typing import Optional, Sequence

from ..common.datetime_utils import utc_now
from ..core.constants import DEFAULT_ACCESS_TOKEN_TTL_HOURS
from ..core.enums import InvalidationReason
from ..core.exceptions import AccountDeactivated, MissingToken, SessionInvalidated, TokenExpired
from .model import SessionMeta, UserSession
from .repository import SessionRepository

logger = logging.getLogger(__name__)


def hash_token(token: str) -> str:
    """One-way SHA-256 digest; the raw token is never stored."""

    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class SessionManager:
    """Single-active-session policy over hashed bearer tokens."""

    def __init__(self, sessions: SessionRepository, *, ttl: timedelta = timedelta(hours=DEFAULT_ACCESS_TOKEN_TTL_HOURS)):
        self._sessions = sessions
        self._ttl = ttl

    def create_session(
        self,
        user_id: int,
        raw_token: str,
        meta: Optional[SessionMeta] = None,
        *,
        expires_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> UserSession:
        now = now or utc_now()
        session, invalidated = self._sessions.replace_active_session(
            user_id=user_id,
            token_hash=hash_token(raw_token),
            meta=meta or SessionMeta(),
            expires_at=expires_at or now + self._ttl,
            now=now,
        )
        if invalidated:
            logger.info("Invalidated %s previous session(s) for user %s (new_login)", invalidated, user_id)
        logger.info("Session %s created for user %s", session.session_id, user_id)
        return session

    def validate(self, raw_token: Optional[str], *, now: Optional[datetime] = None) -> UserSession:
        if not raw_token:
            raise MissingToken("Access token required")

        now = now or utc_now()
        found = self._sessions.find_by_token_hash(hash_token(raw_token))
        if found is None:
            raise SessionInvalidated("Session is no longer valid. You may have logged in from another device.")
        if not found.user_is_active:
            raise AccountDeactivated("Account is deactivated. Please contact an administrator.")
        if found.session.expires_at <= now:
            raise TokenExpired("Session expired. Please log in again.")
        return found.session

    def logout(self, session: UserSession, *, now: Optional[datetime] = None) -> bool:
        ok = self._sessions.invalidate(session.session_id, reason=InvalidationReason.LOGOUT, now=now or utc_now())
        if ok:
            logger.info("Session %s of user %s logged out", session.session_id, session.user_id)
        return ok

    def invalidate_user_sessions(
        self,
        user_id: int,
        *,
        reason: InvalidationReason = InvalidationReason.ADMIN_ACTION,
        now: Optional[datetime] = None,
    ) -> int:
        count = self._sessions.invalidate_user_sessions(user_id, reason=reason, now=now or utc_now())
        logger.info("Invalidated %s session(s) for user %s (%s)", count, user_id, reason.value)
        return count

    def cleanup_expired(self, *, now: Optional[datetime] = None) -> int:
        count = self._sessions.cleanup_expired(now=now or utc_now())
        if count:
            logger.info("Expired sessions cleaned up: %s", count)
        return count

    def list_active_sessions(self, user_id: int, *, now: Optional[datetime] = None) -> Sequence[UserSession]:
        return self._sessions.list_active(user_id, now=now or utc_now())
