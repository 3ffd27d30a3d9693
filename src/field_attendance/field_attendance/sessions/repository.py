from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence, Tuple

from ..core.enums import InvalidationReason
from .model import SessionLookup, SessionMeta, UserSession


class SessionRepository(Protocol):
    def replace_active_session(
        self,
        *,
        user_id: int,
        token_hash: str,
        meta: SessionMeta,
        expires_at: datetime,
        now: datetime,
    ) -> Tuple[UserSession, int]:
        """Invalidate every active session of the user (``new_login``) and
        insert the new one, atomically. Returns the new session and the
        number of sessions invalidated."""

        raise NotImplementedError

    def find_by_token_hash(self, token_hash: str) -> Optional[SessionLookup]:
        """Active session for the hash. Expiry is judged by the caller."""

        raise NotImplementedError

    def invalidate(self, session_id: int, *, reason: InvalidationReason, now: datetime) -> bool:
        raise NotImplementedError

    def invalidate_user_sessions(self, user_id: int, *, reason: InvalidationReason, now: datetime) -> int:
        raise NotImplementedError

    def cleanup_expired(self, *, now: datetime) -> int:
        raise NotImplementedError

    def list_active(self, user_id: int, *, now: datetime) -> Sequence[UserSession]:
        raise NotImplementedError
