from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence, Tuple

from ..core.enums import InvalidationReason
from ..core.exceptions import NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import SessionLookup, SessionMeta, UserSession
from .repository import SessionRepository

_COLUMNS = """
    s.session_id, s.user_id, s.token_hash, s.device_fingerprint, s.ip_address, s.user_agent,
    s.is_active, s.expires_at, s.created_at, s.invalidated_at, s.invalidation_reason
"""


def _to_session(r: Dict[str, Any]) -> UserSession:
    reason = r.get("invalidation_reason")
    return UserSession(
        session_id=int(r["session_id"]),
        user_id=int(r["user_id"]),
        token_hash=r["token_hash"],
        device_fingerprint=r.get("device_fingerprint"),
        ip_address=r.get("ip_address"),
        user_agent=r.get("user_agent"),
        is_active=bool(r["is_active"]),
        expires_at=r["expires_at"],
        created_at=r.get("created_at"),
        invalidated_at=r.get("invalidated_at"),
        invalidation_reason=InvalidationReason(reason) if reason else None,
    )


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def replace_active_session(
        self,
        *,
        user_id: int,
        token_hash: str,
        meta: SessionMeta,
        expires_at: datetime,
        now: datetime,
    ) -> Tuple[UserSession, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            # Row lock serialises concurrent logins of the same user.
            cur.execute("SELECT user_id FROM users WHERE user_id=%s FOR UPDATE", (user_id,))
            if not fetchone(cur):
                raise NotFoundError(f"User {user_id} not found")

            cur.execute(
                """
                UPDATE user_sessions
                SET is_active=0, invalidated_at=%s, invalidation_reason=%s
                WHERE user_id=%s AND is_active=1
                """,
                (now, InvalidationReason.NEW_LOGIN.value, user_id),
            )
            invalidated = int(cur.rowcount or 0)

            cur.execute(
                """
                INSERT INTO user_sessions(
                    user_id, token_hash, device_fingerprint, ip_address, user_agent, is_active, expires_at, created_at
                )
                VALUES(%s,%s,%s,%s,%s,1,%s,%s)
                """,
                (user_id, token_hash, meta.device_fingerprint, meta.ip_address, meta.user_agent, expires_at, now),
            )
            session_id = int(cur.lastrowid)

        session = UserSession(
            session_id=session_id,
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
            device_fingerprint=meta.device_fingerprint,
            ip_address=meta.ip_address,
            user_agent=meta.user_agent,
            created_at=now,
        )
        return session, invalidated

    def find_by_token_hash(self, token_hash: str) -> Optional[SessionLookup]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}, u.is_active AS user_is_active
                FROM user_sessions s
                JOIN users u ON u.user_id = s.user_id
                WHERE s.token_hash=%s AND s.is_active=1
                LIMIT 1
                """,
                (token_hash,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return SessionLookup(session=_to_session(r), user_is_active=bool(r["user_is_active"]))

    def invalidate(self, session_id: int, *, reason: InvalidationReason, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE user_sessions
                SET is_active=0, invalidated_at=%s, invalidation_reason=%s
                WHERE session_id=%s AND is_active=1
                """,
                (now, reason.value, session_id),
            )
            return cur.rowcount == 1

    def invalidate_user_sessions(self, user_id: int, *, reason: InvalidationReason, now: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE user_sessions
                SET is_active=0, invalidated_at=%s, invalidation_reason=%s
                WHERE user_id=%s AND is_active=1
                """,
                (now, reason.value, user_id),
            )
            return int(cur.rowcount or 0)

    def cleanup_expired(self, *, now: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE user_sessions
                SET is_active=0, invalidated_at=%s, invalidation_reason=%s
                WHERE is_active=1 AND expires_at <= %s
                """,
                (now, InvalidationReason.EXPIRED.value, now),
            )
            return int(cur.rowcount or 0)

    def list_active(self, user_id: int, *, now: datetime) -> Sequence[UserSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM user_sessions s
                WHERE s.user_id=%s AND s.is_active=1 AND s.expires_at > %s
                ORDER BY s.created_at DESC
                """,
                (user_id, now),
            )
            return [_to_session(r) for r in fetchall(cur)]
