from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from werkzeug.security import check_password_hash

from ..activities.service import ActivityRecorder
from ..common.datetime_utils import isoformat, utc_now
from ..common.validators import require_non_empty
from ..core.exceptions import AccountDeactivated, AuthenticationError, SessionInvalidated
from ..devices.model import UserDevice
from ..devices.service import DeviceRegistry
from ..ratelimit.limiter import LoginRateLimiter
from ..sessions.model import SessionMeta, UserSession
from ..sessions.service import SessionManager
from ..sessions.tokens import TokenIssuer
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    user: User
    access_token: str
    refresh_token: str
    session: UserSession
    device: Optional[UserDevice] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user": self.user.to_public_dict(),
            "token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": isoformat(self.session.expires_at),
            "session": self.session.to_dict(),
        }


class AuthService:
    """Use case: authenticate a user and open their single active session."""

    def __init__(
        self,
        users: UserRepository,
        sessions: SessionManager,
        tokens: TokenIssuer,
        devices: DeviceRegistry,
        recorder: ActivityRecorder,
        limiter: LoginRateLimiter,
    ):
        self._users = users
        self._sessions = sessions
        self._tokens = tokens
        self._devices = devices
        self._recorder = recorder
        self._limiter = limiter

    def login(
        self,
        email: str,
        password: str,
        *,
        client_key: str,
        meta: Optional[SessionMeta] = None,
        now: Optional[datetime] = None,
    ) -> LoginResult:
        now = now or utc_now()
        meta = meta or SessionMeta()
        self._limiter.check(client_key, now=now)

        email = require_non_empty(email, "Email").lower()
        password = require_non_empty(password, "Password")

        user = self._users.get_by_email(email)
        if not user:
            self._limiter.hit(client_key, now=now)
            raise AuthenticationError("Invalid credentials")

        if not user.is_active:
            self._limiter.hit(client_key, now=now)
            raise AccountDeactivated("Account pending approval. Please contact administrator.")

        try:
            ok = check_password_hash(user.password_hash, password)
        except (TypeError, ValueError):
            # Placeholder or corrupted hashes never match.
            ok = False

        if not ok:
            self._limiter.hit(client_key, now=now)
            self._recorder.record(
                user_id=user.user_id,
                action="login_failed",
                entity_type="auth",
                entity_id=user.user_id,
                description="Failed login attempt",
                metadata={"reason": "invalid_password", "ip_address": meta.ip_address},
            )
            raise AuthenticationError("Invalid credentials")

        self._limiter.reset(client_key)
        result = self._open_session(user, meta=meta, now=now)
        self._users.touch_last_login(user.user_id, at=now)
        self._recorder.record(
            user_id=user.user_id,
            action="login",
            entity_type="auth",
            entity_id=user.user_id,
            description="Successful login",
            metadata={"ip_address": meta.ip_address, "user_agent": meta.user_agent},
        )
        logger.info("User %s logged in (session=%s)", user.user_id, result.session.session_id)
        return result

    def refresh(
        self,
        refresh_token: str,
        *,
        meta: Optional[SessionMeta] = None,
        now: Optional[datetime] = None,
    ) -> LoginResult:
        now = now or utc_now()
        user_id = self._tokens.decode_refresh(require_non_empty(refresh_token, "Refresh token"), now=now)
        user = self._users.get_by_id(user_id)
        if not user or not user.is_active:
            raise SessionInvalidated("Invalid refresh token")

        result = self._open_session(user, meta=meta or SessionMeta(), now=now)
        logger.info("Token refreshed for user %s", user.user_id)
        return result

    def logout(self, user: User, session: UserSession, *, now: Optional[datetime] = None) -> None:
        self._sessions.logout(session, now=now)
        self._recorder.record(
            user_id=user.user_id,
            action="logout",
            entity_type="auth",
            entity_id=user.user_id,
            description="User logged out",
            metadata={"session_id": session.session_id},
        )

    def _open_session(self, user: User, *, meta: SessionMeta, now: datetime) -> LoginResult:
        access = self._tokens.issue_access(user, now=now)
        refresh = self._tokens.issue_refresh(user, now=now)
        session = self._sessions.create_session(user.user_id, access.token, meta, expires_at=access.expires_at, now=now)

        device = None
        if meta.device_fingerprint:
            device = self._devices.register(
                user_id=user.user_id,
                device_fingerprint=meta.device_fingerprint,
                user_agent=meta.user_agent,
                now=now,
            )
        return LoginResult(user=user, access_token=access.token, refresh_token=refresh.token, session=session, device=device)
