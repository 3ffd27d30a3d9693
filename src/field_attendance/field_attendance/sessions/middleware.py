from __future__ import annotations

from functools import wraps

from flask import g, request

from ..core.exceptions import AccountDeactivated, AuthorizationError, MissingToken
from ..users.repository import UserRepository
from .service import SessionManager


def extract_bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise MissingToken("Access token required")
    return token.strip()


class AuthGuard:
    """Authentication boundary for the JSON API.

    Every protected request re-validates its session, so a token superseded
    by a newer login stops working immediately.
    """

    def __init__(self, sessions: SessionManager, users: UserRepository):
        self._sessions = sessions
        self._users = users

    def authenticate(self) -> None:
        token = extract_bearer_token()
        session = self._sessions.validate(token)
        user = self._users.get_by_id(session.user_id)
        if not user or not user.is_active:
            raise AccountDeactivated("Account is deactivated. Please contact an administrator.")
        g.current_user = user
        g.session = session
        g.access_token = token

    def login_required(self, view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            self.authenticate()
            return view(*args, **kwargs)

        return wrapper

    def admin_required(self, view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            self.authenticate()
            if not g.current_user.is_admin:
                raise AuthorizationError("Admin access required")
            return view(*args, **kwargs)

        return wrapper
