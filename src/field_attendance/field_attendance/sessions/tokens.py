from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt

from ..core.exceptions import SessionInvalidated, TokenExpired
from ..users.model import User

ALGORITHM = "HS256"


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


def _epoch(value: datetime) -> int:
    return int(value.replace(tzinfo=timezone.utc).timestamp())


class TokenIssuer:
    """Signs access/refresh tokens with PyJWT.

    Access tokens are opaque to the rest of the service: sessions are looked
    up by their hash, never by their claims. Every token carries a random
    ``jti`` so two logins in the same second still hash differently.
    """

    def __init__(
        self,
        *,
        secret: str,
        refresh_secret: str,
        issuer: str,
        audience: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
    ):
        self._secret = secret
        self._refresh_secret = refresh_secret
        self._issuer = issuer
        self._audience = audience
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl

    def issue_access(self, user: User, *, now: datetime) -> IssuedToken:
        expires_at = now + self._access_ttl
        payload = {
            "sub": str(user.user_id),
            "email": user.email,
            "role": user.role.value,
            "facility_id": user.facility_id,
            "iss": self._issuer,
            "aud": self._audience,
            "iat": _epoch(now),
            "exp": _epoch(expires_at),
            "jti": uuid.uuid4().hex,
        }
        return IssuedToken(token=jwt.encode(payload, self._secret, algorithm=ALGORITHM), expires_at=expires_at)

    def issue_refresh(self, user: User, *, now: datetime) -> IssuedToken:
        expires_at = now + self._refresh_ttl
        payload = {
            "sub": str(user.user_id),
            "type": "refresh",
            "iss": self._issuer,
            "iat": _epoch(now),
            "exp": _epoch(expires_at),
            "jti": uuid.uuid4().hex,
        }
        return IssuedToken(token=jwt.encode(payload, self._refresh_secret, algorithm=ALGORITHM), expires_at=expires_at)

    def decode_refresh(self, token: str, *, now: datetime) -> int:
        """Return the user id of a valid refresh token.

        Expiry is compared against ``now`` rather than the wall clock so
        callers control time.
        """

        try:
            payload: Dict[str, Any] = jwt.decode(
                token,
                self._refresh_secret,
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                options={"verify_exp": False, "require": ["exp", "sub"]},
            )
        except jwt.InvalidTokenError as exc:
            raise SessionInvalidated("Invalid refresh token") from exc

        if payload.get("type") != "refresh":
            raise SessionInvalidated("Invalid refresh token")
        if int(payload["exp"]) <= _epoch(now):
            raise TokenExpired("Refresh token expired. Please log in again.")
        try:
            return int(payload["sub"])
        except (TypeError, ValueError) as exc:
            raise SessionInvalidated("Invalid refresh token") from exc
